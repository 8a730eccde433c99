"""
Deployment settings for the workspace scripts.

Values come from the process environment, after loading a ``.env`` file with
python-dotenv. With ``source="stack"`` the outputs of a Pulumi stack
(``pulumi stack output --json``) are laid over them, so a freshly deployed
stack provides its own resource group and workspace names.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from loguru import logger

from azcli import run_command

ENV_KEYS = {
    "subscription_id": "AZURE_SUBSCRIPTION_ID",
    "resource_group": "AZURE_RESOURCE_GROUP",
    "workspace_name": "AZUREML_WORKSPACE_NAME",
    "location": "AZURE_LOCATION",
}

SOURCES = ("env", "stack")


class MissingSettingsError(Exception):
    """Raised when required deployment settings are missing."""


@dataclass
class DeploymentEnvironment:
    subscription_id: str
    resource_group: str
    workspace_name: str
    location: str


def stack_outputs(stack: Optional[str] = None) -> Dict[str, str]:
    args = ["pulumi", "stack", "output", "--json"]
    if stack:
        args += ["--stack", stack]
    result = run_command(args)
    try:
        outputs = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise MissingSettingsError(f"Stack outputs are not valid JSON: {e}") from e
    if not isinstance(outputs, dict):
        raise MissingSettingsError("Stack outputs must be a JSON object")
    return {key: str(value) for key, value in outputs.items() if value is not None}


def read_environment(
    source: str = "env",
    stack: Optional[str] = None,
    env_file: Optional[str] = None,
) -> DeploymentEnvironment:
    if source not in SOURCES:
        raise ValueError(f"Unknown environment source '{source}', expected one of {SOURCES}")

    if env_file and not Path(env_file).is_file():
        raise MissingSettingsError(f"Environment file not found: {env_file}")

    # Existing process variables win over the file
    load_dotenv(dotenv_path=Path(env_file) if env_file else Path.cwd() / ".env")

    values = {field: os.getenv(key, "") for field, key in ENV_KEYS.items()}

    if source == "stack":
        outputs = stack_outputs(stack)
        for field, key in ENV_KEYS.items():
            if outputs.get(key):
                values[field] = outputs[key]

    missing = [ENV_KEYS[field] for field, value in values.items() if not value]
    if missing:
        raise MissingSettingsError(f"Missing deployment settings: {', '.join(missing)}")

    env = DeploymentEnvironment(**values)
    logger.info(
        "Using workspace {} in resource group {} (subscription {}, {})",
        env.workspace_name, env.resource_group, env.subscription_id, env.location,
    )
    return env
