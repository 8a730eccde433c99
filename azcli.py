"""Thin wrappers around external command-line tools (az, pulumi).

Every call is synchronous: the tool runs to completion before the next one
starts, and its exit status and raw output are kept on the result.
"""

import os
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from loguru import logger


@dataclass
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout/stderr as the tool printed them."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class CommandError(RuntimeError):
    """Raised when an external command exits non-zero."""

    def __init__(self, result: CommandResult):
        self.result = result
        self.returncode = result.returncode
        message = result.output or f"exit status {result.returncode}"
        super().__init__(f"{' '.join(result.args)} failed: {message}")


def run_command(
    args: Sequence[str],
    check: bool = True,
    env: Optional[Dict[str, str]] = None,
) -> CommandResult:
    """Run a command to completion. ``env`` adds variables on top of the current environment."""
    args = list(args)
    logger.debug("Running: {}", " ".join(args))
    full_env = {**os.environ, **env} if env else None
    try:
        completed = subprocess.run(args, capture_output=True, text=True, env=full_env)
    except FileNotFoundError:
        # Same status a shell reports for an unknown command
        result = CommandResult(args, 127, stderr=f"{args[0]}: command not found")
    else:
        result = CommandResult(args, completed.returncode, completed.stdout or "", completed.stderr or "")

    if check and not result.ok:
        raise CommandError(result)
    return result


def _workspace_args(env) -> List[str]:
    return [
        "--subscription", env.subscription_id,
        "--resource-group", env.resource_group,
        "--name", env.workspace_name,
    ]


def provision_network(env) -> CommandResult:
    """Provision the managed virtual network of the workspace."""
    return run_command(["az", "ml", "workspace", "provision-network", *_workspace_args(env)])


def update_public_network_access(env, enabled: bool) -> CommandResult:
    flag = "Enabled" if enabled else "Disabled"
    return run_command(
        ["az", "ml", "workspace", "update", *_workspace_args(env), "--public-network-access", flag]
    )
