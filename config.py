# config.py
"""
Data structures and loading for the deployment template.

The template is a YAML document listing Azure resources in dependency order.
Arguments may point at earlier resources with ``ref:<name>[.<attribute>]``
(the attribute defaults to ``id``) and at the deploying principal with
``client:<attribute>``.
"""

import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List

# Overrides the Pulumi "template" config key, used by validate-template
TEMPLATE_ENV = "WORKSPACE_TEMPLATE"
REQUIRED_KEYS = ["team", "service", "environment", "location"]
REF_PREFIX = "ref:"
CLIENT_PREFIX = "client:"


@dataclass
class AzureResource:
    name: str
    type: str
    args: Dict
    existing: bool = False
    depends_on: List[str] = field(default_factory=list)


@dataclass
class Config:
    team: str
    service: str
    environment: str
    location: str
    tags: Dict[str, str]
    azure_resources: List[AzureResource]
    outputs: Dict[str, str] = field(default_factory=dict)


def load_config(file_path: str) -> Dict[str, Any]:
    """Load YAML template from the given file path and check its top-level keys."""
    with open(file_path, "r") as file:
        try:
            config_data = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ValueError(f"Template '{file_path}' is not valid YAML: {e}") from e

    if not isinstance(config_data, dict):
        raise ValueError(f"Template '{file_path}' must be a YAML mapping")

    for key in REQUIRED_KEYS:
        if key not in config_data:
            raise ValueError(f"Missing required configuration key: {key}")

    return config_data


def split_ref(value: str):
    """Split ``ref:name.attr`` into ``(name, attr)``."""
    ref_text = value[len(REF_PREFIX):]
    if "." in ref_text:
        ref_res, ref_attr = ref_text.split(".", 1)
    else:
        ref_res, ref_attr = (ref_text, "id")
    return ref_res, ref_attr


def find_references(value: Any) -> List[str]:
    """Return the resource names referenced anywhere inside ``value``."""
    if isinstance(value, dict):
        return [ref for item in value.values() for ref in find_references(item)]
    if isinstance(value, list):
        return [ref for item in value for ref in find_references(item)]
    if isinstance(value, str) and value.startswith(REF_PREFIX):
        return [split_ref(value)[0]]
    return []


def parse_config(config_data: Dict[str, Any]) -> Config:
    resources: List[AzureResource] = []
    seen = set()

    entries = config_data.get("azure_resources") or []
    if not isinstance(entries, list):
        raise ValueError("'azure_resources' must be a list")

    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or "name" not in entry or "type" not in entry:
            raise ValueError(f"Resource #{index} needs both 'name' and 'type'")

        name, resource_type = entry["name"], entry["type"]
        if not isinstance(name, str) or not isinstance(resource_type, str):
            raise ValueError(f"Resource #{index} 'name' and 'type' must be strings")
        if name in seen:
            raise ValueError(f"Duplicate resource name: {name}")
        if "." not in resource_type:
            raise ValueError(
                f"Resource '{name}' type '{resource_type}' must look like 'module.Class'"
            )

        if not isinstance(entry.get("args") or {}, dict):
            raise ValueError(f"Resource '{name}' args must be a mapping")
        if not isinstance(entry.get("depends_on") or [], list):
            raise ValueError(f"Resource '{name}' depends_on must be a list")

        args = dict(entry.get("args") or {})
        existing = bool(args.pop("existing", entry.get("existing", False)))
        depends_on = list(entry.get("depends_on") or [])
        for dep in depends_on:
            if dep not in seen:
                raise ValueError(
                    f"Resource '{name}' depends on '{dep}', which is not declared before it"
                )

        resources.append(AzureResource(name, resource_type, args, existing, depends_on))
        seen.add(name)

    outputs = config_data.get("outputs") or {}
    if not isinstance(outputs, dict):
        raise ValueError("'outputs' must be a mapping of output name to reference")
    for key, value in outputs.items():
        if not isinstance(value, str):
            raise ValueError(f"Output '{key}' must be a string reference")

    return Config(
        team=config_data["team"],
        service=config_data["service"],
        environment=config_data["environment"],
        location=config_data["location"],
        tags=dict(config_data.get("tags") or {}),
        azure_resources=resources,
        outputs=dict(outputs),
    )


def lint_config(config: Config) -> List[str]:
    """Check references without touching Azure. Returns problems found, in order."""
    problems = []
    declared = set()

    for resource in config.azure_resources:
        for ref in find_references(resource.args):
            if ref not in declared:
                problems.append(
                    f"{resource.name}: reference to '{ref}' before it is declared"
                )
        declared.add(resource.name)

    for key, value in config.outputs.items():
        if not value.startswith(REF_PREFIX):
            problems.append(f"output {key}: expected 'ref:<resource>.<attribute>'")
            continue
        ref, _ = split_ref(value)
        if ref not in declared:
            problems.append(f"output {key}: unknown resource '{ref}'")

    return problems
