import pulumi
import pulumi_azure_native as azure_native
import inspect
import re
from typing import Any, Dict, Optional, Tuple

from config import CLIENT_PREFIX, REF_PREFIX, Config, parse_config, split_ref

AZURE_LOCATION_ABBREVIATIONS = {
    "eastus": "eus",
    "eastus2": "eus2",
    "westus2": "wus2",
    "westus3": "wus3",
    "centralus": "cus",
    "southcentralus": "scus",
    "canadacentral": "ccc",
    "northeurope": "ne",
    "westeurope": "we",
    "uksouth": "uks",
    "francecentral": "frc",
    "germanywestcentral": "gwc",
    "swedencentral": "swc",
    "switzerlandnorth": "swn",
    "australiaeast": "aue",
    "japaneast": "jpe",
    "koreacentral": "kc",
    "southeastasia": "sea",
    "centralindia": "ci",
}

# "module.Class" -> (argument carrying the Azure name, max length, alphanumeric only)
NAME_RULES = {
    "resources.ResourceGroup": ("resource_group_name", 90, False),
    "network.VirtualNetwork": ("virtual_network_name", 64, False),
    "network.Subnet": ("subnet_name", 80, False),
    "network.PublicIPAddress": ("public_ip_address_name", 80, False),
    "network.VirtualNetworkGateway": ("virtual_network_gateway_name", 80, False),
    "storage.StorageAccount": ("account_name", 24, True),
    "containerregistry.Registry": ("registry_name", 50, True),
    "keyvault.Vault": ("vault_name", 24, False),
    "operationalinsights.Workspace": ("workspace_name", 63, False),
    "insights.Component": ("resource_name_", 255, False),
    "machinelearningservices.Workspace": ("workspace_name", 33, False),
    "machinelearningservices.Compute": ("compute_name", 24, False),
}


def to_snake_case(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", "_", name).lower()


def rule_key(resource_type: str) -> str:
    """Drop API version segments: 'machinelearningservices.v20240401.Workspace' -> 'machinelearningservices.Workspace'."""
    parts = resource_type.split(".")
    return f"{parts[0]}.{parts[-1]}"


class AzureResourceBuilder:
    def __init__(self, config_data: dict):
        self.config: Config = parse_config(config_data)
        self.resources: Dict[str, Any] = {}
        self._client_config = None

    def get_abbreviation(self, location: str) -> str:
        # Unknown regions fall back to their first three letters
        return AZURE_LOCATION_ABBREVIATIONS.get(location.lower(), location[:3].lower())

    def generate_resource_name(self, base_name: str) -> str:
        loc_abbr = self.get_abbreviation(self.config.location)
        parts = [self.config.team, self.config.service, self.config.environment, loc_abbr, base_name]
        return "-".join(parts).lower()

    def physical_name(self, resource_type: str, base_name: str) -> str:
        name = self.generate_resource_name(base_name)
        rule = NAME_RULES.get(rule_key(resource_type))
        if rule is None:
            return name
        _, max_length, compact = rule
        if compact:
            name = re.sub(r"[^a-z0-9]", "", name)
        return name[:max_length].rstrip("-")

    def client_config(self):
        if self._client_config is None:
            self._client_config = azure_native.authorization.get_client_config_output()
        return self._client_config

    def resolve_value(self, value: str) -> Any:
        if value.startswith(CLIENT_PREFIX):
            return getattr(self.client_config(), value[len(CLIENT_PREFIX):])

        ref_res, ref_attr = split_ref(value)
        if ref_res not in self.resources:
            raise ValueError(f"Referenced resource '{ref_res}' not found.")

        attr_val = getattr(self.resources[ref_res], ref_attr, None)
        if attr_val is None:
            raise ValueError(f"Attribute '{ref_attr}' not found on resource '{ref_res}'")
        return attr_val

    def resolve_args(self, args: Any) -> Any:
        if isinstance(args, dict):
            return {key: self.resolve_args(value) for key, value in args.items()}
        if isinstance(args, list):
            return [self.resolve_args(item) for item in args]
        if isinstance(args, str) and args.startswith((REF_PREFIX, CLIENT_PREFIX)):
            return self.resolve_value(args)
        return args

    def resolve_type(self, resource_type: str) -> Optional[Tuple[Any, str]]:
        *module_path, class_name = resource_type.split(".")
        module = azure_native
        for part in module_path:
            module = getattr(module, part, None)
            if module is None:
                pulumi.log.warn(f"Azure module '{'.'.join(module_path)}' not found.")
                return None
        if not hasattr(module, class_name):
            pulumi.log.warn(f"Resource class '{class_name}' not found in module '{'.'.join(module_path)}'.")
            return None
        return module, class_name

    def accepted_args(self, module: Any, class_name: str) -> set:
        # Resource initializers are overloaded (*args, **kwargs); the args class lists the real inputs.
        # Where a nested input type already owns "<Class>Args" the resource uses "<Class>InitArgs".
        args_cls = getattr(module, f"{class_name}InitArgs", None) or getattr(module, f"{class_name}Args", None)
        if args_cls is None:
            params = inspect.signature(getattr(module, class_name).__init__).parameters
            return {name for name in params if name not in ("self", "__self__", "resource_name", "opts")}

        params = {name for name in inspect.signature(args_cls.__init__).parameters if name != "__self__"}
        if "resource_name" in params:
            # Renamed on the resource so it does not clash with the logical name
            params = (params - {"resource_name"}) | {"resource_name_"}
        return params

    def lookup_existing(self, module: Any, class_name: str, name: str, resolved_args: dict):
        get_func_name = f"get_{to_snake_case(class_name)}_output"
        get_func = getattr(module, get_func_name, None)
        if get_func is None:
            pulumi.log.warn(f"Function '{get_func_name}' not found. Creating '{name}' instead.")
            return None

        params = set(inspect.signature(get_func).parameters) - {"opts"}
        # Every lookup parameter defaults to None; the *_name ones identify the resource
        required = {p for p in params if p.endswith("_name")}
        get_params = {k: v for k, v in resolved_args.items() if k in params}
        missing = required - set(get_params)
        if missing:
            pulumi.log.warn(
                f"Missing required params {sorted(missing)} for existing resource '{name}'. "
                f"Creating it instead."
            )
            return None

        pulumi.log.info(f"Looking up existing resource '{name}' via '{get_func_name}'")
        return get_func(**get_params)

    def build(self):
        for resource in self.config.azure_resources:
            resolved = self.resolve_type(resource.type)
            if resolved is None:
                pulumi.log.warn(f"Skipping '{resource.name}' ({resource.type}).")
                continue
            module, class_name = resolved
            resolved_args = self.resolve_args(resource.args)

            if resource.existing:
                found = self.lookup_existing(module, class_name, resource.name, resolved_args)
                if found is not None:
                    self.resources[resource.name] = found
                    continue

            accepted = self.accepted_args(module, class_name)

            rule = NAME_RULES.get(rule_key(resource.type))
            if rule and rule[0] in accepted:
                resolved_args.setdefault(rule[0], self.physical_name(resource.type, resource.name))

            if "location" in accepted:
                resolved_args.setdefault("location", self.config.location)
            else:
                resolved_args.pop("location", None)

            if "tags" in accepted:
                if self.config.tags:
                    resolved_args.setdefault("tags", self.config.tags)
            else:
                resolved_args.pop("tags", None)

            depends_on = []
            for dep in resource.depends_on:
                dependency = self.resources.get(dep)
                if isinstance(dependency, pulumi.Resource):
                    depends_on.append(dependency)
                else:
                    pulumi.log.warn(
                        f"Ignoring depends_on '{dep}' for '{resource.name}': it is not a managed resource."
                    )
            opts = pulumi.ResourceOptions(depends_on=depends_on) if depends_on else None

            pulumi_name = self.generate_resource_name(resource.name)
            ResourceClass = getattr(module, class_name)
            self.resources[resource.name] = ResourceClass(pulumi_name, opts=opts, **resolved_args)
            pulumi.log.info(f"Declared resource: {pulumi_name} ({resource.type})")

        return self.resources

    def outputs(self) -> Dict[str, Any]:
        return {key: self.resolve_args(value) for key, value in self.config.outputs.items()}
