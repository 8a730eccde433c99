"""Shared fixtures: a small template and a clean deployment environment."""

import pytest

from environment import ENV_KEYS


def make_template(environment: str = "test", **overrides) -> dict:
    """Minimal template covering the five exported values."""
    template = {
        "team": "ml",
        "service": "secure",
        "environment": environment,
        "location": "eastus",
        "tags": {"workload": "azureml"},
        "azure_resources": [
            {"name": "rg", "type": "resources.ResourceGroup"},
            {
                "name": "vnet",
                "type": "network.VirtualNetwork",
                "args": {
                    "resource_group_name": "ref:rg.name",
                    "address_space": {"address_prefixes": ["10.0.0.0/16"]},
                },
            },
            {
                "name": "subnet",
                "type": "network.Subnet",
                "args": {
                    "resource_group_name": "ref:rg.name",
                    "virtual_network_name": "ref:vnet.name",
                    "address_prefix": "10.0.1.0/24",
                },
            },
            {
                "name": "storage",
                "type": "storage.StorageAccount",
                "args": {
                    "resource_group_name": "ref:rg.name",
                    "kind": "StorageV2",
                    "sku": {"name": "Standard_LRS"},
                },
            },
            {
                "name": "mlw",
                "type": "machinelearningservices.Workspace",
                "depends_on": ["subnet"],
                "args": {
                    "resource_group_name": "ref:rg.name",
                    "storage_account": "ref:storage.id",
                    "identity": {"type": "SystemAssigned"},
                },
            },
            {
                "name": "ci",
                "type": "machinelearningservices.Compute",
                "args": {
                    "resource_group_name": "ref:rg.name",
                    "workspace_name": "ref:mlw.name",
                    "properties": {"computeType": "ComputeInstance"},
                },
            },
        ],
        "outputs": {
            "AZURE_RESOURCE_GROUP": "ref:rg.name",
            "AZUREML_WORKSPACE_ID": "ref:mlw.id",
            "AZUREML_WORKSPACE_NAME": "ref:mlw.name",
            "AZUREML_COMPUTE_INSTANCE_NAME": "ref:ci.name",
            "AZURE_STORAGE_ACCOUNT_ID": "ref:storage.id",
        },
    }
    template.update(overrides)
    return template


@pytest.fixture
def template() -> dict:
    return make_template()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No deployment settings in the process and no .env in the working directory."""
    for key in ENV_KEYS.values():
        # setenv first so that values loaded from a .env during the test are undone
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path
