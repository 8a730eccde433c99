# main.py
import os

import pulumi
from azurenative import AzureResourceBuilder
from config import TEMPLATE_ENV, load_config


def main():
    template_path = os.getenv(TEMPLATE_ENV) or pulumi.Config().get("template") or "config.yaml"
    config_data = load_config(template_path)

    try:
        builder = AzureResourceBuilder(config_data)
    except Exception as e:
        pulumi.log.error(f"Failed to read template '{template_path}': {e}")
        raise

    try:
        builder.build()
    except Exception as e:
        pulumi.log.error(f"Failed during resource build: {e}")
        raise

    # Declared outputs feed the AZURE_* / AZUREML_* values the scripts read
    for name, value in builder.config.outputs.items():
        try:
            pulumi.export(name, builder.resolve_args(value))
        except Exception as e:
            pulumi.log.warn(f"Failed to export output '{name}': {e}")


if __name__ == "__main__":
    main()
