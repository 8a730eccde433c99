"""
Toggle public network access on the Azure ML workspace.

Both directions first provision the workspace managed network and then flip
``public_network_access``. Run as a console script:

    workspace-disable-public-access --source stack --stack dev
    workspace-enable-public-access
"""

import argparse
import sys
from typing import List, Optional

from loguru import logger

from azcli import CommandError, provision_network, update_public_network_access
from environment import SOURCES, DeploymentEnvironment, MissingSettingsError, read_environment


def set_public_network_access(env: DeploymentEnvironment, enabled: bool) -> None:
    state = "Enabled" if enabled else "Disabled"

    logger.info("Provisioning managed network for workspace {}...", env.workspace_name)
    provision_network(env)

    logger.info("Setting public network access to {} on workspace {}...", state, env.workspace_name)
    update_public_network_access(env, enabled)

    logger.success("Public network access is now {} for {}", state, env.workspace_name)


def build_parser(enabled: bool) -> argparse.ArgumentParser:
    action = "Enable" if enabled else "Disable"
    parser = argparse.ArgumentParser(
        description=f"{action} public network access on the Azure ML workspace."
    )
    parser.add_argument(
        "--source",
        choices=SOURCES,
        default="env",
        help="Where to read workspace settings: environment/.env (default) or Pulumi stack outputs.",
    )
    parser.add_argument(
        "--stack",
        type=str,
        default=None,
        help="Pulumi stack to read outputs from (with --source stack).",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Path to a .env file (default: ./.env).",
    )
    return parser


def exit_with_tool_status(error: CommandError) -> None:
    # Surface the tool's own message and status
    if error.result.output:
        print(error.result.output, file=sys.stderr)
    sys.exit(error.returncode)


def main(argv: Optional[List[str]] = None, enabled: bool = False) -> None:
    args = build_parser(enabled).parse_args(argv)

    try:
        env = read_environment(source=args.source, stack=args.stack, env_file=args.env_file)
    except MissingSettingsError as e:
        logger.error(str(e))
        sys.exit(1)
    except CommandError as e:
        exit_with_tool_status(e)

    try:
        set_public_network_access(env, enabled)
    except CommandError as e:
        exit_with_tool_status(e)


def disable_main() -> None:
    main(enabled=False)


def enable_main() -> None:
    main(enabled=True)


if __name__ == "__main__":
    disable_main()
