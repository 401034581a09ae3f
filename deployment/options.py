from pathlib import Path

import click

from deployment.constants import SUPPORTED_NETWORK_PROFILES

network_profile_option = click.option(
    "--network-profile",
    "-n",
    help="Network profile to deploy to.",
    type=click.Choice(SUPPORTED_NETWORK_PROFILES),
    required=True,
)

output_dir_option = click.option(
    "--output-dir",
    "-o",
    help="Directory holding the deployment artifacts "
    "(default: artifacts.dir of the deployment parameters).",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
)

env_file_option = click.option(
    "--env-file",
    "-e",
    help="A .env file to load before reading the network profile.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation.",
    is_flag=True,
    default=False,
)
