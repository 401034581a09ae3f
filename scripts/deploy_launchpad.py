#!/usr/bin/python3
from pathlib import Path

import click
from ape import networks
from ape.cli import account_option

from deployment.chain import ApeContractFactory
from deployment.constants import LAUNCHPAD_PARAMS_FILEPATH
from deployment.factory import ContractFactory
from deployment.networks import NetworkProfile, get_network_profile, load_environment
from deployment.options import (
    autosign_option,
    env_file_option,
    network_profile_option,
    output_dir_option,
)
from deployment.params import Deployer

VERIFY = False


def _report_failure(deployer, error: Exception) -> None:
    click.secho(f"\nDeployment failed: {error}", fg="red")
    if deployer is None:
        return
    click.secho("State left on chain (nothing is rolled back):", fg="yellow")
    for line in deployer.progress_report():
        click.secho(f"\t{line}", fg="yellow")


def deploy_launchpad(
    factory: ContractFactory,
    profile: NetworkProfile,
    params_filepath: Path,
    output_dir: Path,
    verify: bool = VERIFY,
    autosign: bool = False,
) -> Deployer:
    """Runs the whole deployment; any failure is reported and ends the command with status 1."""
    deployer = None
    try:
        deployer = Deployer.from_yaml(
            filepath=params_filepath,
            factory=factory,
            profile=profile,
            output_dir=output_dir,
            verify=verify,
            autosign=autosign,
        )
        deployer.execute()
        deployer.finalize()
    except Exception as e:
        _report_failure(deployer, e)
        raise click.ClickException(str(e)) from e

    for filepath in deployer.artifacts:
        click.secho(f"(i) Artifact written to {filepath}", fg="green")
    return deployer


@click.command(name="deploy-launchpad")
@network_profile_option
@click.option(
    "--constructor-params-filepath",
    "-f",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="Deployment parameters filepath",
    default=LAUNCHPAD_PARAMS_FILEPATH,
    show_default=True,
)
@output_dir_option
@env_file_option
@autosign_option
@click.option(
    "--verify/--no-verify",
    help="Publish the deployed contracts to the block explorer.",
    default=VERIFY,
)
@account_option()
def cli(network_profile, constructor_params_filepath, output_dir, env_file, autosign, verify, account):
    """
    Deploys Airdrop, Presale, ERC721Factory and PresalesFactory in order,
    grants the admin roles and writes one artifact per contract.
    """
    load_environment(path=env_file)
    profile = get_network_profile(network_profile).validate()

    with networks.parse_network_choice(profile.network_choice):
        factory = ApeContractFactory(account=account, profile=profile)
        deploy_launchpad(
            factory=factory,
            profile=profile,
            params_filepath=constructor_params_filepath,
            output_dir=output_dir,
            verify=verify,
            autosign=autosign,
        )


if __name__ == "__main__":
    cli()
