#!/usr/bin/python3
from collections import OrderedDict

import click
from ape import networks
from ape.cli import account_option

from deployment.chain import ApeContractFactory
from deployment.constants import ADD_ADMIN_METHOD, LAUNCHPAD_CONTRACTS
from deployment.factory import DeployedContract
from deployment.networks import get_network_profile, load_environment
from deployment.options import (
    autosign_option,
    env_file_option,
    network_profile_option,
    output_dir_option,
)
from deployment.params import Transactor, resolve_artifacts_dir
from deployment.registry import deployment_from_artifact, get_artifact
from deployment.types import ChecksumAddress


@click.command(name="add-admin")
@network_profile_option
@output_dir_option
@env_file_option
@autosign_option
@account_option()
@click.option(
    "--contract-name",
    "-c",
    help="Launchpad contract to grant the admin role on.",
    type=click.Choice(LAUNCHPAD_CONTRACTS),
    required=True,
)
@click.option(
    "--contract-address",
    help="Address of the contract when it has no artifact (deployed but not provisioned).",
    type=ChecksumAddress(),
    required=False,
)
@click.option(
    "--admin",
    "-a",
    help="The address receiving the admin role.",
    type=ChecksumAddress(),
    required=True,
)
def cli(
    network_profile, output_dir, env_file, autosign, account, contract_name, contract_address, admin
):
    """Grant the admin role on a deployed launchpad contract."""
    load_environment(path=env_file)
    profile = get_network_profile(network_profile).validate()

    if contract_address:
        contract = DeployedContract(
            name=contract_name,
            address=contract_address,
            constructor_args=OrderedDict(),
            receipt=None,
            abi=list(),
        )
    else:
        artifact = get_artifact(resolve_artifacts_dir(output_dir), contract_name)
        contract = deployment_from_artifact(artifact)

    with networks.parse_network_choice(profile.network_choice):
        factory = ApeContractFactory(account=account, profile=profile)
        transactor = Transactor(factory=factory, autosign=autosign)
        transactor.transact(contract, ADD_ADMIN_METHOD, admin)


if __name__ == "__main__":
    cli()
