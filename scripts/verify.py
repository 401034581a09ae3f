#!/usr/bin/python3
import click
from ape import networks

from deployment.chain import verify_contracts
from deployment.networks import get_network_profile, load_environment
from deployment.options import env_file_option, network_profile_option, output_dir_option
from deployment.params import resolve_artifacts_dir
from deployment.registry import get_artifact, read_artifacts
from deployment.utils import check_etherscan_plugin


@click.command(name="verify")
@network_profile_option
@output_dir_option
@env_file_option
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify; all artifacts when omitted",
    type=click.STRING,
    multiple=True,
)
def cli(network_profile, output_dir, env_file, contract_names):
    """Verify deployed contracts on the network's block explorer."""
    load_environment(path=env_file)
    profile = get_network_profile(network_profile)
    check_etherscan_plugin(profile)
    output_dir = resolve_artifacts_dir(output_dir)

    if contract_names:
        entries = [get_artifact(output_dir, name) for name in contract_names]
    else:
        entries = read_artifacts(output_dir)

    for entry in entries:
        if entry.chain_id != profile.chain_id:
            raise click.BadParameter(
                f"{entry.name} was deployed on chain {entry.chain_id}, "
                f"not on {profile.name} ({profile.chain_id})"
            )

    with networks.parse_network_choice(profile.network_choice):
        for entry in entries:
            print(f"(i) Verifying {entry.name}...")
            verify_contracts([entry.address])


if __name__ == "__main__":
    cli()
