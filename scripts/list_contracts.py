#!/usr/bin/python3
from itertools import groupby
from operator import attrgetter

import click

from deployment.options import output_dir_option
from deployment.params import resolve_artifacts_dir
from deployment.registry import read_artifacts


@click.command(name="list-contracts")
@output_dir_option
def cli(output_dir):
    """List the contracts recorded in a deployment artifacts directory."""
    output_dir = resolve_artifacts_dir(output_dir)
    entries = read_artifacts(directory=output_dir)
    if not entries:
        click.secho(f"No deployment artifacts in {output_dir}", fg="yellow")
        return

    network_key = attrgetter("network", "chain_id")
    # stable sort keeps deployment order within each network
    grouped_entries = groupby(sorted(entries, key=network_key), key=network_key)
    for (network, chain_id), network_entries in grouped_entries:
        click.secho(f"\n{network.capitalize()} (chain {chain_id})", fg="green")
        for index, entry in enumerate(network_entries, start=1):
            click.secho(f"    {index}. {entry.name} {entry.address}", fg="cyan")
            if entry.admins:
                click.secho(f"        admins: {', '.join(entry.admins)}", fg="cyan")
            if entry.explorer_url:
                click.secho(f"        {entry.explorer_url}", fg="cyan")


if __name__ == "__main__":
    cli()
