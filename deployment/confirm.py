import sys
from collections import OrderedDict
from typing import Iterable, List

import click
from ape.utils import ZERO_ADDRESS


def _abort() -> None:
    click.secho("Aborting deployment!", fg="red")
    sys.exit(-1)


def _ask(question: str) -> None:
    if not click.confirm(question, default=True):
        _abort()


def _confirm_deployment(contract_name: str) -> None:
    """Asks the user to confirm the deployment of a single contract."""
    _ask(f"Deploy {contract_name}?")


def _continue() -> None:
    _ask("Continue?")


def _unexpected_zero_addresses(
    resolved_params: OrderedDict, placeholders: Iterable[str]
) -> List[str]:
    """Names of parameters that resolved to the zero address without being written as one."""
    placeholders = set(placeholders)
    return [
        name
        for name, value in resolved_params.items()
        if value == ZERO_ADDRESS and name not in placeholders
    ]


def _confirm_resolution(
    resolved_params: OrderedDict, contract_name: str, placeholders: Iterable[str] = ()
) -> None:
    """
    Shows the resolved constructor parameters of a contract and asks for confirmation.
    Parameters written as $ZERO_ADDRESS are expected to be zero; any other parameter
    resolving to the zero address needs a second confirmation.
    """
    placeholders = set(placeholders)
    if not resolved_params:
        print(f"\n(i) No constructor parameters for {contract_name}")
        _confirm_deployment(contract_name)
        return

    print(f"\nConstructor parameters for {contract_name}")
    for name, resolved_value in resolved_params.items():
        note = " (placeholder)" if name in placeholders else ""
        print(f"\t{name}={resolved_value}{note}")
    _confirm_deployment(contract_name)

    zero_params = _unexpected_zero_addresses(resolved_params, placeholders)
    if zero_params:
        click.secho(
            f"WARNING: {', '.join(zero_params)} resolved to the zero address.", fg="yellow"
        )
        _ask("Deploy with the zero address anyway?")
