import json
from collections import OrderedDict
from pathlib import Path

import pytest
from click.testing import CliRunner

from deployment.constants import LOCAL
from deployment.exceptions import DeploymentConfigError
from deployment.factory import InMemoryContractFactory
from deployment.networks import get_network_profile
from deployment.registry import (
    artifact_from_deployment,
    deployment_from_artifact,
    get_artifact,
    read_artifacts,
    write_artifact,
)
from scripts.list_contracts import cli as list_contracts
from tests.conftest import ADMIN, BENEFICIARY


@pytest.fixture
def presale(contract_factory):
    return contract_factory.deploy("Presale", OrderedDict(_beneficiary=BENEFICIARY))


def test_write_artifact(presale, profile, output_dir):
    entry = artifact_from_deployment(presale, profile=profile, admins=[ADMIN])
    filepath = write_artifact(entry, directory=output_dir)

    assert filepath == output_dir / "Presale.json"
    with open(filepath) as file:
        data = json.load(file)
    assert data["address"] == presale.address
    assert data["constructor"] == {"_beneficiary": BENEFICIARY}
    assert data["admins"] == [ADMIN]
    assert data["tx_hash"] == presale.receipt.tx_hash

    assert get_artifact(output_dir, "Presale") == entry


def test_read_artifacts_in_deployment_order(contract_factory, profile, output_dir):
    for name in ("Zeta", "Alpha", "Mu"):
        contract = contract_factory.deploy(name, OrderedDict())
        write_artifact(artifact_from_deployment(contract, profile=profile), directory=output_dir)
    (output_dir / "package.json").write_text(json.dumps({"name": "frontend"}))
    (output_dir / "broken.json").write_text("{")
    (output_dir / "package-lock.json").write_text(json.dumps(["frontend"]))
    stray = json.loads((output_dir / "Mu.json").read_text())
    stray.update(name="Stray", chain_id="mainnet")
    (output_dir / "Stray.json").write_text(json.dumps(stray))

    entries = read_artifacts(output_dir)
    assert [entry.name for entry in entries] == ["Zeta", "Alpha", "Mu"]


def test_missing_artifacts(output_dir):
    with pytest.raises(DeploymentConfigError, match="No deployment artifacts"):
        read_artifacts(output_dir)

    output_dir.mkdir()
    with pytest.raises(DeploymentConfigError, match="No artifact for Airdrop"):
        get_artifact(output_dir, "Airdrop")


def test_deployment_from_artifact(presale, profile, output_dir):
    write_artifact(artifact_from_deployment(presale, profile=profile), directory=output_dir)
    contract = deployment_from_artifact(get_artifact(output_dir, "Presale"))

    assert contract.name == "Presale"
    assert contract.address == presale.address
    assert contract.receipt == presale.receipt
    assert contract.instance is None


def test_list_contracts(make_deployer, output_dir):
    deployments = make_deployer(InMemoryContractFactory()).execute()

    result = CliRunner().invoke(list_contracts, ["--output-dir", str(output_dir)])

    assert result.exit_code == 0, result.output
    assert "Hardhat (chain 1337)" in result.output
    for index, (name, contract) in enumerate(deployments.items(), start=1):
        assert f"{index}. {name} {contract.address}" in result.output


@pytest.mark.parametrize(
    "data, message",
    [
        (["Airdrop"], "not a JSON object"),
        ({"name": "Airdrop"}, "missing 'address'"),
    ],
)
def test_malformed_artifact(data, message, output_dir):
    output_dir.mkdir()
    (output_dir / "Airdrop.json").write_text(json.dumps(data))

    with pytest.raises(DeploymentConfigError, match=message):
        get_artifact(output_dir, "Airdrop")


def test_list_contracts_groups_networks(contract_factory, profile, output_dir):
    local_profile = get_network_profile(LOCAL, environ={})
    deployments = [("Alpha", profile), ("Beta", local_profile), ("Gamma", profile)]
    for name, network_profile in deployments:
        contract = contract_factory.deploy(name, OrderedDict())
        entry = artifact_from_deployment(contract, profile=network_profile)
        write_artifact(entry, directory=output_dir)

    result = CliRunner().invoke(list_contracts, ["--output-dir", str(output_dir)])

    assert result.exit_code == 0, result.output
    assert result.output.count("Hardhat (chain 1337)") == 1
    assert result.output.count("Local (chain 1337)") == 1
    hardhat_section = result.output.split("Hardhat (chain 1337)")[1].split("Local")[0]
    assert "1. Alpha" in hardhat_section
    assert "2. Gamma" in hardhat_section


def test_list_contracts_defaults_to_configured_artifacts_dir(
    make_deployer, contract_factory, tmp_path, monkeypatch
):
    monkeypatch.chdir(tmp_path)
    deployer = make_deployer(contract_factory, output_dir=None)
    assert deployer.output_dir == Path("deploy")
    deployments = deployer.execute()

    result = CliRunner().invoke(list_contracts, [])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "deploy" / "Airdrop.json").exists()
    for name, contract in deployments.items():
        assert f"{name} {contract.address}" in result.output
