import json

import click
import pytest
from ape.utils import ZERO_ADDRESS
from eth_utils import is_checksum_address

from deployment.constants import (
    ADD_ADMIN_METHOD,
    AIRDROP,
    ENV_DEPLOYER_ADMIN,
    ENV_PRESALE_BENEFICIARY,
    ERC721_FACTORY,
    LAUNCHPAD_CONTRACTS,
    LAUNCHPAD_PARAMS_FILEPATH,
    PRESALE,
    PRESALES_FACTORY,
)
from deployment.exceptions import DeploymentConfigError, TransactionFailed
from deployment.factory import InMemoryContractFactory
from deployment.registry import get_artifact, read_artifacts
from scripts.deploy_launchpad import deploy_launchpad
from tests.conftest import ADMIN, BENEFICIARY


def _artifact_names(output_dir):
    return sorted(p.stem for p in output_dir.glob("*.json"))


def test_deploys_one_artifact_per_contract(make_deployer, contract_factory, output_dir):
    deployer = make_deployer(contract_factory)
    deployments = deployer.execute()

    assert list(deployments) == LAUNCHPAD_CONTRACTS
    assert _artifact_names(output_dir) == sorted(LAUNCHPAD_CONTRACTS)
    for entry in read_artifacts(output_dir):
        assert entry.address
        assert is_checksum_address(entry.address)
        assert entry.address == deployments[entry.name].address


def test_erc721_factory_wired_to_presale_and_airdrop(make_deployer, contract_factory, output_dir):
    make_deployer(contract_factory).execute()

    airdrop = get_artifact(output_dir, AIRDROP)
    presale = get_artifact(output_dir, PRESALE)
    erc721_factory = get_artifact(output_dir, ERC721_FACTORY)

    assert list(erc721_factory.constructor.values()) == [
        presale.address,
        airdrop.address,
        ZERO_ADDRESS,
    ]
    assert presale.constructor == {"_beneficiary": BENEFICIARY}
    assert airdrop.constructor == {}


def test_steps_run_in_dependency_order(make_deployer, contract_factory):
    deployments = make_deployer(contract_factory).execute()

    calls = [(method, name) for method, name, _ in contract_factory.calls]
    assert calls == [
        ("deploy", AIRDROP),
        (ADD_ADMIN_METHOD, AIRDROP),
        ("deploy", PRESALE),
        (ADD_ADMIN_METHOD, PRESALE),
        ("deploy", ERC721_FACTORY),
        ("deploy", PRESALES_FACTORY),
        (ADD_ADMIN_METHOD, PRESALE),
    ]

    presale = deployments[PRESALE]
    presales_factory = deployments[PRESALES_FACTORY]
    assert contract_factory.admins[presale.address] == [ADMIN, presales_factory.address]
    assert contract_factory.admins[deployments[AIRDROP].address] == [ADMIN]


def test_artifact_contents(make_deployer, contract_factory, output_dir):
    make_deployer(contract_factory).execute()

    with open(output_dir / f"{PRESALE}.json") as file:
        data = json.load(file)

    assert data["name"] == PRESALE
    assert data["network"] == "hardhat"
    assert data["chain_id"] == contract_factory.chain_id
    assert data["deployer"] == contract_factory.deployer_address
    assert data["tx_hash"].startswith("0x")
    assert data["block_number"] > 0
    # the factory grant happens after the artifact is written
    assert data["admins"] == [ADMIN]


def test_airdrop_failure_short_circuits(make_deployer, output_dir):
    contract_factory = InMemoryContractFactory(fail_on={("deploy", AIRDROP)})
    deployer = make_deployer(contract_factory)

    with pytest.raises(TransactionFailed, match="Airdrop.deploy failed"):
        deployer.execute()

    assert output_dir.is_dir()
    assert _artifact_names(output_dir) == []
    assert [name for _, name, _ in contract_factory.calls] == [AIRDROP]
    assert deployer.progress_report() == [f"{name} (not deployed)" for name in LAUNCHPAD_CONTRACTS]


def test_failed_admin_grant_leaves_contract_unpersisted(make_deployer, output_dir):
    contract_factory = InMemoryContractFactory(fail_on={(ADD_ADMIN_METHOD, PRESALE)})
    deployer = make_deployer(contract_factory)

    with pytest.raises(TransactionFailed):
        deployer.execute()

    assert _artifact_names(output_dir) == [AIRDROP]
    assert list(deployer.deployments) == [AIRDROP, PRESALE]

    presale = deployer.deployments[PRESALE]
    report = deployer.progress_report()
    assert f"{PRESALE} {presale.address} (deployed but not provisioned)" in report
    assert f"{ERC721_FACTORY} (not deployed)" in report
    assert f"{PRESALES_FACTORY} (not deployed)" in report


def test_existing_output_directory_is_kept(make_deployer, contract_factory, output_dir):
    output_dir.mkdir()
    notes = output_dir / "notes.txt"
    notes.write_text("previous run")
    stale = output_dir / f"{AIRDROP}.json"
    stale.write_text("{}")

    deployments = make_deployer(contract_factory).execute()

    assert notes.read_text() == "previous run"
    assert get_artifact(output_dir, AIRDROP).address == deployments[AIRDROP].address


def test_repeated_runs_deploy_fresh_contracts(make_deployer, contract_factory, output_dir):
    first = make_deployer(contract_factory).execute()
    first_artifacts = {e.name: e.address for e in read_artifacts(output_dir)}

    second = make_deployer(contract_factory).execute()
    second_artifacts = {e.name: e.address for e in read_artifacts(output_dir)}

    for name in LAUNCHPAD_CONTRACTS:
        assert first[name].address != second[name].address
        assert first_artifacts[name] != second_artifacts[name]
        assert second_artifacts[name] == second[name].address


def test_missing_environment_fails_before_any_transaction(
    make_deployer, contract_factory, output_dir
):
    environ = {ENV_DEPLOYER_ADMIN: ADMIN}
    with pytest.raises(DeploymentConfigError, match=ENV_PRESALE_BENEFICIARY):
        make_deployer(contract_factory, environ=environ)

    assert contract_factory.calls == []
    assert not output_dir.exists()


def test_single_contract_deployment(make_deployer, contract_factory, output_dir):
    deployer = make_deployer(contract_factory)
    airdrop = deployer.deploy(AIRDROP)

    assert _artifact_names(output_dir) == [AIRDROP]
    assert contract_factory.admins[airdrop.address] == [ADMIN]


def test_finalize_publishes_when_verifying(make_deployer, contract_factory):
    deployer = make_deployer(contract_factory, verify=True)
    deployments = deployer.execute()
    deployer.finalize()

    assert contract_factory.published == [c.address for c in deployments.values()]


def test_finalize_skips_publishing_by_default(make_deployer, contract_factory):
    deployer = make_deployer(contract_factory)
    deployer.execute()
    deployer.finalize()

    assert contract_factory.published == []


def test_command_reports_failure_with_exit_status(monkeypatch, profile, output_dir, capsys):
    monkeypatch.setenv(ENV_DEPLOYER_ADMIN, ADMIN)
    monkeypatch.setenv(ENV_PRESALE_BENEFICIARY, BENEFICIARY)
    contract_factory = InMemoryContractFactory(fail_on={("deploy", ERC721_FACTORY)})

    with pytest.raises(click.ClickException) as error:
        deploy_launchpad(
            factory=contract_factory,
            profile=profile,
            params_filepath=LAUNCHPAD_PARAMS_FILEPATH,
            output_dir=output_dir,
            autosign=True,
        )

    assert error.value.exit_code == 1
    output = capsys.readouterr().out
    assert "Deployment failed: ERC721Factory.deploy failed" in output
    assert f"{ERC721_FACTORY} (not deployed)" in output
    assert _artifact_names(output_dir) == sorted([AIRDROP, PRESALE])


def test_command_succeeds(monkeypatch, profile, output_dir):
    monkeypatch.setenv(ENV_DEPLOYER_ADMIN, ADMIN)
    monkeypatch.setenv(ENV_PRESALE_BENEFICIARY, BENEFICIARY)

    deployer = deploy_launchpad(
        factory=InMemoryContractFactory(),
        profile=profile,
        params_filepath=LAUNCHPAD_PARAMS_FILEPATH,
        output_dir=output_dir,
        autosign=True,
    )

    assert sorted(p.stem for p in deployer.artifacts) == sorted(LAUNCHPAD_CONTRACTS)
