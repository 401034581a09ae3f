import pytest

from deployment.constants import (
    ENV_DEPLOYER_ADMIN,
    ENV_PRESALE_BENEFICIARY,
    HARDHAT,
    LAUNCHPAD_PARAMS_FILEPATH,
)
from deployment.factory import InMemoryContractFactory
from deployment.networks import get_network_profile
from deployment.params import Deployer
from deployment.utils import _load_yaml

# Common constants
ADMIN = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"
BENEFICIARY = "0xAb8483F64d9C6d1EcF9b849Ae677dD3315835cb2"


# Fixtures
@pytest.fixture
def environ():
    return {ENV_DEPLOYER_ADMIN: ADMIN, ENV_PRESALE_BENEFICIARY: BENEFICIARY}


@pytest.fixture
def launchpad_config():
    return _load_yaml(LAUNCHPAD_PARAMS_FILEPATH)


@pytest.fixture
def profile():
    return get_network_profile(HARDHAT, environ={})


@pytest.fixture
def contract_factory():
    return InMemoryContractFactory()


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "deploy"


@pytest.fixture
def make_deployer(launchpad_config, profile, output_dir, environ):
    def _make_deployer(contract_factory, **kwargs):
        params = dict(
            config=launchpad_config,
            path=LAUNCHPAD_PARAMS_FILEPATH,
            factory=contract_factory,
            profile=profile,
            output_dir=output_dir,
            autosign=True,
            environ=environ,
        )
        params.update(kwargs)
        return Deployer(**params)

    return _make_deployer
