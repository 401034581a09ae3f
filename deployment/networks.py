import os
from pathlib import Path
from typing import Dict, Mapping, NamedTuple, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from deployment.constants import (
    BSC,
    BSC_RPC_URL,
    BSC_TESTNET,
    BSC_TESTNET_RPC_URL,
    ENV_DEPLOY_PRIVATE_KEY,
    ENV_EXPLORER_API_KEY,
    ENV_GOERLI_PRIVATE_KEY,
    GOERLI,
    HARDHAT,
    HARDHAT_BLOCK_GAS_LIMIT,
    LOCAL,
    LOCAL_DEV_PRIVATE_KEY,
    LOCAL_NETWORK_PROFILES,
    LOCAL_RPC_URL,
    MAINNET,
    SEPOLIA,
    SUPPORTED_NETWORK_PROFILES,
)
from deployment.exceptions import NetworkConfigurationError

# provider choice for ape's in-process test chain
APE_TEST_NETWORK_CHOICE = "ethereum:local:test"


class NetworkProfile(NamedTuple):
    """Connection and signing settings for a single network."""

    name: str
    chain_id: int
    rpc_url: Optional[str]
    explorer_api_url: Optional[str]
    explorer_browser_url: Optional[str]
    explorer_api_key: Optional[str]
    accounts: Tuple[Optional[str], ...]
    block_gas_limit: Optional[int] = None
    ape_network: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.name in LOCAL_NETWORK_PROFILES

    @property
    def network_choice(self) -> str:
        """The ape network choice used to connect a provider for this profile."""
        if self.name == HARDHAT:
            return APE_TEST_NETWORK_CHOICE
        if self.ape_network:
            return f"{self.ape_network}:{self.rpc_url}"
        return self.rpc_url

    def explorer_link(self, address: str) -> Optional[str]:
        if not self.explorer_browser_url:
            return None
        return f"{self.explorer_browser_url.rstrip('/')}/address/{address}"

    def validate(self) -> "NetworkProfile":
        """
        Checks that a live profile carries everything needed to reach the chain
        and sign transactions, before any transaction is attempted.
        """
        if self.name == HARDHAT:
            return self  # in-process chain with its own test accounts

        missing = list()
        if not self.rpc_url:
            missing.append("RPC URL")
        if not any(self.accounts):
            missing.append("signing credential")
        if missing:
            raise NetworkConfigurationError(
                f"Network profile '{self.name}' is missing: {', '.join(missing)}. "
                f"Check the environment variables for this network."
            )
        return self


def load_environment(path: Optional[Path] = None) -> Optional[Path]:
    """
    Loads a .env file into the process environment without overriding
    variables that are already set. Returns the loaded path, if any.
    """
    dotenv_path = str(path) if path else find_dotenv(usecwd=True)
    if not dotenv_path:
        return None
    load_dotenv(dotenv_path=dotenv_path, override=False)
    return Path(dotenv_path)


def _get(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    return value or None


def load_network_profiles(environ: Optional[Mapping[str, str]] = None) -> Dict[str, NetworkProfile]:
    """Builds the network profile table from the environment."""
    environ = os.environ if environ is None else environ
    api_key = _get(environ, ENV_EXPLORER_API_KEY)
    deploy_key = _get(environ, ENV_DEPLOY_PRIVATE_KEY)

    profiles = [
        NetworkProfile(
            name=HARDHAT,
            chain_id=1337,
            rpc_url=None,
            explorer_api_url=None,
            explorer_browser_url=None,
            explorer_api_key=None,
            accounts=(),
            block_gas_limit=HARDHAT_BLOCK_GAS_LIMIT,
        ),
        NetworkProfile(
            name=GOERLI,
            chain_id=5,
            rpc_url=_get(environ, "CONFIG_URL_GOERLI"),
            explorer_api_url=_get(environ, "CONFIG_API_URL_GOERLI"),
            explorer_browser_url=_get(environ, "CONFIG_BROWSER_URL_GOERLI"),
            explorer_api_key=api_key,
            accounts=(_get(environ, ENV_GOERLI_PRIVATE_KEY),),
        ),
        NetworkProfile(
            name=SEPOLIA,
            chain_id=11155111,
            rpc_url=_get(environ, "CONFIG_URL_SEPOLIA"),
            explorer_api_url=_get(environ, "CONFIG_API_URL_SEPOLIA"),
            explorer_browser_url=_get(environ, "CONFIG_BROWSER_URL_SEPOLIA"),
            explorer_api_key=api_key,
            accounts=(deploy_key,),
            ape_network="ethereum:sepolia",
        ),
        NetworkProfile(
            name=MAINNET,
            chain_id=1,
            rpc_url=_get(environ, "CONFIG_URL_MAINNET"),
            explorer_api_url=_get(environ, "CONFIG_API_URL_MAINNET"),
            explorer_browser_url=_get(environ, "CONFIG_BROWSER_URL_MAINNET"),
            explorer_api_key=api_key,
            accounts=(deploy_key,),
            ape_network="ethereum:mainnet",
        ),
        NetworkProfile(
            name=BSC_TESTNET,
            chain_id=97,
            rpc_url=BSC_TESTNET_RPC_URL,
            explorer_api_url=BSC_TESTNET_RPC_URL,
            explorer_browser_url=None,
            explorer_api_key=api_key,
            accounts=(deploy_key,),
        ),
        NetworkProfile(
            name=BSC,
            chain_id=56,
            rpc_url=BSC_RPC_URL,
            explorer_api_url=BSC_RPC_URL,
            explorer_browser_url=None,
            explorer_api_key=api_key,
            accounts=(deploy_key,),
        ),
        NetworkProfile(
            name=LOCAL,
            chain_id=1337,
            rpc_url=LOCAL_RPC_URL,
            explorer_api_url=LOCAL_RPC_URL,
            explorer_browser_url=None,
            explorer_api_key=None,
            accounts=(LOCAL_DEV_PRIVATE_KEY,),
        ),
    ]
    return {profile.name: profile for profile in profiles}


def get_network_profile(name: str, environ: Optional[Mapping[str, str]] = None) -> NetworkProfile:
    """Selects a single network profile by name."""
    profiles = load_network_profiles(environ=environ)
    try:
        return profiles[name]
    except KeyError:
        raise NetworkConfigurationError(
            f"Unknown network profile '{name}'; "
            f"expected one of {', '.join(SUPPORTED_NETWORK_PROFILES)}."
        )
