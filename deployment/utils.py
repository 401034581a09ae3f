import json
import os
from pathlib import Path

import yaml

from deployment.constants import ENV_EXPLORER_API_KEY
from deployment.networks import NetworkProfile


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def check_etherscan_plugin(profile: NetworkProfile) -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    an explorer API key is available for the selected network.
    """
    if profile.is_local:
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import ETHERSCAN_API_KEY_NAME
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    api_key = os.environ.get(ETHERSCAN_API_KEY_NAME) or profile.explorer_api_key
    if not api_key:
        raise ValueError(f"Neither {ETHERSCAN_API_KEY_NAME} nor {ENV_EXPLORER_API_KEY} is set.")
    # ape-etherscan only reads its own variable
    os.environ.setdefault(ETHERSCAN_API_KEY_NAME, api_key)
