import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.constants import ARTIFACT_SUFFIX
from deployment.exceptions import DeploymentConfigError
from deployment.factory import DeployedContract, TransactionReceipt
from deployment.networks import NetworkProfile
from deployment.utils import _load_json

ContractName = str


STANDARD_ARTIFACT_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class ArtifactEntry(NamedTuple):
    """Snapshot of a single confirmed and provisioned deployment."""

    name: ContractName
    address: ChecksumAddress
    chain_id: int
    network: str
    constructor: Dict[str, Any]
    admins: List[str]
    tx_hash: str
    block_number: int
    deployer: str
    abi: List[Dict[str, Any]]
    explorer_url: Optional[str] = None


def artifact_from_deployment(
    contract: DeployedContract, profile: NetworkProfile, admins: Optional[List[str]] = None
) -> ArtifactEntry:
    receipt = contract.receipt
    return ArtifactEntry(
        name=contract.name,
        address=to_checksum_address(contract.address),
        chain_id=receipt.chain_id,
        network=profile.name,
        constructor=OrderedDict(contract.constructor_args),
        admins=list(admins or ()),
        tx_hash=receipt.tx_hash,
        block_number=int(receipt.block_number),
        deployer=receipt.sender,
        abi=list(contract.abi),
        explorer_url=profile.explorer_link(contract.address),
    )


def artifact_filepath(directory: Path, contract_name: ContractName) -> Path:
    return Path(directory) / f"{contract_name}{ARTIFACT_SUFFIX}"


def write_artifact(entry: ArtifactEntry, directory: Path) -> Path:
    """
    Writes a single deployment artifact named after the contract.
    Other files in the directory are left untouched.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    filepath = artifact_filepath(directory, entry.name)

    data = entry._asdict()
    data["abi"] = sorted(entry.abi, key=lambda d: (d.get("type", ""), d.get("name", "")))
    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_ARTIFACT_JSON_FORMAT)

    return filepath


def read_artifact(filepath: Path) -> ArtifactEntry:
    data = _load_json(filepath)
    if not isinstance(data, dict):
        raise DeploymentConfigError(f"Malformed deployment artifact {filepath}: not a JSON object")
    try:
        return ArtifactEntry(
            name=data["name"],
            address=data["address"],
            chain_id=int(data["chain_id"]),
            network=data["network"],
            constructor=OrderedDict(data.get("constructor") or {}),
            admins=list(data.get("admins") or []),
            tx_hash=data["tx_hash"],
            block_number=int(data["block_number"]),
            deployer=data["deployer"],
            abi=data.get("abi") or [],
            explorer_url=data.get("explorer_url"),
        )
    except KeyError as e:
        raise DeploymentConfigError(f"Malformed deployment artifact {filepath}: missing {e}")
    except (TypeError, ValueError) as e:
        raise DeploymentConfigError(f"Malformed deployment artifact {filepath}: {e}")


def read_artifacts(directory: Path) -> List[ArtifactEntry]:
    """Reads every artifact in a directory, in deployment order."""
    directory = Path(directory)
    if not directory.is_dir():
        raise DeploymentConfigError(f"No deployment artifacts found at '{directory}'")
    entries = list()
    for filepath in directory.glob(f"*{ARTIFACT_SUFFIX}"):
        try:
            entries.append(read_artifact(filepath))
        except (DeploymentConfigError, json.JSONDecodeError):
            print(f"(i) Skipping {filepath}; not a deployment artifact.")
    entries.sort(key=lambda entry: (entry.block_number, entry.name))
    return entries


def get_artifact(directory: Path, contract_name: ContractName) -> ArtifactEntry:
    filepath = artifact_filepath(directory, contract_name)
    if not filepath.exists():
        raise DeploymentConfigError(f"No artifact for {contract_name} at '{filepath}'")
    return read_artifact(filepath)


def deployment_from_artifact(entry: ArtifactEntry) -> DeployedContract:
    """Rebuilds a deployed contract handle from its artifact."""
    receipt = TransactionReceipt(
        tx_hash=entry.tx_hash,
        block_number=entry.block_number,
        chain_id=entry.chain_id,
        sender=entry.deployer,
    )
    return DeployedContract(
        name=entry.name,
        address=to_checksum_address(entry.address),
        constructor_args=OrderedDict(entry.constructor),
        receipt=receipt,
        abi=list(entry.abi),
    )
