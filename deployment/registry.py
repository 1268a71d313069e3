import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.exceptions import AlreadyPublished, DuplicateContract, UnknownContract
from deployment.utils import _load_json

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class DeployedContract(NamedTuple):
    """A contract whose creation transaction has been confirmed."""

    logical_name: ContractName
    contract_type: str
    address: ChecksumAddress
    tx_hash: str
    block_number: int
    constructor_arguments: List[Any]
    deployer: ChecksumAddress


class AddressRegistry:
    """
    In-memory mapping of logical contract names to their deployments.

    Entries keep insertion (dependency) order. A name can only be registered once,
    and resolving a name that is not registered yet always fails.
    """

    def __init__(self):
        self._contracts: "OrderedDict[ContractName, DeployedContract]" = OrderedDict()

    def register(self, deployed: DeployedContract) -> None:
        if deployed.logical_name in self._contracts:
            raise DuplicateContract(
                f"Contract '{deployed.logical_name}' is already registered "
                f"at {self._contracts[deployed.logical_name].address}"
            )
        self._contracts[deployed.logical_name] = deployed

    def get(self, logical_name: ContractName) -> DeployedContract:
        try:
            return self._contracts[logical_name]
        except KeyError:
            raise UnknownContract(f"Contract '{logical_name}' has not been deployed yet")

    def resolve(self, logical_name: ContractName) -> ChecksumAddress:
        return self.get(logical_name).address

    def __contains__(self, logical_name: object) -> bool:
        return logical_name in self._contracts

    def __iter__(self) -> Iterator[DeployedContract]:
        return iter(list(self._contracts.values()))

    def __len__(self) -> int:
        return len(self._contracts)

    def names(self) -> List[ContractName]:
        return list(self._contracts)


def check_unpublished(filepath: Path, chain_id: ChainId) -> None:
    """
    Checks that the registry file holds no deployment for the chain yet, so a
    finished deployment is not repeated by accident.
    """
    if not filepath.exists():
        return
    if str(chain_id) in _load_json(filepath):
        raise AlreadyPublished(
            f"Deployment is already published for chain_id {chain_id} in {filepath}."
        )


def write_registry(registry: AddressRegistry, chain_id: ChainId, filepath: Path) -> Path:
    """
    Writes the deployments of a single chain to a registry file.

    Deployments for other chains already present in the file are kept; an existing
    entry for the same chain is never overwritten.
    """
    check_unpublished(filepath, chain_id)
    data = dict()
    if filepath.exists():
        data = _load_json(filepath)
        print(f"Updating existing registry at {filepath}.")
    else:
        print(f"Creating new registry at {filepath}.")

    chain_entries = OrderedDict()
    for deployed in registry:
        chain_entries[deployed.logical_name] = {
            "contract_type": deployed.contract_type,
            "address": deployed.address,
            "tx_hash": deployed.tx_hash,
            "block_number": int(deployed.block_number),
            "deployer": deployed.deployer,
            "constructor_arguments": deployed.constructor_arguments,
        }
    data[str(chain_id)] = chain_entries

    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    print(f"(i) Registry written to {filepath}!")
    return filepath


def read_registry(filepath: Path, chain_id: ChainId) -> AddressRegistry:
    """Rebuilds an address registry for one chain from a registry file."""
    if not filepath.exists():
        raise FileNotFoundError(f"No registry found at {filepath}")

    data: Dict[str, Dict[str, Any]] = _load_json(filepath)
    try:
        entries = data[str(chain_id)]
    except KeyError:
        raise UnknownContract(f"No deployments for chain_id {chain_id} in {filepath}")

    registry = AddressRegistry()
    for logical_name, artifacts in entries.items():
        registry.register(
            DeployedContract(
                logical_name=logical_name,
                contract_type=artifacts["contract_type"],
                address=to_checksum_address(artifacts["address"]),
                tx_hash=artifacts["tx_hash"],
                block_number=int(artifacts["block_number"]),
                constructor_arguments=artifacts.get("constructor_arguments", []),
                deployer=artifacts["deployer"],
            )
        )
    return registry
