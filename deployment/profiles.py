"""
Static per-network deployment profiles.

A profile is a YAML file in ``deployment/network_profiles`` named after the network. It
holds the gas price threshold, the wallet role addresses, the contracts to
deploy with their constructor parameters, and the wiring plan run afterwards.
"""

import typing
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any, NamedTuple, Optional, Tuple

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from deployment.constants import (
    DEFAULT_GAS_POLL_INTERVAL,
    FEE_COLLECTOR_COUNT,
    FEE_COLLECTORS,
    PROFILES_DIR,
    SALE_WALLET,
    STAKING_REWARD_WALLET,
)
from deployment.exceptions import ConfigurationError, UnknownNetworkProfile
from deployment.params import ContractSpec, contract_specs_from_config
from deployment.utils import _load_yaml
from deployment.wiring import WiringPlan, wiring_plan_from_config


class NetworkProfile(NamedTuple):
    network_id: str
    chain_id: int
    gas_price_threshold_gwei: Optional[Decimal]
    fee_collector_addresses: Tuple[ChecksumAddress, ...]
    sale_wallet_address: ChecksumAddress
    staking_reward_wallet_address: ChecksumAddress
    constants: typing.Mapping[str, Any]
    contracts: Tuple[ContractSpec, ...]
    wiring: WiringPlan
    verify: bool = True
    gas_poll_interval: float = DEFAULT_GAS_POLL_INTERVAL
    artifact_filename: Optional[str] = None

    @property
    def roles(self) -> typing.Mapping[str, Any]:
        return {
            FEE_COLLECTORS: list(self.fee_collector_addresses),
            SALE_WALLET: self.sale_wallet_address,
            STAKING_REWARD_WALLET: self.staking_reward_wallet_address,
        }

    def contract(self, logical_name: str) -> ContractSpec:
        for spec in self.contracts:
            if spec.logical_name == logical_name:
                return spec
        raise ConfigurationError(
            f"Contract '{logical_name}' is not part of the {self.network_id} plan"
        )

    @classmethod
    def from_config(cls, config: typing.Dict) -> "NetworkProfile":
        deployment = config.get("deployment")
        if not deployment:
            raise ConfigurationError("deployment is not set in profile.")
        network_id = deployment.get("name")
        if not network_id:
            raise ConfigurationError("deployment name is not set in profile.")
        chain_id = deployment.get("chain_id")
        if not chain_id:
            raise ConfigurationError("chain_id is not set in profile.")

        gas = config.get("gas") or dict()
        roles_config = config.get("roles") or dict()
        fee_collectors = _fee_collectors(roles_config.get(FEE_COLLECTORS))
        sale_wallet = _checksum(SALE_WALLET, roles_config.get(SALE_WALLET))
        staking_reward_wallet = _checksum(
            STAKING_REWARD_WALLET, roles_config.get(STAKING_REWARD_WALLET)
        )
        roles = {
            FEE_COLLECTORS: list(fee_collectors),
            SALE_WALLET: sale_wallet,
            STAKING_REWARD_WALLET: staking_reward_wallet,
        }

        constants = MappingProxyType(dict(config.get("constants") or {}))
        contracts_config = config.get("contracts")
        if not contracts_config:
            raise ConfigurationError("Profile is missing the 'contracts' field.")
        contracts = contract_specs_from_config(contracts_config, constants=constants, roles=roles)
        wiring = wiring_plan_from_config(
            config.get("wiring"),
            contract_names=[spec.logical_name for spec in contracts],
            constants=constants,
            roles=roles,
        )

        artifacts = config.get("artifacts") or dict()
        return cls(
            network_id=network_id,
            chain_id=int(chain_id),
            gas_price_threshold_gwei=_threshold(gas.get("threshold_gwei")),
            fee_collector_addresses=fee_collectors,
            sale_wallet_address=sale_wallet,
            staking_reward_wallet_address=staking_reward_wallet,
            constants=constants,
            contracts=contracts,
            wiring=wiring,
            verify=bool(deployment.get("verify", True)),
            gas_poll_interval=float(gas.get("poll_interval", DEFAULT_GAS_POLL_INTERVAL)),
            artifact_filename=artifacts.get("filename", f"{network_id}.json"),
        )

    @classmethod
    def from_yaml(cls, filepath: Path) -> "NetworkProfile":
        return cls.from_config(_load_yaml(filepath))


def _checksum(role: str, value: Any) -> ChecksumAddress:
    if not value:
        raise ConfigurationError(f"Missing required address for '{role}'.")
    if not isinstance(value, str) or not is_address(value):
        raise ConfigurationError(f"Invalid address for '{role}': {value!r}")
    return to_checksum_address(value)


def _fee_collectors(values: Any) -> Tuple[ChecksumAddress, ...]:
    if not isinstance(values, list) or len(values) != FEE_COLLECTOR_COUNT:
        raise ConfigurationError(
            f"Exactly {FEE_COLLECTOR_COUNT} fee collector addresses are required, got {values!r}"
        )
    return tuple(_checksum(f"{FEE_COLLECTORS}[{i}]", value) for i, value in enumerate(values))


def _threshold(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        threshold = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"Invalid gas price threshold: {value!r}")
    if threshold < 0:
        raise ConfigurationError(f"Gas price threshold cannot be negative: {value!r}")
    return threshold


def profile_filepath(network_id: str, profiles_dir: Path = PROFILES_DIR) -> Path:
    filepath = Path(profiles_dir) / f"{network_id}.yml"
    if not filepath.exists():
        raise UnknownNetworkProfile(f"No deployment profile for network '{network_id}'")
    return filepath


def resolve_profile(network_id: str, profiles_dir: Path = PROFILES_DIR) -> NetworkProfile:
    """Loads and validates the profile for a network."""
    print(f"Resolving {network_id} profile...")
    profile = NetworkProfile.from_yaml(profile_filepath(network_id, profiles_dir))
    if profile.network_id != network_id:
        raise ConfigurationError(
            f"Profile file for '{network_id}' declares network '{profile.network_id}'"
        )
    return profile
