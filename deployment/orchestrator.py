import time
from pathlib import Path
from typing import Any, Callable, List, NamedTuple, Optional

from deployment.chain import ChainClient, TransactionReceipt
from deployment.constants import VERIFICATION_SETTLING_DELAY
from deployment.exceptions import DeploymentError
from deployment.gas import GasPriceGate
from deployment.params import Deployer
from deployment.profiles import NetworkProfile
from deployment.registry import AddressRegistry, DeployedContract, check_unpublished, write_registry
from deployment.verification import VerificationOutcome, VerificationRetrier
from deployment.wiring import InitializationCoordinator

PREFLIGHT_STAGE = "preflight"
DEPLOY_STAGE = "deploy"
PUBLISH_STAGE = "publish"
WIRE_STAGE = "wire"
VERIFY_STAGE = "verify"


class StageResult(NamedTuple):
    stage: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RunReport:
    """Outcome of a run; verification failures are collected but never fail it."""

    def __init__(self, network_id: str, registry: AddressRegistry):
        self.network_id = network_id
        self.registry = registry
        self.stages: List[StageResult] = list()
        self.receipts: List[TransactionReceipt] = list()
        self.verifications: List[VerificationOutcome] = list()

    @property
    def deployments(self) -> List[DeployedContract]:
        return list(self.registry)

    @property
    def success(self) -> bool:
        return all(result.ok for result in self.stages)

    @property
    def error(self) -> Optional[Exception]:
        for result in self.stages:
            if not result.ok:
                return result.error
        return None

    @property
    def recovered(self) -> List[VerificationOutcome]:
        return [outcome for outcome in self.verifications if not outcome.verified]

    def print_summary(self) -> None:
        print(f"\nSummary ({self.network_id})")
        for result in self.stages:
            status = "ok" if result.ok else f"FAILED - {result.error}"
            print(f"\t{result.stage}: {status}")
        for deployed in self.deployments:
            print(
                f"\t{deployed.logical_name} ({deployed.contract_type}): {deployed.address} "
                f"at block {deployed.block_number}"
            )
        for outcome in self.recovered:
            print(
                f"\t(i) {outcome.logical_name} at {outcome.address} "
                f"not verified: {outcome.error}"
            )


def _run_stage(report: RunReport, stage: str, action: Callable, *args) -> Any:
    print(f"\n--- {stage} ---")
    try:
        result = action(*args)
    except DeploymentError as exc:
        print(f"\n(!) {stage} failed: {exc}")
        report.stages.append(StageResult(stage, error=exc))
        return None
    report.stages.append(StageResult(stage))
    return result


def run_deployment(
    chain: ChainClient,
    profile: NetworkProfile,
    gate: Optional[GasPriceGate] = None,
    autosign: bool = False,
    wire: bool = True,
    verify: Optional[bool] = None,
    settling_delay: float = VERIFICATION_SETTLING_DELAY,
    artifact_filepath: Optional[Path] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunReport:
    """
    Deploys the profile's contracts, records them, wires them together and
    finally submits them for verification.

    Stages run in order and the first fatal error stops the run. Deployments
    confirmed before a failure are still written to the artifact file, since
    they cannot be undone.
    """
    verify = profile.verify if verify is None else verify
    registry = AddressRegistry()
    report = RunReport(profile.network_id, registry)

    if artifact_filepath is not None:
        _run_stage(report, PREFLIGHT_STAGE, check_unpublished, artifact_filepath, chain.chain_id)
        if not report.success:
            return report

    deployer = Deployer(chain, profile, registry, gate=gate, autosign=autosign)
    try:
        _run_stage(report, DEPLOY_STAGE, deployer.deploy_all)
    finally:
        # also reached when an interrupt or unexpected error escapes the deploy stage
        if artifact_filepath is not None and len(registry):
            _run_stage(
                report, PUBLISH_STAGE, write_registry, registry, chain.chain_id, artifact_filepath
            )
    if not report.success:
        return report

    if wire:
        coordinator = InitializationCoordinator(
            chain, profile, registry, gate=gate, autosign=autosign
        )
        receipts = _run_stage(report, WIRE_STAGE, coordinator.wire)
        if not report.success:
            return report
        report.receipts.extend(receipts)

    if verify:
        verifier = VerificationRetrier(chain, settling_delay=settling_delay, sleep=sleep)
        outcomes = _run_stage(report, VERIFY_STAGE, verifier.verify_all, registry)
        report.verifications.extend(outcomes or [])

    return report


def run_initialization(
    chain: ChainClient,
    profile: NetworkProfile,
    registry: AddressRegistry,
    gate: Optional[GasPriceGate] = None,
    autosign: bool = False,
) -> RunReport:
    """Runs only the wiring stage, against contracts deployed in an earlier run."""
    report = RunReport(profile.network_id, registry)
    coordinator = InitializationCoordinator(chain, profile, registry, gate=gate, autosign=autosign)
    receipts = _run_stage(report, WIRE_STAGE, coordinator.wire)
    if report.success:
        report.receipts.extend(receipts)
    return report


def run_verification(
    chain: ChainClient,
    profile: NetworkProfile,
    registry: AddressRegistry,
    names: Optional[List[str]] = None,
) -> RunReport:
    """Re-submits already deployed contracts for verification, without a settling delay."""
    report = RunReport(profile.network_id, registry)
    verifier = VerificationRetrier(chain, settling_delay=0)

    def _verify_selected() -> List[VerificationOutcome]:
        deployments = [registry.get(name) for name in names] if names else list(registry)
        return verifier.verify_all(deployments)

    report.verifications.extend(_run_stage(report, VERIFY_STAGE, _verify_selected) or [])
    return report
