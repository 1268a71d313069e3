import pytest

from deployment.constants import DEPLOYER, MAX_UINT256, SALE_WALLET, STAKING_REWARD_WALLET
from deployment.exceptions import (
    ConfigurationError,
    DeploymentAborted,
    UnknownContract,
    WiringFailed,
)
from deployment.params import Deployer
from deployment.wiring import InitializationCoordinator, InitializeCall, WiringPlan, check_signers
from tests.conftest import FakeChain


@pytest.fixture
def deployed_registry(chain, goerli_profile, registry):
    Deployer(chain, goerli_profile, registry, autosign=True).deploy_all()
    return registry


@pytest.fixture
def coordinator(chain, goerli_profile, deployed_registry, gate):
    return InitializationCoordinator(
        chain, goerli_profile, deployed_registry, gate=gate, autosign=True
    )


def test_initialize_calls_then_approvals(coordinator, chain, deployed_registry):
    receipts = coordinator.wire()

    assert len(receipts) == 6
    calls = [(tx[0], tx[1], tx[3]) for tx in chain.transactions]
    assert calls == [
        (DEPLOYER, "Airdrop", "initialize"),
        (DEPLOYER, "Presale", "initialize"),
        (DEPLOYER, "Staking", "initialize"),
        (SALE_WALLET, "Zars", "approve"),
        (SALE_WALLET, "Zars", "approve"),
        (STAKING_REWARD_WALLET, "Zars", "approve"),
    ]


def test_initialize_arguments(coordinator, chain, deployed_registry):
    coordinator.wire()
    token = deployed_registry.resolve("token")
    staking = deployed_registry.resolve("staking")

    airdrop_call = chain.transactions[0]
    assert airdrop_call[2] == deployed_registry.resolve("airdrop")
    assert airdrop_call[4] == [token, staking]

    staking_call = chain.transactions[2]
    assert staking_call[4] == [
        token,
        deployed_registry.resolve("airdrop"),
        deployed_registry.resolve("presale"),
    ]


def test_approvals_are_unlimited(coordinator, chain, deployed_registry):
    coordinator.wire()
    token = deployed_registry.resolve("token")

    approvals = [tx for tx in chain.transactions if tx[3] == "approve"]
    assert [tx[2] for tx in approvals] == [token] * 3
    assert [tx[4] for tx in approvals] == [
        [deployed_registry.resolve("airdrop"), MAX_UINT256],
        [deployed_registry.resolve("presale"), MAX_UINT256],
        [deployed_registry.resolve("staking"), MAX_UINT256],
    ]


def test_gas_is_checked_before_each_transaction(coordinator, chain):
    chain.events.clear()
    coordinator.wire()
    kinds = [kind for kind, _ in chain.events]
    assert kinds == ["gas", "transact"] * 6


def test_confirmation_messages(coordinator, capsys):
    coordinator.wire()
    output = capsys.readouterr().out

    assert "Airdrop initialized" in output
    assert "Presale initialized" in output
    assert "Staking initialized" in output
    assert "Sale wallet's allowance granted to Airdrop" in output
    assert "Sale wallet's allowance granted to Presale" in output
    assert "Staking reward wallet's allowance granted to Staking" in output


def test_missing_deployment_sends_nothing(chain, goerli_profile, registry):
    deployer = Deployer(chain, goerli_profile, registry, autosign=True)
    for name in ("token", "airdrop", "presale"):
        deployer.deploy(goerli_profile.contract(name))

    coordinator = InitializationCoordinator(chain, goerli_profile, registry, autosign=True)
    with pytest.raises(UnknownContract, match="staking"):
        coordinator.wire()
    assert chain.transactions == []


def test_revert_stops_wiring(goerli_profile, registry):
    chain = FakeChain(reverting_calls=[("Presale", "initialize")])
    Deployer(chain, goerli_profile, registry, autosign=True).deploy_all()
    coordinator = InitializationCoordinator(chain, goerli_profile, registry, autosign=True)

    with pytest.raises(WiringFailed, match="Already initialized"):
        coordinator.wire()

    assert [tx[1] for tx in chain.transactions] == ["Airdrop"]
    assert ("transact", "Staking.initialize") not in chain.events


def test_plan_without_approvals(coordinator, chain, goerli_profile):
    plan = WiringPlan(initialize=goerli_profile.wiring.initialize)
    receipts = coordinator.wire(plan)

    assert len(receipts) == 3
    assert all(tx[3] == "initialize" for tx in chain.transactions)


def test_empty_plan(coordinator, chain):
    assert coordinator.wire(WiringPlan()) == []
    assert chain.transactions == []


def test_declined_transaction_aborts(monkeypatch, chain, goerli_profile, deployed_registry):
    monkeypatch.setattr("click.confirm", lambda *args, **kwargs: False)
    coordinator = InitializationCoordinator(chain, goerli_profile, deployed_registry)

    with pytest.raises(DeploymentAborted):
        coordinator.wire()
    assert chain.transactions == []


def test_wiring_roles(goerli_profile):
    assert goerli_profile.wiring.roles() == [DEPLOYER, SALE_WALLET, STAKING_REWARD_WALLET]


@pytest.mark.parametrize("missing_role", [SALE_WALLET, STAKING_REWARD_WALLET])
def test_missing_signer_sends_nothing(goerli_profile, registry, missing_role):
    chain = FakeChain(missing_roles=[missing_role])
    Deployer(chain, goerli_profile, registry, autosign=True).deploy_all()
    coordinator = InitializationCoordinator(chain, goerli_profile, registry, autosign=True)

    with pytest.raises(ConfigurationError, match=missing_role):
        coordinator.wire()
    assert chain.transactions == []
    assert not any(kind == "transact" for kind, _ in chain.events)


def test_check_signers(goerli_profile):
    check_signers(FakeChain(), goerli_profile.wiring)
    with pytest.raises(ConfigurationError, match=SALE_WALLET):
        check_signers(FakeChain(missing_roles=[SALE_WALLET]), goerli_profile.wiring)


def test_initialize_only_plan_needs_no_wallet_accounts(goerli_profile, registry):
    chain = FakeChain(missing_roles=[SALE_WALLET, STAKING_REWARD_WALLET])
    Deployer(chain, goerli_profile, registry, autosign=True).deploy_all()
    coordinator = InitializationCoordinator(chain, goerli_profile, registry, autosign=True)

    receipts = coordinator.wire(WiringPlan(initialize=goerli_profile.wiring.initialize))
    assert len(receipts) == 3


def test_other_wiring_method(coordinator, chain, capsys):
    plan = WiringPlan(
        initialize=(InitializeCall(contract="staking", arguments=(), method="pause"),)
    )
    coordinator.wire(plan)

    assert chain.transactions[0][3] == "pause"
    output = capsys.readouterr().out
    assert "Staking.pause called" in output
    assert "Staking initialized" not in output
