#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.ape_client import ApeChainClient, check_chain_id, load_role_accounts
from deployment.constants import SALE_WALLET, STAKING_REWARD_WALLET
from deployment.exceptions import DeploymentError
from deployment.gas import GasPriceGate
from deployment.options import (
    autosign_option,
    max_wait_option,
    profile_option,
    registry_filepath_option,
    sale_wallet_account_option,
    staking_reward_account_option,
)
from deployment.orchestrator import run_initialization
from deployment.profiles import resolve_profile
from deployment.registry import read_registry
from deployment.utils import get_artifact_filepath
from deployment.wiring import check_signers


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@profile_option
@sale_wallet_account_option
@staking_reward_account_option
@autosign_option
@max_wait_option
@registry_filepath_option
def cli(
    network,
    account,
    network_profile,
    sale_wallet_account,
    staking_reward_account,
    autosign,
    max_wait,
    registry_filepath,
):
    """
    Wires contracts deployed by an earlier `deploy --skip-wiring` run:
    initialize calls, then the profile's token approvals.
    """
    try:
        profile = resolve_profile(network_profile)
        check_chain_id(profile)
        role_accounts = load_role_accounts(
            account,
            {SALE_WALLET: sale_wallet_account, STAKING_REWARD_WALLET: staking_reward_account},
        )
        chain = ApeChainClient(role_accounts, profile, autosign=autosign)
        check_signers(chain, profile.wiring)
        registry_filepath = registry_filepath or get_artifact_filepath(profile.artifact_filename)
        registry = read_registry(registry_filepath, chain_id=chain.chain_id)
    except (DeploymentError, FileNotFoundError) as exc:
        raise click.ClickException(str(exc))

    print(f"(i) Loaded {len(registry)} contracts from {registry_filepath}")
    gate = GasPriceGate(chain, poll_interval=profile.gas_poll_interval, max_wait=max_wait)
    report = run_initialization(chain, profile, registry, gate=gate, autosign=autosign)
    report.print_summary()
    if not report.success:
        raise click.ClickException(f"Initialization failed: {report.error}")


if __name__ == "__main__":
    cli()
