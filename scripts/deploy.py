#!/usr/bin/python3

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.ape_client import (
    ApeChainClient,
    check_chain_id,
    check_plugins,
    is_local_network,
    load_role_accounts,
)
from deployment.constants import SALE_WALLET, STAKING_REWARD_WALLET
from deployment.exceptions import DeploymentError
from deployment.gas import GasPriceGate
from deployment.options import (
    autosign_option,
    max_wait_option,
    poll_interval_option,
    profile_option,
    registry_filepath_option,
    sale_wallet_account_option,
    settling_delay_option,
    staking_reward_account_option,
    verify_option,
)
from deployment.orchestrator import run_deployment
from deployment.profiles import resolve_profile
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
@poll_interval_option
@verify_option
@settling_delay_option
@registry_filepath_option
@click.option(
    "--skip-wiring",
    help="Only deploy; run scripts/initialize.py later to wire the contracts",
    is_flag=True,
    default=False,
)
def cli(
    network,
    account,
    network_profile,
    sale_wallet_account,
    staking_reward_account,
    autosign,
    max_wait,
    poll_interval,
    verify,
    settling_delay,
    registry_filepath,
    skip_wiring,
):
    """
    Deploys Zars, Airdrop, Presale and Staking, wires them together
    and verifies them on the block explorer.

    ape run deploy --profile goerli --network ethereum:goerli:infura
    """
    try:
        profile = resolve_profile(network_profile)
        verify = profile.verify if verify is None else verify
        verify = verify and not is_local_network()
        check_plugins(verify=verify)
        check_chain_id(profile)
        role_accounts = load_role_accounts(
            account,
            {SALE_WALLET: sale_wallet_account, STAKING_REWARD_WALLET: staking_reward_account},
        )
        chain = ApeChainClient(role_accounts, profile, autosign=autosign)
        if not skip_wiring:
            check_signers(chain, profile.wiring)
        artifact_filepath = registry_filepath or get_artifact_filepath(profile.artifact_filename)
    except (DeploymentError, ValueError) as exc:
        raise click.ClickException(str(exc))

    gate = GasPriceGate(
        chain,
        poll_interval=profile.gas_poll_interval if poll_interval is None else poll_interval,
        max_wait=max_wait,
    )

    print(
        f"Account: {account.address}",
        f"Profile: {profile.network_id}",
        f"Registry: {artifact_filepath}",
        f"Verify: {verify}",
        f"Network: {networks.provider.network.name}",
        f"Chain ID: {networks.provider.network.chain_id}",
        f"Gas Price Threshold: {profile.gas_price_threshold_gwei} Gwei",
        sep="\n",
    )

    report = run_deployment(
        chain,
        profile,
        gate=gate,
        autosign=autosign,
        wire=not skip_wiring,
        verify=verify,
        settling_delay=settling_delay,
        artifact_filepath=artifact_filepath,
    )
    report.print_summary()
    if not report.success:
        raise click.ClickException(f"Deployment failed: {report.error}")


if __name__ == "__main__":
    cli()
