from pathlib import Path

import click

from deployment.constants import SUPPORTED_NETWORK_PROFILES, VERIFICATION_SETTLING_DELAY
from deployment.types import LogicalContractName, MinInt

profile_option = click.option(
    "--profile",
    "-p",
    "network_profile",
    help="Deployment profile of the target network",
    type=click.Choice(SUPPORTED_NETWORK_PROFILES),
    required=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation",
    is_flag=True,
    default=False,
)

max_wait_option = click.option(
    "--max-wait",
    help="Abort if the gas price stays above the profile threshold for this many seconds",
    type=MinInt(1),
    required=False,
    default=None,
)

poll_interval_option = click.option(
    "--poll-interval",
    help="Seconds between gas price queries (defaults to the profile value)",
    type=click.FloatRange(min=0),
    required=False,
    default=None,
)

settling_delay_option = click.option(
    "--settling-delay",
    help="Seconds to wait before submitting contracts for verification",
    type=MinInt(0),
    default=VERIFICATION_SETTLING_DELAY,
    show_default=True,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Verify deployed contracts on the block explorer (defaults to the profile value)",
    default=None,
)

sale_wallet_account_option = click.option(
    "--sale-wallet-account",
    help="ape account alias of the sale wallet (needed for approvals)",
    type=str,
    required=False,
    default=None,
)

staking_reward_account_option = click.option(
    "--staking-reward-account",
    help="ape account alias of the staking reward wallet (needed for approvals)",
    type=str,
    required=False,
    default=None,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    help="Registry file of the deployment (defaults to the profile artifact)",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
    default=None,
)

contract_names_option = click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Logical name of a deployed contract, e.g. 'token'",
    type=LogicalContractName(),
    multiple=True,
)
