#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.ape_client import ApeChainClient, check_chain_id, check_etherscan_plugin
from deployment.constants import DEPLOYER
from deployment.exceptions import DeploymentError
from deployment.options import contract_names_option, profile_option, registry_filepath_option
from deployment.orchestrator import run_verification
from deployment.profiles import resolve_profile
from deployment.registry import read_registry
from deployment.utils import get_artifact_filepath


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@account_option()
@profile_option
@contract_names_option
@registry_filepath_option
def cli(network, account, network_profile, contract_names, registry_filepath):
    """Verify deployed contracts; all of them unless --contract-name is given."""
    try:
        profile = resolve_profile(network_profile)
        check_etherscan_plugin()
        check_chain_id(profile)
        chain = ApeChainClient({DEPLOYER: account}, profile)
        registry_filepath = registry_filepath or get_artifact_filepath(profile.artifact_filename)
        registry = read_registry(registry_filepath, chain_id=chain.chain_id)
    except (DeploymentError, FileNotFoundError) as exc:
        raise click.ClickException(str(exc))

    report = run_verification(chain, profile, registry, names=list(contract_names))
    report.print_summary()
    if not report.success:
        raise click.ClickException(f"Verification failed: {report.error}")


if __name__ == "__main__":
    cli()
