from pathlib import Path

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
PROFILES_DIR = DEPLOYMENT_DIR / "network_profiles"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Networks
#

GOERLI = "goerli"
BSC = "bsc"

SUPPORTED_NETWORK_PROFILES = [GOERLI, BSC]

#
# Wallet roles
#

DEPLOYER = "deployer"
SALE_WALLET = "sale_wallet"
STAKING_REWARD_WALLET = "staking_reward_wallet"
FEE_COLLECTORS = "fee_collectors"

WALLET_ROLES = [DEPLOYER, SALE_WALLET, STAKING_REWARD_WALLET]

FEE_COLLECTOR_COUNT = 4

#
# Transactions
#

# Unlimited ERC-20 allowance, "infinite until revoked"
MAX_UINT256 = 2**256 - 1

#
# Timing (seconds)
#

DEFAULT_GAS_POLL_INTERVAL = 2
VERIFICATION_SETTLING_DELAY = 20

# Fee query backoff
GAS_QUERY_ATTEMPTS = 5
GAS_QUERY_MAX_BACKOFF = 30
