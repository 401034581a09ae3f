from pathlib import Path

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
LAUNCHPAD_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "launchpad.yml"

# artifacts are written relative to the working directory, like the hardhat script did
ARTIFACTS_DIR = Path("deploy")
ARTIFACT_SUFFIX = ".json"

#
# Contracts
#

AIRDROP = "Airdrop"
PRESALE = "Presale"
ERC721_FACTORY = "ERC721Factory"
PRESALES_FACTORY = "PresalesFactory"

LAUNCHPAD_CONTRACTS = [AIRDROP, PRESALE, ERC721_FACTORY, PRESALES_FACTORY]

# administrative role grant exposed by every launchpad contract
ADD_ADMIN_METHOD = "addAdmin"

#
# Environment
#

ENV_DEPLOYER_ADMIN = "DEPLOYER_ADMIN_MAINNET"
ENV_PRESALE_BENEFICIARY = "BENEFICIARY_PRESALE_MAINNET"
ENV_EXPLORER_API_KEY = "API_KEY"
ENV_GOERLI_PRIVATE_KEY = "METAMASK_PRIVATE_KEY"
ENV_DEPLOY_PRIVATE_KEY = "METAMASK_ACCOUNT_deploy_private"

#
# Networks
#

HARDHAT = "hardhat"
GOERLI = "goerli"
SEPOLIA = "sepolia"
MAINNET = "mainnet"
BSC_TESTNET = "bsctest"
BSC = "bsc"
LOCAL = "local"

SUPPORTED_NETWORK_PROFILES = [HARDHAT, GOERLI, SEPOLIA, MAINNET, BSC_TESTNET, BSC, LOCAL]

LOCAL_NETWORK_PROFILES = [HARDHAT, LOCAL]

HARDHAT_BLOCK_GAS_LIMIT = 60_000_000_000

BSC_TESTNET_RPC_URL = "https://data-seed-prebsc-1-s1.binance.org:8545/"
BSC_RPC_URL = "https://bsc-dataseed.binance.org/"
LOCAL_RPC_URL = "http://127.0.0.1:8545/"

# well-known development key of the first local node account
LOCAL_DEV_PRIVATE_KEY = "0xdf57089febbacf7ba0bc227dafbffa9fc08a93fdc68e1e42411a14efcf23656e"
