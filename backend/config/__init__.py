# Config package
from config.settings import (
    CHAIN_ID,
    ETHERSCAN_API_KEY,
    FOUNDRY_PATH,
    MAINNET_RPC_URL,
    ONEINCH_API_KEY,
    ONEINCH_ROUTER_ADDRESS,
    SIMULATION_TIMEOUT,
    TOKENS,
)
