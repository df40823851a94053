"""
Inspector Configuration
Centralized settings for external services (1inch, Etherscan, Foundry)
Values come from the environment, .env is loaded on import
"""

import os
from pathlib import Path

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = BACKEND_DIR.parent

load_dotenv(PROJECT_ROOT / ".env")

# ============================================
# 1INCH SWAP API
# ============================================

ONEINCH_BASE_URL = os.environ.get("ONEINCH_BASE_URL", "https://api.1inch.dev")
ONEINCH_API_KEY = os.environ.get("ONEINCH_API_KEY", "demo")
CHAIN_ID = int(os.environ.get("CHAIN_ID", "1"))
DEFAULT_SLIPPAGE = float(os.environ.get("DEFAULT_SLIPPAGE", "1"))

# ============================================
# ETHERSCAN
# ============================================

ETHERSCAN_BASE_URL = os.environ.get("ETHERSCAN_BASE_URL", "https://api.etherscan.io/api")
ETHERSCAN_API_KEY = os.environ.get("ETHERSCAN_API_KEY", "")

# ============================================
# FOUNDRY FORK SIMULATION
# ============================================

MAINNET_RPC_URL = os.environ.get("MAINNET_RPC_URL", "")
FOUNDRY_PATH = os.environ.get("FOUNDRY_PATH", str(PROJECT_ROOT / "foundry"))
FORGE_BINARY = os.environ.get("FORGE_BINARY", "forge")
SIMULATION_TEST_NAME = os.environ.get("SIMULATION_TEST_NAME", "testSimulateSwap")
SIMULATION_TIMEOUT = float(os.environ.get("SIMULATION_TIMEOUT", "30"))

# ============================================
# SERVER
# ============================================

HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "30"))
PORT = int(os.environ.get("PORT", "3000"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
PRODUCTION = bool(os.environ.get("PRODUCTION"))
FRONTEND_DIR = os.environ.get("FRONTEND_DIR", str(PROJECT_ROOT / "frontend"))

# Mainnet addresses used by the demo pipeline and the fixture route
TOKENS = {
    "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
}

ONEINCH_ROUTER_ADDRESS = "0x1111111254EEB25477B68fb85Ed929f73A960582"
