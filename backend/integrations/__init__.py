"""
Integrations Module
External services the inspector talks to
"""

from .oneinch import OneInchClient
from .etherscan import EtherscanClient
from .forge_runner import ForgeOutput, ForgeRunner

__all__ = ["OneInchClient", "EtherscanClient", "ForgeOutput", "ForgeRunner"]
