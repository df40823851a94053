"""
Etherscan Integration
Verified source code and deployed bytecode lookups for contract analysis
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import ETHERSCAN_API_KEY, ETHERSCAN_BASE_URL, HTTP_TIMEOUT
from infrastructure.api_metrics import APICallTimer
from integrations.exceptions import EtherscanAPIError

logger = logging.getLogger("Etherscan")


class EtherscanClient:
    """
    Usage:
        client = EtherscanClient()
        record = await client.get_source_code("0x...")
        verified = bool(record and record.get("SourceCode"))
    """

    def __init__(
        self,
        api_key: str = ETHERSCAN_API_KEY,
        base_url: str = ETHERSCAN_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    async def _get(self, action: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "apikey": self.api_key}

        with APICallTimer("etherscan", action) as timer:
            try:
                response = await self.client.get(self.base_url, params=params)
            except httpx.HTTPError as e:
                raise EtherscanAPIError(f"{action} request failed: {e}") from e

            timer.status_code = response.status_code
            if response.status_code != 200:
                raise EtherscanAPIError(
                    f"{action} returned {response.status_code}",
                    status_code=response.status_code,
                )

            try:
                data = response.json()
            except ValueError as e:
                raise EtherscanAPIError(f"{action} returned a non-JSON body") from e

            if not isinstance(data, dict):
                raise EtherscanAPIError(f"{action} returned an unexpected payload")
            return data

    async def get_source_code(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the verification record for a contract.

        Returns the first result record (its SourceCode is empty when the
        contract is not verified), or None when Etherscan has no record.
        """
        data = await self._get("getsourcecode", {
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
        })

        if data.get("status") != "1":
            raise EtherscanAPIError(f"getsourcecode failed: {data.get('result') or data.get('message')}")

        result = data.get("result")
        if isinstance(result, list) and result:
            return result[0]
        return None

    async def get_bytecode(self, address: str) -> Optional[str]:
        """Deployed bytecode as a hex string ("0x" for accounts without code)"""
        data = await self._get("eth_getCode", {
            "module": "proxy",
            "action": "eth_getCode",
            "address": address,
            "tag": "latest",
        })

        if "error" in data:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise EtherscanAPIError(f"eth_getCode failed: {message}")

        result = data.get("result")
        if data.get("status") == "0" or not isinstance(result, str) or not result.startswith("0x"):
            raise EtherscanAPIError(f"eth_getCode failed: {result}")

        return result

    async def close(self):
        await self.client.aclose()
