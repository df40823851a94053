"""
1inch Swap API Integration
Quote and swap-transaction build calls against the 1inch aggregation API
https://portal.1inch.dev/documentation/swap
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import (
    CHAIN_ID,
    DEFAULT_SLIPPAGE,
    HTTP_TIMEOUT,
    ONEINCH_API_KEY,
    ONEINCH_BASE_URL,
)
from infrastructure.api_metrics import APICallTimer
from integrations.exceptions import OneInchAPIError

logger = logging.getLogger("OneInch")

SWAP_API_VERSION = "v6.0"


class OneInchClient:
    """
    Client for the 1inch swap API.

    Both calls raise OneInchAPIError on transport failure, non-2xx status or
    a body that is not a JSON object.
    """

    def __init__(
        self,
        api_key: str = ONEINCH_API_KEY,
        base_url: str = ONEINCH_BASE_URL,
        chain_id: int = CHAIN_ID,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self.client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def _url(self, action: str) -> str:
        return f"{self.base_url}/swap/{SWAP_API_VERSION}/{self.chain_id}/{action}"

    async def _get(self, action: str, params: Dict[str, Any]) -> Dict[str, Any]:
        with APICallTimer("1inch", action) as timer:
            try:
                response = await self.client.get(self._url(action), params=params, headers=self.headers)
            except httpx.HTTPError as e:
                raise OneInchAPIError(f"{action} request failed: {e}") from e

            timer.status_code = response.status_code
            if response.status_code != 200:
                raise OneInchAPIError(
                    f"{action} returned {response.status_code}: {response.text[:200]}",
                    status_code=response.status_code,
                )

            try:
                data = response.json()
            except ValueError as e:
                raise OneInchAPIError(f"{action} returned a non-JSON body") from e

            if not isinstance(data, dict):
                raise OneInchAPIError(f"{action} returned an unexpected payload")
            return data

    async def get_quote(
        self,
        from_token: str,
        to_token: str,
        amount: str,
        from_address: str,
    ) -> Dict[str, Any]:
        """
        Get a swap quote

        Args:
            from_token: Address of token to sell
            to_token: Address of token to buy
            amount: Amount in base units (integer string)
            from_address: Address executing the swap
        """
        params = {
            "src": from_token,
            "dst": to_token,
            "amount": amount,
            "from": from_address,
            "includeTokensInfo": "true",
            "includeProtocols": "true",
            "includeGas": "true",
        }
        quote = await self._get("quote", params)
        logger.info(f"[1inch] Quote received: {amount} → {quote.get('dstAmount', quote.get('toAmount', 'N/A'))}")
        return quote

    async def get_swap_tx(
        self,
        from_token: str,
        to_token: str,
        amount: str,
        from_address: str,
        slippage: float = DEFAULT_SLIPPAGE,
    ) -> Dict[str, Any]:
        """Build the swap transaction for the same parameters as the quote"""
        params = {
            "src": from_token,
            "dst": to_token,
            "amount": amount,
            "from": from_address,
            "slippage": slippage,
            "includeTokensInfo": "true",
            "includeProtocols": "true",
            "includeGas": "true",
        }
        swap = await self._get("swap", params)
        logger.info(f"[1inch] Swap tx built, router {swap.get('tx', {}).get('to', 'N/A')}")
        return swap

    async def close(self):
        await self.client.aclose()
