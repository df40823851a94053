"""
Route Analyzer
Breaks a 1inch swap route down into its DEX legs.

Quote + swap build are fetched from 1inch; the `protocols` field is parsed
into hops of `<dexName>-<percent>`. Any upstream failure falls back to a
fixed two-hop WETH -> USDC route so the pipeline always has something to
simulate and scan.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from config.settings import ONEINCH_ROUTER_ADDRESS, TOKENS
from integrations.oneinch import OneInchClient
from integrations.exceptions import OneInchAPIError, UpstreamUnavailable
from services.models import (
    ResultSource,
    RouteAnalysis,
    RouteBreakdown,
    RouteHop,
    SwapRequest,
)

logger = logging.getLogger("RouteAnalyzer")

MOCK_PROTOCOLS = ["UNISWAP_V3-60", "SUSHISWAP-40"]
MOCK_TO_AMOUNT = "1500000000"  # 1500 USDC
MOCK_GAS = 150000
MOCK_GAS_COST = "150000000000000000"


def _flatten_protocols(protocols: Iterable[Any]) -> Iterable[Any]:
    """Yield protocol entries, unpacking the nested route lists the v6 API returns"""
    for entry in protocols:
        if isinstance(entry, (list, tuple)):
            yield from _flatten_protocols(entry)
        elif isinstance(entry, dict) and "name" in entry and "part" in entry:
            yield f"{entry['name']}-{entry['part']}"
        else:
            yield entry


def parse_protocols(protocols: Optional[Iterable[Any]]) -> List[RouteHop]:
    """
    Parse `<dexName>-<percent>` entries into ordered hops.

    Entries that don't have that shape are dropped; hop indices follow the
    order of the entries that were kept.
    """
    if not isinstance(protocols, (list, tuple)):
        return []

    hops = []
    for entry in _flatten_protocols(protocols):
        if not isinstance(entry, str):
            continue

        parts = entry.split("-")
        if len(parts) < 2 or not parts[0].strip():
            continue

        try:
            percent = int(float(parts[1].strip()))
        except (ValueError, OverflowError):
            logger.debug(f"Dropping malformed protocol entry: {entry!r}")
            continue

        hops.append(RouteHop(dex=parts[0].strip(), percent=percent, index=len(hops)))

    return hops


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def calculate_route_breakdown(swap_data: Dict[str, Any]) -> RouteBreakdown:
    hops = parse_protocols(swap_data.get("protocols"))
    tx = swap_data.get("tx") or {}

    return RouteBreakdown(
        protocols=hops,
        total_percent=sum(h.percent for h in hops),
        route_count=len(hops),
        estimated_gas=_as_int(tx.get("gas")),
        estimated_gas_cost=str(tx.get("gasCost") or "0"),
    )


class RouteAnalyzer:
    """
    Usage:
        analyzer = RouteAnalyzer()
        analysis = await analyzer.analyze_route(SwapRequest(...))

        if analysis.is_fallback:
            print(analysis.fallback_reason)
    """

    def __init__(self, client: Optional[OneInchClient] = None):
        self.client = client or OneInchClient()

    async def analyze_route(self, request: SwapRequest) -> RouteAnalysis:
        try:
            quote = await self.client.get_quote(
                request.from_token, request.to_token, request.amount, request.from_address
            )
            swap = await self.client.get_swap_tx(
                request.from_token, request.to_token, request.amount, request.from_address
            )

            tx = swap.get("tx")
            if not isinstance(tx, dict) or not tx.get("to"):
                raise OneInchAPIError("swap response has no transaction")

            protocols = swap.get("protocols")
            if protocols is not None and not isinstance(protocols, (list, tuple)):
                raise OneInchAPIError(f"swap response has malformed protocols: {protocols!r}")

            breakdown = calculate_route_breakdown(swap)
            logger.info(f"Route parsed: {breakdown.route_count} hops, {breakdown.total_percent}% covered")

            return RouteAnalysis(
                quote=quote,
                tx=tx,
                route_breakdown=breakdown,
                protocols=protocols or [],
                from_token=swap.get("fromToken") or swap.get("srcToken"),
                to_token=swap.get("toToken") or swap.get("dstToken"),
                amount=str(swap.get("amount") or request.amount),
                to_amount=str(swap.get("toAmount") or swap.get("dstAmount") or "0"),
                estimated_gas=_as_int(tx.get("gas")),
            )

        except UpstreamUnavailable as e:
            logger.error(f"Route analysis failed: {e}")
            logger.warning("Falling back to mock route data")
            return self.get_mock_route_analysis(request, reason=str(e))

    async def close(self):
        await self.client.close()

    def get_mock_route_analysis(self, request: SwapRequest, reason: str = None) -> RouteAnalysis:
        """Fixed two-hop WETH -> USDC route through the 1inch router"""
        from_token = {"symbol": "WETH", "address": request.from_token}
        to_token = {"symbol": "USDC", "address": request.to_token}

        return RouteAnalysis(
            quote={
                "fromToken": from_token,
                "toToken": to_token,
                "toTokenAmount": MOCK_TO_AMOUNT,
                "fromTokenAmount": request.amount,
                "protocols": list(MOCK_PROTOCOLS),
            },
            tx={
                "to": ONEINCH_ROUTER_ADDRESS,
                "data": "0x1234567890abcdef",
                "value": "0",
                "gas": str(MOCK_GAS),
            },
            route_breakdown=RouteBreakdown(
                protocols=[
                    RouteHop(dex="UNISWAP_V3", percent=60, index=0),
                    RouteHop(dex="SUSHISWAP", percent=40, index=1),
                ],
                total_percent=100,
                route_count=2,
                estimated_gas=MOCK_GAS,
                estimated_gas_cost=MOCK_GAS_COST,
            ),
            protocols=list(MOCK_PROTOCOLS),
            from_token=from_token,
            to_token=to_token,
            amount=request.amount,
            to_amount=MOCK_TO_AMOUNT,
            estimated_gas=MOCK_GAS,
            source=ResultSource.FALLBACK,
            fallback_reason=reason,
        )


# Global instance
_analyzer_instance = None


def get_route_analyzer() -> RouteAnalyzer:
    global _analyzer_instance
    if _analyzer_instance is None:
        _analyzer_instance = RouteAnalyzer()
    return _analyzer_instance


async def close_route_analyzer():
    global _analyzer_instance
    if _analyzer_instance is not None:
        await _analyzer_instance.close()
        _analyzer_instance = None


DEMO_REQUEST = SwapRequest(
    from_token=TOKENS["WETH"],
    to_token=TOKENS["USDC"],
    amount="1000000000000000000",  # 1 WETH
    from_address="0x28C6c06298d514Db089934071355E5743bf21d60",
)
