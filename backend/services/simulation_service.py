"""
Simulation Service
Fork-simulates a swap route with Foundry and reads gas/slippage per hop.

The forge test prints human-readable lines:

    Gas used: 143210
    Slippage (basis points): 42
    Hop 0: UNISWAP_V3
    Hop 1: SUSHISWAP

A single slippage figure is spread over the hops as total / (hop + 1). That
split is an approximation kept for output compatibility, not a model of
per-hop price impact. Per-hop gas comes from a static per-DEX table.
"""

import logging
import random
import re
from typing import Any, Dict, Optional

from integrations.forge_runner import ForgeOutput, ForgeRunner
from integrations.exceptions import SimulationError, SimulationParseError
from services.models import HopGas, HopSlippage, RouteAnalysis, SimulationResult

logger = logging.getLogger("SimulationService")

GAS_USED_RE = re.compile(r"Gas used: (\d+)")
SLIPPAGE_RE = re.compile(r"Slippage \(basis points\): (\d+)")
HOP_RE = re.compile(r"Hop (\d+): ([^\n]+)")

VERSION_SUFFIX_RE = re.compile(r"_?V\d+(?!\d)")
NON_ALNUM_RE = re.compile(r"[^A-Z0-9]")

# Fallback slippage range in basis points: [10, 60)
FALLBACK_SLIPPAGE_MIN = 10
FALLBACK_SLIPPAGE_SPAN = 50

# Typical gas per swap leg. Order matters: substring matching walks this
# table top to bottom.
DEX_GAS_ESTIMATES = {
    # Major DEXs
    "UNISWAP_V3": 150000,
    "UNISWAP_V2": 180000,
    "SUSHISWAP": 180000,
    "BALANCER": 200000,
    "CURVE": 120000,
    "PANCAKESWAP": 160000,
    "DODO": 140000,

    # Aggregators
    "1INCH": 160000,
    "PARASWAP": 170000,
    "0X": 150000,

    # Other DEXs
    "KYBER": 160000,
    "BANCOR": 190000,
    "OASIS": 140000,
    "IDEX": 130000,
    "AIRSWAP": 120000,
    "0X_V2": 150000,
    "0X_V3": 140000,
    "0X_V4": 130000,

    # AMMs
    "AMM": 170000,
    "PMM": 140000,
    "RFQ": 120000,

    # Specific protocols
    "CHAI": 160000,
    "COMPOUND": 200000,
    "AAVE": 220000,
    "MAKER": 180000,
    "YIELD": 190000,
}

DEFAULT_DEX_GAS = 170000


def normalize_dex_name(dex_name: str) -> str:
    """UNISWAP_V3 -> UNISWAP, Curve-V2 -> CURVE"""
    name = VERSION_SUFFIX_RE.sub("", dex_name.upper())
    return NON_ALNUM_RE.sub("", name)


def estimate_gas_for_dex(dex_name: str) -> int:
    """
    Gas for one leg on the given DEX.

    Lookup order: exact (uppercased) -> normalized -> first table key
    contained in the uppercased name -> DEFAULT_DEX_GAS.
    """
    upper = dex_name.upper()
    if upper in DEX_GAS_ESTIMATES:
        return DEX_GAS_ESTIMATES[upper]

    normalized = normalize_dex_name(dex_name)
    if normalized in DEX_GAS_ESTIMATES:
        return DEX_GAS_ESTIMATES[normalized]

    for key, gas in DEX_GAS_ESTIMATES.items():
        if key in upper:
            return gas

    return DEFAULT_DEX_GAS


def parse_forge_output(output: str) -> SimulationResult:
    gas_match = GAS_USED_RE.search(output)
    slippage_match = SLIPPAGE_RE.search(output)

    if not gas_match and not slippage_match:
        raise SimulationParseError("No gas or slippage figures in forge output")

    gas_used = int(gas_match.group(1)) if gas_match else 0
    slippage = int(slippage_match.group(1)) if slippage_match else 0

    result = SimulationResult(total_slippage=slippage, total_gas=gas_used)

    for match in HOP_RE.finditer(output):
        hop = int(match.group(1))
        dex = match.group(2).strip()

        result.per_hop_slippage.append(HopSlippage(hop=hop, dex=dex, slippage=slippage / (hop + 1)))
        result.gas_estimates.append(HopGas(hop=hop, dex=dex, gas=estimate_gas_for_dex(dex)))

    return result


def _token_address(token: Any) -> Optional[str]:
    if isinstance(token, dict):
        return token.get("address")
    return token


class SimulationService:
    """
    Usage:
        service = SimulationService()
        result = await service.simulate_swap(route_analysis)

        if result.fallback:
            # slippage figures are random estimates
            ...
    """

    def __init__(self, runner: Optional[ForgeRunner] = None, rng: Optional[random.Random] = None):
        self.runner = runner or ForgeRunner()
        self.rng = rng or random.Random()

    def build_params(self, route: RouteAnalysis) -> Dict[str, Any]:
        tx = route.tx or {}
        return {
            "router": route.router_address,
            "calldata": tx.get("data"),
            "value": tx.get("value"),
            "from_address": tx.get("from"),
            "from_token": _token_address(route.from_token),
            "to_token": _token_address(route.to_token),
            "amount": route.amount,
        }

    async def simulate_swap(self, route: RouteAnalysis) -> SimulationResult:
        logger.info("Starting swap simulation")

        try:
            if not route.router_address:
                raise SimulationError("Route has no transaction target")

            output = await self.runner.run_simulation(self.build_params(route))
            result = self._result_from_output(output)

            logger.info(
                f"Simulation done: gas {result.total_gas}, slippage {result.total_slippage} bps, "
                f"{len(result.per_hop_slippage)} hops"
            )
            return result

        except (SimulationError, SimulationParseError) as e:
            logger.error(f"Simulation failed: {e}")
            return self.fallback_slippage_analysis(route, reason=str(e))

    def _result_from_output(self, output: ForgeOutput) -> SimulationResult:
        result = parse_forge_output(output.stdout)
        result.details = {
            "stdout": output.stdout,
            "stderr": output.stderr,
            "command": output.command,
            "exitCode": output.exit_code,
        }
        return result

    def fallback_slippage_analysis(self, route: RouteAnalysis, reason: str = None) -> SimulationResult:
        """Random 10-60 bps per hop; marked estimated"""
        hops = route.route_breakdown.protocols

        per_hop = [
            HopSlippage(
                hop=i,
                dex=hop.dex,
                slippage=self.rng.random() * FALLBACK_SLIPPAGE_SPAN + FALLBACK_SLIPPAGE_MIN,
                estimated=True,
            )
            for i, hop in enumerate(hops)
        ]
        gas = [HopGas(hop=i, dex=hop.dex, gas=estimate_gas_for_dex(hop.dex)) for i, hop in enumerate(hops)]

        return SimulationResult(
            per_hop_slippage=per_hop,
            gas_estimates=gas,
            total_slippage=sum(h.slippage for h in per_hop),
            total_gas=sum(g.gas for g in gas),
            details={"command": self.runner.command},
            fallback=True,
            error=reason,
        )


# Global instance
_service_instance = None


def get_simulation_service() -> SimulationService:
    global _service_instance
    if _service_instance is None:
        _service_instance = SimulationService()
    return _service_instance
