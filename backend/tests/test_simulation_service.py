"""
Simulation Service Tests
=========================================

- per-DEX gas lookup order (exact -> normalized -> substring -> default)
- forge output parsing with canned text
- runner failure / timeout / unparseable output -> estimated fallback

Run: python -m pytest tests/test_simulation_service.py -v --tb=short
"""

import random

import pytest
from unittest.mock import AsyncMock, MagicMock

from integrations.exceptions import SimulationError, SimulationParseError, SimulationTimeout
from integrations.forge_runner import ForgeOutput, ForgeRunner
from services.models import RouteAnalysis, RouteBreakdown, RouteHop
from services.simulation_service import (
    DEFAULT_DEX_GAS,
    SimulationService,
    estimate_gas_for_dex,
    normalize_dex_name,
    parse_forge_output,
)

FORGE_STDOUT = """\
[PASS] testSimulateSwap() (gas: 312554)
Logs:
  Gas used: 143210
  Slippage (basis points): 42
  Hop 0: UNISWAP_V3
  Hop 1: SUSHISWAP
"""


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def route():
    return RouteAnalysis(
        quote={},
        tx={"to": "0x1111111254EEB25477B68fb85Ed929f73A960582", "data": "0xabc", "value": "0"},
        route_breakdown=RouteBreakdown(
            protocols=[
                RouteHop(dex="UNISWAP_V3", percent=60, index=0),
                RouteHop(dex="SUSHISWAP", percent=40, index=1),
            ],
            total_percent=100,
            route_count=2,
        ),
        protocols=["UNISWAP_V3-60", "SUSHISWAP-40"],
        from_token={"symbol": "WETH", "address": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"},
        to_token={"symbol": "USDC", "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"},
        amount="1000000000000000000",
        to_amount="1500000000",
        estimated_gas=150000,
    )


def make_runner(stdout=FORGE_STDOUT, error=None):
    runner = MagicMock()
    runner.command = "forge test --match-test testSimulateSwap -vv"
    if error is not None:
        runner.run_simulation = AsyncMock(side_effect=error)
    else:
        runner.run_simulation = AsyncMock(return_value=ForgeOutput(
            stdout=stdout, stderr="", exit_code=0, command=runner.command
        ))
    return runner


# =============================================================================
# TEST: GAS LOOKUP
# =============================================================================

class TestGasLookup:

    def test_exact_matches(self):
        assert estimate_gas_for_dex("UNISWAP_V3") == 150000
        assert estimate_gas_for_dex("UNISWAP_V2") == 180000
        assert estimate_gas_for_dex("uniswap_v3") == 150000

    def test_unknown_name_uses_default(self):
        assert estimate_gas_for_dex("SOME_UNKNOWN_VENUE") == DEFAULT_DEX_GAS
        assert DEFAULT_DEX_GAS == 170000

    def test_version_suffix_is_normalized(self):
        assert normalize_dex_name("1inch_V4") == "1INCH"
        assert normalize_dex_name("Curve-V2") == "CURVE"
        assert estimate_gas_for_dex("1inch_V4") == 160000
        assert estimate_gas_for_dex("SUSHISWAP_V2") == 180000

    def test_substring_match(self):
        # first key in table order contained in the name wins
        assert estimate_gas_for_dex("BALANCER_WEIGHTED_POOL") == 200000
        assert estimate_gas_for_dex("POLYGON_KYBER_ELASTIC") == 160000

    def test_lookup_is_deterministic(self):
        names = ["UNISWAP_V3", "PANCAKESWAP", "CURVE_V2", "MYSTERY"]
        assert [estimate_gas_for_dex(n) for n in names] == [estimate_gas_for_dex(n) for n in names]


# =============================================================================
# TEST: OUTPUT PARSING
# =============================================================================

class TestParseForgeOutput:

    def test_parses_totals_and_hops(self):
        result = parse_forge_output(FORGE_STDOUT)

        assert result.total_gas == 143210
        assert result.total_slippage == 42
        assert [(h.hop, h.dex) for h in result.per_hop_slippage] == [(0, "UNISWAP_V3"), (1, "SUSHISWAP")]
        assert [g.gas for g in result.gas_estimates] == [150000, 180000]

    def test_slippage_is_divided_by_hop_plus_one(self):
        result = parse_forge_output(FORGE_STDOUT)

        assert result.per_hop_slippage[0].slippage == 42
        assert result.per_hop_slippage[1].slippage == 21

    def test_missing_slippage_defaults_to_zero(self):
        result = parse_forge_output("Gas used: 99000\nHop 0: CURVE\n")

        assert result.total_slippage == 0
        assert result.per_hop_slippage[0].slippage == 0
        assert result.gas_estimates[0].gas == 120000

    def test_no_figures_is_parse_error(self):
        with pytest.raises(SimulationParseError):
            parse_forge_output("Compiler run successful!\nHop 0: CURVE\n")


# =============================================================================
# TEST: SIMULATE SWAP
# =============================================================================

class TestSimulateSwap:

    @pytest.mark.asyncio
    async def test_live_simulation(self, route):
        runner = make_runner()
        service = SimulationService(runner=runner)

        result = await service.simulate_swap(route)

        assert not result.fallback
        assert result.total_slippage == 42
        assert result.details["stdout"] == FORGE_STDOUT
        assert result.details["command"] == runner.command

        params = runner.run_simulation.await_args.args[0]
        assert params["router"] == "0x1111111254EEB25477B68fb85Ed929f73A960582"
        assert params["from_token"] == "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        SimulationTimeout(30),
        SimulationError("forge exited with code 1", exit_code=1),
    ])
    async def test_runner_failure_falls_back(self, route, error):
        service = SimulationService(runner=make_runner(error=error))

        result = await service.simulate_swap(route)

        assert result.fallback
        assert result.error == str(error)
        assert [h.dex for h in result.per_hop_slippage] == ["UNISWAP_V3", "SUSHISWAP"]
        assert all(h.estimated for h in result.per_hop_slippage)
        assert all(10 <= h.slippage < 60 for h in result.per_hop_slippage)
        assert result.total_slippage == pytest.approx(sum(h.slippage for h in result.per_hop_slippage))
        assert [g.gas for g in result.gas_estimates] == [150000, 180000]

    @pytest.mark.asyncio
    async def test_unparseable_output_falls_back(self, route):
        service = SimulationService(runner=make_runner(stdout="nothing useful"))

        result = await service.simulate_swap(route)

        assert result.fallback
        assert result.to_dict()["estimated"] is True

    @pytest.mark.asyncio
    async def test_route_without_target_skips_runner(self, route):
        route.tx = {}
        runner = make_runner()
        service = SimulationService(runner=runner)

        result = await service.simulate_swap(route)

        assert result.fallback
        runner.run_simulation.assert_not_awaited()

    def test_fallback_slippage_stays_in_range(self, route):
        service = SimulationService(runner=make_runner(), rng=random.Random(7))

        for _ in range(200):
            result = service.fallback_slippage_analysis(route)
            for hop in result.per_hop_slippage:
                assert 10 <= hop.slippage < 60

    @pytest.mark.asyncio
    async def test_undecodable_forge_output_is_still_parsed(self, route, tmp_path):
        forge = tmp_path / "forge"
        forge.write_text("#!/bin/sh\nprintf 'Gas used: 143210\\n\\377\\376\\nHop 0: CURVE\\n'\n")
        forge.chmod(0o755)
        service = SimulationService(runner=ForgeRunner(foundry_path=str(tmp_path), forge_binary=str(forge)))

        result = await service.simulate_swap(route)

        assert not result.fallback
        assert result.total_gas == 143210
        assert [g.gas for g in result.gas_estimates] == [120000]
