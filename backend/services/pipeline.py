"""
Route inspection pipeline: 1inch route -> forge simulation -> router scan.

Steps run one after another; each analyzer absorbs its own upstream
failures, so only unexpected errors escape from run_analysis().
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from services.route_analyzer import RouteAnalyzer, close_route_analyzer, get_route_analyzer
from services.security_scanner import SecurityScanner, close_security_scanner, get_security_scanner
from services.simulation_service import SimulationService, get_simulation_service
from services.models import SwapRequest

logger = logging.getLogger("Pipeline")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class RoutePipeline:
    def __init__(
        self,
        route_analyzer: Optional[RouteAnalyzer] = None,
        simulation_service: Optional[SimulationService] = None,
        security_scanner: Optional[SecurityScanner] = None,
    ):
        self.route_analyzer = route_analyzer or get_route_analyzer()
        self.simulation_service = simulation_service or get_simulation_service()
        self.security_scanner = security_scanner or get_security_scanner()

    async def run_analysis(self, request: SwapRequest) -> Dict[str, Any]:
        logger.info(f"Starting route analysis: {request.to_dict()}")

        route = await self.route_analyzer.analyze_route(request)
        logger.info(f"Route analysis completed ({route.source.value})")

        simulation = await self.simulation_service.simulate_swap(route)
        logger.info(f"Simulation completed ({simulation.source.value})")

        security = await self.security_scanner.scan_router_security(route.router_address)
        logger.info(f"Security analysis completed ({security.source.value})")

        return {
            "routeAnalysis": route.to_dict(),
            "simulationResults": simulation.to_dict(),
            "securityAnalysis": security.to_dict(),
            "timestamp": utc_timestamp(),
        }


_pipeline_instance = None


def get_pipeline() -> RoutePipeline:
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = RoutePipeline()
    return _pipeline_instance


async def close_pipeline():
    """Release the shared 1inch and Etherscan HTTP clients"""
    global _pipeline_instance
    _pipeline_instance = None
    await close_route_analyzer()
    await close_security_scanner()
