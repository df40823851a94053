"""
Route Inspector Services
1inch route breakdown, fork simulation and router security scoring
"""

from .route_analyzer import RouteAnalyzer, get_route_analyzer
from .simulation_service import SimulationService, get_simulation_service
from .security_scanner import SecurityScanner, get_security_scanner
from .pipeline import RoutePipeline, get_pipeline

__all__ = [
    # Route
    "RouteAnalyzer",
    "get_route_analyzer",

    # Simulation
    "SimulationService",
    "get_simulation_service",

    # Security
    "SecurityScanner",
    "get_security_scanner",

    # Pipeline
    "RoutePipeline",
    "get_pipeline",
]
