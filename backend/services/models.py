"""
Inspector data model
Per-request value objects for route, simulation and security results.

Every analyzer result carries a source tag (live data vs. fallback) and
serializes to the camelCase JSON shape the frontend consumes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ResultSource(Enum):
    """Where an analyzer result came from"""
    LIVE = "live"
    FALLBACK = "fallback"


class RiskLevel(Enum):
    SAFE = "SAFE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class SwapRequest:
    """A proposed swap; amount is an integer string in base units"""
    from_token: str
    to_token: str
    amount: str
    from_address: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "fromToken": self.from_token,
            "toToken": self.to_token,
            "amount": self.amount,
            "fromAddress": self.from_address,
        }


# ============================================
# ROUTE
# ============================================

@dataclass
class RouteHop:
    dex: str
    percent: int
    index: int

    def to_dict(self) -> Dict[str, Any]:
        return {"dex": self.dex, "percent": self.percent, "index": self.index}


@dataclass
class RouteBreakdown:
    protocols: List[RouteHop] = field(default_factory=list)
    total_percent: int = 0
    route_count: int = 0
    estimated_gas: int = 0
    estimated_gas_cost: str = "0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocols": [p.to_dict() for p in self.protocols],
            "totalPercent": self.total_percent,
            "routeCount": self.route_count,
            "estimatedGas": self.estimated_gas,
            "estimatedGasCost": self.estimated_gas_cost,
        }


@dataclass
class RouteAnalysis:
    quote: Dict[str, Any]
    tx: Dict[str, Any]
    route_breakdown: RouteBreakdown
    protocols: List[Any]
    from_token: Any
    to_token: Any
    amount: str
    to_amount: str
    estimated_gas: int
    source: ResultSource = ResultSource.LIVE
    fallback_reason: Optional[str] = None

    @property
    def router_address(self) -> Optional[str]:
        return (self.tx or {}).get("to")

    @property
    def is_fallback(self) -> bool:
        return self.source is ResultSource.FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quote": self.quote,
            "tx": self.tx,
            "routeBreakdown": self.route_breakdown.to_dict(),
            "protocols": self.protocols,
            "fromToken": self.from_token,
            "toToken": self.to_token,
            "amount": self.amount,
            "toAmount": self.to_amount,
            "estimatedGas": self.estimated_gas,
            "source": self.source.value,
            "fallbackReason": self.fallback_reason,
        }


# ============================================
# SIMULATION
# ============================================

@dataclass
class HopSlippage:
    hop: int
    dex: str
    slippage: float  # basis points
    estimated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {"hop": self.hop, "dex": self.dex, "slippage": self.slippage}
        if self.estimated:
            data["estimated"] = True
        return data


@dataclass
class HopGas:
    hop: int
    dex: str
    gas: int

    def to_dict(self) -> Dict[str, Any]:
        return {"hop": self.hop, "dex": self.dex, "gas": self.gas}


@dataclass
class SimulationResult:
    per_hop_slippage: List[HopSlippage] = field(default_factory=list)
    gas_estimates: List[HopGas] = field(default_factory=list)
    total_slippage: float = 0
    total_gas: int = 0
    details: Dict[str, Any] = field(default_factory=dict)
    fallback: bool = False
    error: Optional[str] = None

    @property
    def source(self) -> ResultSource:
        return ResultSource.FALLBACK if self.fallback else ResultSource.LIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": not self.fallback,
            "perHopSlippage": [h.to_dict() for h in self.per_hop_slippage],
            "gasEstimates": [g.to_dict() for g in self.gas_estimates],
            "totalSlippage": self.total_slippage,
            "totalGas": self.total_gas,
            "simulationDetails": self.details,
            "fallback": self.fallback,
            "estimated": self.fallback,
            "source": self.source.value,
            "error": self.error,
        }


# ============================================
# SECURITY
# ============================================

@dataclass
class ProxyInfo:
    is_proxy: bool = False
    pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"isProxy": self.is_proxy, "pattern": self.pattern}


@dataclass
class SecurityReport:
    address: str
    is_verified: bool = False
    is_proxy: bool = False
    risk_score: int = 0
    risk_level: RiskLevel = RiskLevel.SAFE
    risk_factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    security_checks: Dict[str, Any] = field(default_factory=dict)
    source: ResultSource = ResultSource.LIVE
    fallback_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "isVerified": self.is_verified,
            "isProxy": self.is_proxy,
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value,
            "riskFactors": list(self.risk_factors),
            "recommendations": list(self.recommendations),
            "securityChecks": self.security_checks,
            "source": self.source.value,
            "error": self.fallback_reason,
        }
