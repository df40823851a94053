"""
Router Security Scanner
Heuristic risk scoring for the contract a swap transaction targets.

Features:
- Fetch verified source and deployed bytecode from Etherscan
- Proxy pattern detection
- Dangerous opcode and source keyword matching
- Additive risk score with SAFE..CRITICAL levels

Scoring is purely additive and unclamped, so checks are order-independent
for the score; order only decides how factors and recommendations list.
"""

import logging
from typing import Any, Dict, List, Optional

from integrations.etherscan import EtherscanClient
from integrations.exceptions import UpstreamUnavailable
from services.models import ProxyInfo, ResultSource, RiskLevel, SecurityReport

logger = logging.getLogger("SecurityScanner")

UNVERIFIED_PENALTY = 20
PROXY_PENALTY = 10
OPCODE_PENALTY = 15
DELEGATECALL_PENALTY = 25
SELFDESTRUCT_PENALTY = 30
SOURCE_ISSUE_PENALTY = 5

DEFAULT_RISK_SCORE = 50

# Lowercased source substring -> proxy pattern name. Later matches win.
PROXY_PATTERNS = [
    (("eip1967", "_implementation", "_admin"), "EIP-1967"),
    (("transparentupgradeableproxy", "transparentproxy"), "TransparentUpgradeableProxy"),
    (("uups", "upgradeable"), "UUPS"),
]

DANGEROUS_OPCODES = (
    "delegatecall",
    "callcode",
    "selfdestruct",
    "suicide",
    "create",
    "create2",
    "staticcall",
)

SOURCE_ISSUES = {
    "reentrancy": "Potential reentrancy vulnerability",
    "unchecked": "Unchecked arithmetic operations",
    "delegatecall": "Dangerous delegatecall usage",
    "selfdestruct": "Selfdestruct function present",
    "suicide": "Suicide function present",
    "tx.origin": "Using tx.origin instead of msg.sender",
    "block.timestamp": "Using block.timestamp for randomness",
    "block.number": "Using block.number for randomness",
}

# (minimum score, level), highest first
RISK_THRESHOLDS = [
    (80, RiskLevel.CRITICAL),
    (60, RiskLevel.HIGH),
    (40, RiskLevel.MEDIUM),
    (20, RiskLevel.LOW),
]

DEFAULT_RECOMMENDATIONS = [
    "Unable to perform security analysis",
    "Consider manual review of contract",
    "Verify contract address is correct",
]


def _source_text(source_record: Optional[Dict[str, Any]]) -> str:
    if not source_record:
        return ""
    return source_record.get("SourceCode") or ""


def detect_proxy_patterns(source_record: Optional[Dict[str, Any]]) -> ProxyInfo:
    info = ProxyInfo()
    source = _source_text(source_record).lower()
    if not source:
        return info

    for needles, pattern in PROXY_PATTERNS:
        if any(n in source for n in needles):
            info.is_proxy = True
            info.pattern = pattern

    return info


def analyze_dangerous_opcodes(bytecode: Optional[str]) -> List[str]:
    if not bytecode:
        return []

    bytecode_lower = bytecode.lower()
    return [op for op in DANGEROUS_OPCODES if op in bytecode_lower]


def analyze_source_code(source_code: str) -> List[str]:
    """Descriptions of every security keyword found in the source"""
    source = source_code.lower()
    return [desc for pattern, desc in SOURCE_ISSUES.items() if pattern in source]


def get_risk_level(risk_score: int) -> RiskLevel:
    for threshold, level in RISK_THRESHOLDS:
        if risk_score >= threshold:
            return level
    return RiskLevel.SAFE


def analyze_contract_security(
    address: str,
    source_record: Optional[Dict[str, Any]],
    bytecode: Optional[str],
) -> SecurityReport:
    report = SecurityReport(address=address)
    checks: Dict[str, Any] = {"verified": False}
    source = _source_text(source_record)

    if source:
        report.is_verified = True
        checks["verified"] = True
    else:
        report.risk_score += UNVERIFIED_PENALTY
        report.risk_factors.append("Contract not verified")
        report.recommendations.append("Contract source code is not verified on Etherscan")

    proxy = detect_proxy_patterns(source_record)
    report.is_proxy = proxy.is_proxy
    checks["proxy"] = proxy.to_dict()

    if proxy.is_proxy:
        report.risk_score += PROXY_PENALTY
        report.risk_factors.append("Contract uses proxy pattern")
        report.recommendations.append("Verify proxy implementation and admin controls")

    opcodes = analyze_dangerous_opcodes(bytecode)
    checks["dangerousOpcodes"] = opcodes

    if opcodes:
        report.risk_score += len(opcodes) * OPCODE_PENALTY
        report.risk_factors.append(f"Contains {len(opcodes)} dangerous opcodes")
        report.recommendations.append("Review dangerous opcodes: " + ", ".join(opcodes))

    if "delegatecall" in opcodes:
        report.risk_score += DELEGATECALL_PENALTY
        report.risk_factors.append("Uses delegatecall - high risk")
        report.recommendations.append("Delegatecall allows arbitrary code execution - extreme caution required")

    if "selfdestruct" in opcodes:
        report.risk_score += SELFDESTRUCT_PENALTY
        report.risk_factors.append("Contains selfdestruct - critical risk")
        report.recommendations.append("Selfdestruct can destroy contract and funds - avoid")

    if source:
        issues = analyze_source_code(source)
        checks["sourceCode"] = {"issues": issues}

        if issues:
            report.risk_score += len(issues) * SOURCE_ISSUE_PENALTY
            report.risk_factors.append(f"Source code has {len(issues)} potential issues")

    report.risk_level = get_risk_level(report.risk_score)
    report.security_checks = checks
    return report


def get_default_security_report(address: str = None, error: str = None) -> SecurityReport:
    """Fixed MEDIUM/50 report used whenever the contract could not be analyzed"""
    return SecurityReport(
        address=address or "Unknown",
        risk_score=DEFAULT_RISK_SCORE,
        risk_level=get_risk_level(DEFAULT_RISK_SCORE),
        risk_factors=["Unable to analyze contract"],
        recommendations=list(DEFAULT_RECOMMENDATIONS),
        security_checks={
            "verified": False,
            "proxy": ProxyInfo().to_dict(),
            "dangerousOpcodes": [],
            "sourceCode": {"issues": []},
        },
        source=ResultSource.FALLBACK,
        fallback_reason=error,
    )


class SecurityScanner:
    """
    Usage:
        scanner = SecurityScanner()
        report = await scanner.scan_router_security("0x...")

        if report.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            print("Do not route through this contract")
    """

    def __init__(self, client: Optional[EtherscanClient] = None):
        self.client = client or EtherscanClient()

    async def scan_router_security(self, address: Optional[str]) -> SecurityReport:
        if not address:
            return get_default_security_report(error="No router address")

        logger.info(f"Scanning router security for: {address}")

        try:
            source_record = await self.client.get_source_code(address)
            bytecode = await self.client.get_bytecode(address)
        except UpstreamUnavailable as e:
            logger.error(f"Security scan failed: {e}")
            return get_default_security_report(address, str(e))

        report = analyze_contract_security(address, source_record, bytecode)
        logger.info(f"Router {address[:10]}... scored {report.risk_score} ({report.risk_level.value})")
        return report

    async def close(self):
        await self.client.close()


# Global instance
_scanner_instance = None


def get_security_scanner() -> SecurityScanner:
    global _scanner_instance
    if _scanner_instance is None:
        _scanner_instance = SecurityScanner()
    return _scanner_instance


async def close_security_scanner():
    global _scanner_instance
    if _scanner_instance is not None:
        await _scanner_instance.close()
        _scanner_instance = None
