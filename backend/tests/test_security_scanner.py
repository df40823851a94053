"""
Router Security Scanner Tests
=========================================

- additive scoring per check
- risk level thresholds
- proxy detection
- Etherscan failure -> MEDIUM/50 default report
- determinism

Run: python -m pytest tests/test_security_scanner.py -v --tb=short
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from integrations.exceptions import EtherscanAPIError
from services.models import ResultSource, RiskLevel
from services.security_scanner import (
    SecurityScanner,
    analyze_contract_security,
    analyze_dangerous_opcodes,
    detect_proxy_patterns,
    get_risk_level,
)

ROUTER = "0x1111111254EEB25477B68fb85Ed929f73A960582"

CLEAN_SOURCE = """
pragma solidity 0.8.19;
contract Router {
    function swap(address to, uint256 amount) external returns (uint256) {
        require(msg.sender != address(0), "zero");
        return amount;
    }
}
"""


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clean_record():
    return {"SourceCode": CLEAN_SOURCE, "ContractName": "Router"}


@pytest.fixture
def etherscan(clean_record):
    client = MagicMock()
    client.get_source_code = AsyncMock(return_value=clean_record)
    client.get_bytecode = AsyncMock(return_value="0x6080604052")
    return client


# =============================================================================
# TEST: SCORING
# =============================================================================

class TestScoring:

    def test_clean_verified_contract_is_safe(self, clean_record):
        report = analyze_contract_security(ROUTER, clean_record, "0x6080604052")

        assert report.risk_score == 0
        assert report.risk_level is RiskLevel.SAFE
        assert report.is_verified
        assert not report.is_proxy
        assert report.risk_factors == []

    def test_unverified_adds_20(self):
        report = analyze_contract_security(ROUTER, {"SourceCode": ""}, "0x60")

        assert report.risk_score == 20
        assert report.risk_level is RiskLevel.LOW
        assert "Contract not verified" in report.risk_factors

    def test_missing_record_counts_as_unverified(self):
        report = analyze_contract_security(ROUTER, None, None)
        assert report.risk_score == 20

    def test_opcode_penalties(self, clean_record):
        # delegatecall: 15 + 25, selfdestruct: 15 + 30
        report = analyze_contract_security(ROUTER, clean_record, "0x..DELEGATECALL..selfdestruct..")

        assert report.security_checks["dangerousOpcodes"] == ["delegatecall", "selfdestruct"]
        assert report.risk_score == 85
        assert report.risk_level is RiskLevel.CRITICAL
        assert "Uses delegatecall - high risk" in report.risk_factors
        assert "Contains selfdestruct - critical risk" in report.risk_factors

    def test_create2_also_matches_create(self, clean_record):
        opcodes = analyze_dangerous_opcodes("0xcreate2")
        assert opcodes == ["create", "create2"]

        report = analyze_contract_security(ROUTER, clean_record, "0xcreate2")
        assert report.risk_score == 30

    def test_source_keywords_add_5_each(self):
        source = CLEAN_SOURCE + "\n// uses tx.origin and block.timestamp, unchecked { i++; }"
        report = analyze_contract_security(ROUTER, {"SourceCode": source}, "0x60")

        assert report.security_checks["sourceCode"]["issues"] == [
            "Unchecked arithmetic operations",
            "Using tx.origin instead of msg.sender",
            "Using block.timestamp for randomness",
        ]
        assert report.risk_score == 15

    def test_adding_opcode_never_lowers_score(self, clean_record):
        base = "0x60"
        previous = analyze_contract_security(ROUTER, clean_record, base).risk_score

        for opcode in ["staticcall", "callcode", "suicide", "delegatecall", "selfdestruct"]:
            base += opcode
            score = analyze_contract_security(ROUTER, clean_record, base).risk_score
            assert score > previous
            previous = score

    def test_score_is_not_clamped(self):
        bytecode = "delegatecall callcode selfdestruct suicide create2 staticcall"
        source = "reentrancy unchecked delegatecall selfdestruct suicide tx.origin block.timestamp block.number upgradeable"

        report = analyze_contract_security(ROUTER, {"SourceCode": source}, bytecode)

        # proxy 10 + 7 opcodes (create2 also hits create) * 15 + 25 + 30 + 8 keywords * 5
        assert report.risk_score == 10 + 105 + 25 + 30 + 40
        assert report.risk_level is RiskLevel.CRITICAL

    def test_identical_input_gives_identical_report(self, clean_record):
        first = analyze_contract_security(ROUTER, clean_record, "0xdelegatecall")
        second = analyze_contract_security(ROUTER, clean_record, "0xdelegatecall")

        assert first.risk_score == second.risk_score
        assert first.risk_level is second.risk_level
        assert first.to_dict() == second.to_dict()


class TestRiskLevels:

    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.SAFE),
        (19, RiskLevel.SAFE),
        (20, RiskLevel.LOW),
        (39, RiskLevel.LOW),
        (40, RiskLevel.MEDIUM),
        (59, RiskLevel.MEDIUM),
        (60, RiskLevel.HIGH),
        (79, RiskLevel.HIGH),
        (80, RiskLevel.CRITICAL),
        (250, RiskLevel.CRITICAL),
    ])
    def test_thresholds(self, score, level):
        assert get_risk_level(score) is level


class TestProxyDetection:

    @pytest.mark.parametrize("source,pattern", [
        ("bytes32 internal constant _IMPLEMENTATION_SLOT = eip1967", "EIP-1967"),
        ("contract TransparentProxy is Proxy", "TransparentUpgradeableProxy"),
        # "upgradeable" is checked last and overrides the pattern name
        ("contract TransparentUpgradeableProxy is ERC1967Proxy", "UUPS"),
        ("contract Vault is UUPSUpgradeable", "UUPS"),
    ])
    def test_patterns(self, source, pattern):
        info = detect_proxy_patterns({"SourceCode": source})

        assert info.is_proxy
        assert info.pattern == pattern

    def test_no_source_is_not_proxy(self):
        assert not detect_proxy_patterns(None).is_proxy
        assert not detect_proxy_patterns({"SourceCode": ""}).is_proxy

    def test_proxy_adds_10(self):
        report = analyze_contract_security(ROUTER, {"SourceCode": "contract P { address _admin; }"}, "0x60")

        assert report.is_proxy
        assert report.risk_score == 10


# =============================================================================
# TEST: SCANNER
# =============================================================================

class TestScanRouterSecurity:

    @pytest.mark.asyncio
    async def test_scan_uses_source_and_bytecode(self, etherscan):
        report = await SecurityScanner(client=etherscan).scan_router_security(ROUTER)

        assert report.source is ResultSource.LIVE
        assert report.address == ROUTER
        assert report.risk_level is RiskLevel.SAFE
        etherscan.get_source_code.assert_awaited_once_with(ROUTER)
        etherscan.get_bytecode.assert_awaited_once_with(ROUTER)

    @pytest.mark.asyncio
    async def test_fetch_failure_gives_default_report(self, etherscan):
        etherscan.get_bytecode.side_effect = EtherscanAPIError("eth_getCode returned 502", status_code=502)

        report = await SecurityScanner(client=etherscan).scan_router_security(ROUTER)

        assert report.source is ResultSource.FALLBACK
        assert report.risk_score == 50
        assert report.risk_level is RiskLevel.MEDIUM
        assert report.risk_factors == ["Unable to analyze contract"]
        assert len(report.recommendations) == 3
        assert "502" in report.to_dict()["error"]

    @pytest.mark.asyncio
    async def test_missing_address_gives_default_report(self, etherscan):
        report = await SecurityScanner(client=etherscan).scan_router_security(None)

        assert report.risk_score == 50
        assert report.address == "Unknown"
        etherscan.get_source_code.assert_not_awaited()
