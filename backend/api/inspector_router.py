"""
Inspector API Router - Swap route analysis endpoints
Runs the 1inch route -> forge simulation -> router security pipeline
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional, Union
import logging

from services.models import SwapRequest
from services.pipeline import get_pipeline, utc_timestamp
from services.route_analyzer import DEMO_REQUEST

logger = logging.getLogger("InspectorRouter")

router = APIRouter(prefix="/api", tags=["Route Inspector"])

REQUIRED_FIELDS = ("fromToken", "toToken", "amount", "fromAddress")


# ============================================
# MODELS
# ============================================

class AnalyzeRouteRequest(BaseModel):
    fromToken: Optional[str] = None
    toToken: Optional[str] = None
    amount: Optional[Union[str, int]] = None  # base units; clients send either
    fromAddress: Optional[str] = None


def to_swap_request(body: AnalyzeRouteRequest) -> SwapRequest:
    missing = [name for name in REQUIRED_FIELDS if not getattr(body, name)]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required parameters: {', '.join(REQUIRED_FIELDS)}"
        )

    return SwapRequest(
        from_token=body.fromToken,
        to_token=body.toToken,
        amount=str(body.amount),
        from_address=body.fromAddress,
    )


# ============================================
# ENDPOINTS
# ============================================

@router.post("/analyze-route")
async def analyze_route(body: AnalyzeRouteRequest):
    """
    Full pipeline for a proposed swap.

    Returns routeAnalysis, simulationResults, securityAnalysis and a timestamp.
    Upstream outages show up as tagged fallback data, not errors.
    """
    request = to_swap_request(body)

    try:
        return await get_pipeline().run_analysis(request)
    except Exception as e:
        logger.exception(f"Route analysis error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to analyze route: {e}")


async def _run_demo_pipeline():
    logger.info(f"Testing full pipeline with {DEMO_REQUEST.to_dict()}")

    try:
        result = await get_pipeline().run_analysis(DEMO_REQUEST)
    except Exception as e:
        logger.exception(f"Pipeline test failed: {e}")
        raise HTTPException(status_code=500, detail=f"Pipeline test failed: {e}")

    logger.info("Pipeline test completed")
    return {"success": True, "testData": DEMO_REQUEST.to_dict(), **result}


@router.get("/test-pipeline")
async def demo_pipeline_get():
    """Run the pipeline on a fixed 1 WETH -> USDC swap"""
    return await _run_demo_pipeline()


@router.post("/test-pipeline")
async def demo_pipeline_post():
    return await _run_demo_pipeline()


@router.get("/token-info/{address}")
async def get_token_info(address: str):
    # Placeholder metadata for the frontend token picker
    return {"address": address, "symbol": "TOKEN", "decimals": 18}


@router.get("/health")
async def health():
    return {"status": "OK", "timestamp": utc_timestamp()}
