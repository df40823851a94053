"""
Metrics API Router - Exposes outbound call metrics

Endpoints:
- GET /api/metrics - All service stats
- GET /api/metrics/service/{service} - Service-specific stats
- GET /api/metrics/errors - Recent errors
- GET /api/metrics/health - Upstream health summary
"""

from fastapi import APIRouter, HTTPException
from infrastructure.api_metrics import api_metrics

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


@router.get("")
async def get_all_metrics():
    """
    Metrics for 1inch, Etherscan and forge

    Returns:
    - Uptime info
    - Per-service stats (success rate, response times, rate limits)
    - Total call counts
    """
    return api_metrics.get_all_stats()


@router.get("/service/{service}")
async def get_service_metrics(service: str):
    """
    Services: 1inch, etherscan, forge
    """
    stats = api_metrics.get_service_stats(service)
    if stats.get('status') == 'no_data':
        raise HTTPException(status_code=404, detail=f"No data for service: {service}")
    return stats


@router.get("/errors")
async def get_recent_errors(limit: int = 20):
    errors = api_metrics.get_recent_errors(limit)
    return {
        'count': len(errors),
        'errors': errors
    }


@router.get("/health")
async def upstream_health():
    """
    Upstream health, judged from recent success rates.

    Every analyzer falls back silently, so this is where a dead API key or a
    missing forge install becomes visible.
    """
    stats = api_metrics.get_all_stats()

    health = "healthy"
    issues = []

    for name, data in stats['services'].items():
        if data.get('total_calls', 0) == 0:
            continue

        success_rate = data.get('success_rate', 100)
        if success_rate < 80:
            health = "unhealthy"
            issues.append(f"{name}: {success_rate}% success rate")
        elif success_rate < 95:
            if health == "healthy":
                health = "degraded"
            issues.append(f"{name}: {success_rate}% success rate")

    return {
        'status': health,
        'uptime': stats['uptime_human'],
        'total_calls': stats['total_api_calls'],
        'overall_success_rate': stats['overall_success_rate'],
        'issues': issues if issues else None
    }
