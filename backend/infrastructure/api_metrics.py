"""
API Metrics Tracker - In-process monitoring for outbound calls

Tracks:
- Request counts (success/error/timeout/rate limited)
- Response times
- Rate limit windows
- Error details

Services:
- 1inch swap API
- Etherscan
- Forge (local fork simulation process)
"""

import time
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

SLOW_CALL_MS = 2000


@dataclass
class APICallMetric:
    """Single outbound call record"""
    service: str
    endpoint: str
    status: str  # 'success', 'error', 'timeout', 'rate_limited'
    response_time_ms: float
    timestamp: str
    error_message: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class ServiceMetrics:
    """Aggregated metrics for a service"""
    total_calls: int = 0
    success_count: int = 0
    error_count: int = 0
    timeout_count: int = 0
    rate_limit_count: int = 0
    avg_response_time_ms: float = 0
    min_response_time_ms: float = float('inf')
    max_response_time_ms: float = 0
    last_error: Optional[str] = None
    last_error_time: Optional[str] = None
    last_success_time: Optional[str] = None

    # rolling window for the average
    _recent_times: list = field(default_factory=list)


class APIMetricsTracker:
    """
    Centralized outbound call tracking

    Usage:
        with APICallTimer('etherscan', 'getsourcecode') as timer:
            response = await client.get(url, params=params)
            timer.status_code = response.status_code

        stats = api_metrics.get_all_stats()
    """

    # Published free-tier limits
    SERVICES = {
        '1inch': {'rate_limit': 1, 'window': 1},       # per second (dev portal free tier)
        'etherscan': {'rate_limit': 5, 'window': 1},   # per second
        'forge': {'rate_limit': 60, 'window': 60},
    }

    def __init__(self, max_recent_calls: int = 1000):
        self._metrics: Dict[str, ServiceMetrics] = defaultdict(ServiceMetrics)
        self._recent_calls: List[Dict[str, Any]] = []
        self._max_recent_calls = max_recent_calls
        self._start_time = datetime.utcnow()
        self._rate_windows: Dict[str, list] = defaultdict(list)

        logger.info("[APIMetrics] Tracker initialized")

    def record_call(
        self,
        service: str,
        endpoint: str,
        status: str,
        response_time_s: float,
        error_message: str = None,
        status_code: int = None
    ):
        """Record an outbound call"""
        service = service.lower()
        response_time_ms = response_time_s * 1000
        now = datetime.utcnow()

        call = APICallMetric(
            service=service,
            endpoint=endpoint,
            status=status,
            response_time_ms=round(response_time_ms, 2),
            timestamp=now.isoformat(),
            error_message=error_message,
            status_code=status_code
        )

        self._recent_calls.append(asdict(call))
        if len(self._recent_calls) > self._max_recent_calls:
            self._recent_calls.pop(0)

        m = self._metrics[service]
        m.total_calls += 1

        if status == 'success':
            m.success_count += 1
            m.last_success_time = now.isoformat()
        elif status == 'timeout':
            m.timeout_count += 1
            m.last_error = error_message or 'Timeout'
            m.last_error_time = now.isoformat()
        elif status == 'rate_limited':
            m.rate_limit_count += 1
            m.last_error = 'Rate limited'
            m.last_error_time = now.isoformat()
        else:
            m.error_count += 1
            m.last_error = error_message
            m.last_error_time = now.isoformat()

        m._recent_times.append(response_time_ms)
        if len(m._recent_times) > 100:
            m._recent_times.pop(0)

        m.avg_response_time_ms = sum(m._recent_times) / len(m._recent_times)
        m.min_response_time_ms = min(m.min_response_time_ms, response_time_ms)
        m.max_response_time_ms = max(m.max_response_time_ms, response_time_ms)

        self._rate_windows[service].append(now)
        self._prune_rate_window(service, now)

        if response_time_ms > SLOW_CALL_MS:
            logger.warning(f"[APIMetrics] Slow call: {service} {endpoint} took {response_time_ms:.0f}ms")

    def _window_config(self, service: str) -> Dict[str, int]:
        return self.SERVICES.get(service, {'rate_limit': 100, 'window': 60})

    def _prune_rate_window(self, service: str, now: datetime):
        cutoff = now - timedelta(seconds=self._window_config(service)['window'])
        self._rate_windows[service] = [
            t for t in self._rate_windows[service] if t > cutoff
        ]

    def check_rate_limit(self, service: str) -> Dict[str, Any]:
        """Current rate limit window for a service"""
        service = service.lower()
        config = self._window_config(service)
        window_seconds = config['window']
        limit = config['rate_limit']

        self._prune_rate_window(service, datetime.utcnow())

        current_count = len(self._rate_windows[service])

        return {
            'service': service,
            'limit': limit,
            'window_seconds': window_seconds,
            'current_count': current_count,
            'remaining': max(0, limit - current_count),
            'is_limited': current_count >= limit
        }

    def get_service_stats(self, service: str) -> Dict[str, Any]:
        m = self._metrics.get(service.lower())
        if not m:
            return {'service': service, 'status': 'no_data'}

        return {
            'service': service,
            'total_calls': m.total_calls,
            'success_count': m.success_count,
            'error_count': m.error_count,
            'timeout_count': m.timeout_count,
            'rate_limit_count': m.rate_limit_count,
            'success_rate': round((m.success_count / m.total_calls) * 100, 1) if m.total_calls > 0 else 0,
            'avg_response_ms': round(m.avg_response_time_ms, 1),
            'min_response_ms': round(m.min_response_time_ms, 1) if m.min_response_time_ms != float('inf') else 0,
            'max_response_ms': round(m.max_response_time_ms, 1),
            'last_error': m.last_error,
            'last_error_time': m.last_error_time,
            'last_success_time': m.last_success_time,
            'rate_limit': self.check_rate_limit(service)
        }

    def get_all_stats(self) -> Dict[str, Any]:
        uptime = (datetime.utcnow() - self._start_time).total_seconds()

        services = {}
        total_calls = 0
        total_failures = 0

        for service_name in sorted(set(self._metrics) | set(self.SERVICES)):
            stats = self.get_service_stats(service_name)
            services[service_name] = stats
            total_calls += stats.get('total_calls', 0)
            total_failures += stats.get('total_calls', 0) - stats.get('success_count', 0)

        return {
            'uptime_seconds': round(uptime, 0),
            'uptime_human': str(timedelta(seconds=int(uptime))),
            'started_at': self._start_time.isoformat(),
            'total_api_calls': total_calls,
            'total_errors': total_failures,
            'overall_success_rate': round(((total_calls - total_failures) / total_calls) * 100, 1) if total_calls > 0 else 100,
            'services': services
        }

    def get_recent_errors(self, limit: int = 20) -> list:
        errors = [
            c for c in reversed(self._recent_calls)
            if c['status'] in ('error', 'timeout', 'rate_limited')
        ]
        return errors[:limit]

    def reset(self):
        self._metrics.clear()
        self._recent_calls.clear()
        self._rate_windows.clear()
        self._start_time = datetime.utcnow()


# Global instance
api_metrics = APIMetricsTracker()


class APICallTimer:
    """Context manager for tracking an outbound call"""

    def __init__(self, service: str, endpoint: str = '', tracker: APIMetricsTracker = None):
        self.service = service
        self.endpoint = endpoint
        self.tracker = tracker or api_metrics
        self.start = None
        self.status = 'success'
        self.error_message = None
        self.status_code = None

    def __enter__(self):
        self.start = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start

        if exc_type:
            error_msg = str(exc_val)
            if self.status_code == 429 or 'rate limit' in error_msg.lower():
                self.status = 'rate_limited'
            elif 'timed out' in error_msg.lower() or 'timeout' in error_msg.lower():
                self.status = 'timeout'
            else:
                self.status = 'error'
            self.error_message = error_msg[:200]

        self.tracker.record_call(
            service=self.service,
            endpoint=self.endpoint,
            status=self.status,
            response_time_s=duration,
            error_message=self.error_message,
            status_code=self.status_code
        )

        return False  # never suppress
