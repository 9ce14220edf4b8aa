"""Monitoring and metrics collection for the JalSetu water assistant."""

import time
import uuid
from typing import Dict, Any, Optional
from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import (
    get_logger,
    log_api_request,
    log_database_operation,
    log_performance_metric
)

CHAT_OUTCOMES = ("provider", "rate_limited", "auth_error", "fallback")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MetricsCollector:
    """Collects request and chat-outcome metrics in memory."""

    def __init__(self, max_history: int = 1000):
        self.max_history = max_history
        self.reset()

    def reset(self) -> None:
        """Drop all collected metrics."""
        self.request_times = deque(maxlen=self.max_history)
        self.error_counts = defaultdict(int)
        self.endpoint_metrics = defaultdict(lambda: {
            'count': 0,
            'total_time': 0.0,
            'avg_time': 0.0,
            'min_time': float('inf'),
            'max_time': 0.0,
            'errors': 0
        })
        self.chat_outcomes = defaultdict(lambda: {outcome: 0 for outcome in CHAT_OUTCOMES})
        self.start_time = _utcnow()

    def record_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        error: Optional[str] = None
    ):
        """Record a request metric."""
        self.request_times.append({
            'timestamp': _utcnow(),
            'duration': duration,
            'status_code': status_code,
            'method': method,
            'path': path
        })

        if status_code >= 400:
            self.error_counts[str(status_code)] += 1

        metrics = self.endpoint_metrics[f"{method} {path}"]
        metrics['count'] += 1
        metrics['total_time'] += duration
        metrics['avg_time'] = metrics['total_time'] / metrics['count']
        metrics['min_time'] = min(metrics['min_time'], duration)
        metrics['max_time'] = max(metrics['max_time'], duration)
        if status_code >= 400:
            metrics['errors'] += 1

        log_performance_metric(
            operation=f"api_request_{method.lower()}",
            duration=duration,
            success=status_code < 400,
            method=method,
            path=path,
            status_code=status_code,
            error=error
        )

    def record_chat_outcome(self, provider: str, outcome: str) -> None:
        """Count how a chat request was answered.

        Args:
            provider: Provider name, or ``local`` for knowledge-base-only chat
            outcome: One of ``CHAT_OUTCOMES``
        """
        if outcome not in CHAT_OUTCOMES:
            raise ValueError(f"Unknown chat outcome: {outcome}")
        self.chat_outcomes[provider][outcome] += 1

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get a summary of collected metrics."""
        now = _utcnow()
        uptime = (now - self.start_time).total_seconds()

        recent_cutoff = now - timedelta(minutes=5)
        recent_requests = [req for req in self.request_times if req['timestamp'] > recent_cutoff]

        total_requests = len(self.request_times)
        recent_count = len(recent_requests)

        avg_response_time = (
            sum(req['duration'] for req in self.request_times) / total_requests
            if total_requests > 0 else 0
        )
        recent_avg_response_time = (
            sum(req['duration'] for req in recent_requests) / recent_count
            if recent_count > 0 else 0
        )

        total_errors = sum(self.error_counts.values())
        error_rate = (total_errors / total_requests * 100) if total_requests > 0 else 0

        recent_errors = sum(1 for req in recent_requests if req['status_code'] >= 400)
        recent_error_rate = (recent_errors / recent_count * 100) if recent_count > 0 else 0

        return {
            'uptime_seconds': uptime,
            'total_requests': total_requests,
            'recent_requests_5min': recent_count,
            'avg_response_time_ms': round(avg_response_time * 1000, 2),
            'recent_avg_response_time_ms': round(recent_avg_response_time * 1000, 2),
            'error_rate_percent': round(error_rate, 2),
            'recent_error_rate_percent': round(recent_error_rate, 2),
            'requests_per_minute': round(recent_count / 5, 2) if recent_count > 0 else 0,
            'endpoint_metrics': dict(self.endpoint_metrics),
            'error_counts': dict(self.error_counts),
            'chat_outcomes': {provider: dict(counts) for provider, counts in self.chat_outcomes.items()},
            'timestamp': now.isoformat()
        }

    def get_health_status(self) -> Dict[str, Any]:
        """Get health status based on metrics."""
        metrics = self.get_metrics_summary()

        status = "healthy"
        issues = []

        error_rate = metrics['recent_error_rate_percent']
        if error_rate > 25:
            status = "unhealthy"
            issues.append(f"Critical error rate: {error_rate}%")
        elif error_rate > 10:
            status = "degraded"
            issues.append(f"High error rate: {error_rate}%")

        response_time = metrics['recent_avg_response_time_ms']
        if response_time > 10000:
            status = "unhealthy"
            issues.append(f"Critical response time: {response_time}ms")
        elif response_time > 5000:
            status = "degraded" if status == "healthy" else status
            issues.append(f"Slow response time: {response_time}ms")

        return {
            'status': status,
            'issues': issues,
            'metrics': metrics
        }


metrics_collector = MetricsCollector()


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware that tags, times and records every API request."""

    def __init__(self, app, exclude_paths: Optional[list] = None):
        super().__init__(app)
        self.logger = get_logger(__name__)
        self.exclude_paths = exclude_paths or ['/health', '/metrics', '/docs', '/openapi.json']

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        user_agent = request.headers.get('user-agent', 'Unknown')
        ip_address = self._get_client_ip(request)

        self.logger.debug(
            f"Request started: {method} {path}",
            extra={'request_id': request_id, 'event': 'request_start'}
        )

        error_message = None
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            status_code = 500
            error_message = str(e)
            self.logger.error(
                f"Request failed with exception: {method} {path}",
                extra={'request_id': request_id, 'error': error_message, 'event': 'request_exception'},
                exc_info=True
            )
            response = JSONResponse(
                status_code=500,
                content={
                    'error': 'Failed to process request',
                    'message': error_message,
                }
            )

        duration = time.time() - start_time
        response.headers['X-Request-ID'] = request_id
        response.headers['X-Response-Time'] = f"{duration:.3f}s"

        log_api_request(
            method=method,
            path=path,
            status_code=status_code,
            duration=duration,
            request_id=request_id,
            user_agent=user_agent,
            ip_address=ip_address,
            error=error_message
        )

        metrics_collector.record_request(
            method=method,
            path=path,
            status_code=status_code,
            duration=duration,
            error=error_message
        )

        # Provider calls dominate latency; flag anything slower than a typical completion
        if duration > 10.0:
            self.logger.warning(
                f"Slow request: {method} {path} took {duration:.3f}s",
                extra={'request_id': request_id, 'duration': duration, 'event': 'slow_request'}
            )

        return response

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request."""
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return 'unknown'


def get_metrics() -> Dict[str, Any]:
    """Get current application metrics."""
    return metrics_collector.get_metrics_summary()


def get_health_status() -> Dict[str, Any]:
    """Get application health status."""
    return metrics_collector.get_health_status()


class DatabaseMonitor:
    """Times a database operation and logs its outcome."""

    def __init__(self, operation: str, collection: str):
        self.operation = operation
        self.collection = collection
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.start_time:
            return

        log_database_operation(
            operation=self.operation,
            collection=self.collection,
            duration=time.time() - self.start_time,
            success=exc_type is None,
            error=str(exc_val) if exc_val else None
        )
