"""
Prometheus metrics exporter
"""
import logging
from typing import Optional
from prometheus_client import Counter, Histogram, start_http_server
from functools import wraps
import time

logger = logging.getLogger(__name__)

# Counters
content_created = Counter('moderation_content_created_total', 'Total content submitted', ['facets'])
results_recorded = Counter('moderation_results_recorded_total', 'Total moderation results recorded', ['media_type', 'status'])
final_status_transitions = Counter('moderation_final_status_transitions_total', 'Final status changes', ['source', 'status'])
overrides = Counter('moderation_overrides_total', 'Human status overrides', ['final_status'])
reviews = Counter('moderation_reviews_total', 'Human reviews without changes')
rejected_requests = Counter('moderation_rejected_requests_total', 'Requests rejected by the core', ['kind'])
dlq_messages = Counter('moderation_dlq_messages_total', 'Messages routed to the dead letter queue')

# Histograms (for latency)
processing_latency = Histogram('moderation_processing_duration_seconds', 'Processing duration', ['operation'])


class MetricsExporter:
    """Prometheus metrics exporter"""

    def __init__(self, port: int = 8000):
        self.port = port
        self.server_started = False

    def start(self, port: Optional[int] = None):
        """Start Prometheus HTTP server (METRICS_PORT comes in through Settings)"""
        if port is not None:
            self.port = port
        if not self.server_started:
            start_http_server(self.port)
            self.server_started = True
            logger.info(f"Prometheus metrics server started on port {self.port}")

    @staticmethod
    def track_processing(operation: str):
        """Decorator to track processing time"""
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    result = func(*args, **kwargs)
                    duration = time.time() - start_time
                    processing_latency.labels(operation=operation).observe(duration)
                    return result
                except Exception:
                    duration = time.time() - start_time
                    processing_latency.labels(operation=f"{operation}_error").observe(duration)
                    raise
            return wrapper
        return decorator

    @staticmethod
    def record_content(facets: str):
        """Record content submission, labelled by present facets (e.g. TXT+IMG)"""
        content_created.labels(facets=facets).inc()

    @staticmethod
    def record_result(media_type: str, status: str):
        """Record a machine result"""
        results_recorded.labels(media_type=media_type, status=status).inc()

    @staticmethod
    def record_transition(source: str, status: str):
        """Record a final status change"""
        final_status_transitions.labels(source=source, status=status).inc()

    @staticmethod
    def record_override(final_status: str):
        overrides.labels(final_status=final_status).inc()

    @staticmethod
    def record_review():
        reviews.inc()

    @staticmethod
    def record_rejection(kind: str):
        """Record a validation / not-found / conflict rejection"""
        rejected_requests.labels(kind=kind).inc()

    @staticmethod
    def record_dlq():
        dlq_messages.inc()


# Singleton instance
metrics = MetricsExporter()
