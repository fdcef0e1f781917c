"""
Prometheus metrics for the ledger.

/metrics exposes request latency per ledger endpoint together with the sales
workflow, document and error counters. It is not authenticated; keep it on
the internal network.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share samples through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

# Collectors register on the default registry; the multiprocess collector reads the shared files
_collector_registry = None if MULTIPROCESS_MODE else REGISTRY

# Endpoints that are not part of the ledger API
UNTRACKED_ENDPOINTS = frozenset({'metrics.metrics', 'health', 'csrf_token', 'static'})

ledger_http_requests_total = Counter(
    'ledger_http_requests_total',
    'Ledger API requests',
    ['blueprint', 'endpoint', 'method', 'http_status'],
    registry=_collector_registry
)

ledger_request_duration_seconds = Histogram(
    'ledger_request_duration_seconds',
    'Ledger API latency in seconds (PDF rendering included)',
    ['endpoint'],
    registry=_collector_registry,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

sales_transitions_total = Counter(
    'sales_transitions_total',
    'Sales record status transition requests',
    ['from_status', 'to_status', 'outcome'],
    registry=_collector_registry
)

documents_served_total = Counter(
    'documents_served_total',
    'Commercial documents served, by type and format',
    ['document_type', 'format'],
    registry=_collector_registry
)

ledger_errors_total = Counter(
    'ledger_errors_total',
    'Ledger errors returned to clients',
    ['error', 'status_code'],
    registry=_collector_registry
)


def record_transition(from_status: str, to_status: str, outcome: str):
    """Count one transition request; outcome is applied, noop or rejected."""
    sales_transitions_total.labels(
        from_status=from_status or 'NEW',
        to_status=to_status,
        outcome=outcome
    ).inc()


def record_document(document_type: str, fmt: str):
    """Count one served document; fmt is json or pdf."""
    documents_served_total.labels(document_type=document_type, format=fmt).inc()


def record_error(error):
    """Count a LedgerError by class name and status code."""
    ledger_errors_total.labels(error=type(error).__name__, status_code=error.status_code).inc()


def setup_metrics_instrumentation(app):
    """Time every ledger request and count it per blueprint and endpoint."""

    @app.before_request
    def start_request_timer():
        g._ledger_request_started = time.perf_counter()

    @app.after_request
    def observe_request(response):
        started = g.pop('_ledger_request_started', None)
        endpoint = request.endpoint or 'unknown'
        if started is None or endpoint in UNTRACKED_ENDPOINTS:
            return response

        try:
            ledger_request_duration_seconds.labels(endpoint=endpoint).observe(time.perf_counter() - started)
            ledger_http_requests_total.labels(
                blueprint=request.blueprint or 'app',
                endpoint=endpoint,
                method=request.method,
                http_status=response.status_code
            ).inc()
        except ValueError as e:
            app.logger.warning(f"Failed to record metrics for {endpoint}: {e}")

        return response


@metrics_bp.route('/metrics')
def metrics():
    """Prometheus exposition of the ledger metrics."""
    if MULTIPROCESS_MODE:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        data = generate_latest(registry)
    else:
        data = generate_latest(REGISTRY)

    return Response(data, mimetype=CONTENT_TYPE_LATEST)
