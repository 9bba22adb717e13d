"""
FastAPI Dependencies

All object creation happens here, not per request.
Routes receive the wired components through Depends(), so tests can swap
them with app.dependency_overrides.
"""

from functools import lru_cache

from app.core.config import settings
from observability.propagation import TracePropagator
from observability.recorder import SpanRecorder
from observability.sink import build_exporter
from orchestration.workflow import OrderWorkflow
from services.audit import AuditClient
from services.inventory import InventoryService
from services.payment import PaymentService


@lru_cache(maxsize=1)
def get_propagator() -> TracePropagator:
    return TracePropagator(single_header=settings.b3_single_header)


@lru_cache(maxsize=1)
def get_span_recorder() -> SpanRecorder:
    """
    Create and cache the SpanRecorder singleton.

    The exporter is chosen by settings.span_exporter.
    """
    exporter = build_exporter(
        settings.span_exporter,
        service_name=settings.service_name,
        zipkin_url=settings.zipkin_url,
        zipkin_timeout_ms=settings.zipkin_timeout_ms,
    )
    return SpanRecorder(exporter=exporter, sampled_by_default=settings.sampled_by_default)


@lru_cache(maxsize=1)
def get_order_workflow() -> OrderWorkflow:
    """
    Create and cache the OrderWorkflow singleton.

    All components are wired here:
    - InventoryService: stock check and update (mock)
    - PaymentService: payment with configurable failure rate (mock)
    - AuditClient: outbound audit call with trace headers
    """
    recorder = get_span_recorder()

    inventory = InventoryService(
        recorder,
        stock_limit=settings.stock_limit,
        check_latency_ms=settings.inventory_check_latency_ms,
        update_latency_ms=settings.inventory_update_latency_ms,
    )
    payment = PaymentService(
        recorder,
        failure_rate=settings.payment_failure_rate,
        latency_ms=settings.payment_latency_ms,
    )
    audit = AuditClient(
        settings.audit_url,
        get_propagator(),
        timeout_ms=settings.audit_timeout_ms,
    )

    return OrderWorkflow(
        recorder=recorder,
        inventory=inventory,
        payment=payment,
        audit=audit,
    )
