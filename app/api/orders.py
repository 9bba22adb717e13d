"""
Orders API Routes

Thin delegation layer to the order workflow.
Reads trace context and baggage from the inbound headers and hands them
to the workflow explicitly. Contains NO business logic.
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.dependencies import get_order_workflow, get_propagator, get_span_recorder
from observability.baggage import CORRELATION_ID, TENANT_ID, USER_ID
from observability.logging_fields import span_logger
from observability.propagation import TracePropagator
from observability.recorder import SpanRecorder
from orchestration.workflow import OrderWorkflow
from schemas.order import OrderRequest
from services.latency import simulate_latency


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/orders")
def create_order(
    order: OrderRequest,
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    x_tenant_id: Optional[str] = Header(default=None),
    x_correlation_id: Optional[str] = Header(default=None),
    workflow: OrderWorkflow = Depends(get_order_workflow),
    propagator: TracePropagator = Depends(get_propagator),
) -> JSONResponse:
    """
    Create an order.

    X-User-Id / X-Tenant-Id / X-Correlation-Id win over inbound baggage
    headers, which win over the body.
    """
    parent, inbound = propagator.extract(request.headers)

    order = order.model_copy(update={
        "user_id": x_user_id or inbound.get(USER_ID) or order.user_id,
        "tenant_id": x_tenant_id or inbound.get(TENANT_ID) or order.tenant_id,
        "correlation_id": x_correlation_id or inbound.get(CORRELATION_ID) or order.correlation_id,
    })

    logger.info(
        f"Received order creation request from user: {order.user_id}, "
        f"tenant: {order.tenant_id}, correlation: {order.correlation_id}"
    )

    result = workflow.create_order(order, parent=parent, baggage=order.baggage())

    status_code = 200 if result.success else 400
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.get("/orders/{order_id}")
def get_order(
    order_id: str,
    request: Request,
    recorder: SpanRecorder = Depends(get_span_recorder),
    propagator: TracePropagator = Depends(get_propagator),
) -> Dict[str, Any]:
    parent, baggage = propagator.extract(request.headers)

    with recorder.scoped("order.lookup", parent, baggage) as span:
        span.tag("order.id", order_id)
        span_logger(logger, span, baggage).info(f"Fetching order: {order_id}")
        simulate_latency(settings.order_lookup_latency_ms)

    return {
        "orderId": order_id,
        "status": "PROCESSING",
        "traceId": span.trace_id,
    }


@router.post("/audit")
def audit(
    audit_data: Dict[str, Any],
    request: Request,
    recorder: SpanRecorder = Depends(get_span_recorder),
    propagator: TracePropagator = Depends(get_propagator),
) -> Dict[str, Any]:
    """
    Stand-in for an external audit service.

    Joins the caller's trace when B3 headers are present.
    """
    parent, baggage = propagator.extract(request.headers)

    with recorder.scoped("audit.record", parent, baggage) as span:
        span_logger(logger, span, baggage).info(f"Audit endpoint called with data: {audit_data}")

    return {
        "audited": True,
        "timestamp": int(time.time() * 1000),
        "traceId": span.trace_id,
    }
