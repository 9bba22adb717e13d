#!/usr/bin/env python3
"""
Order Workflow Tests

Tests the complete order flow:
Request → Stock check → Payment (worker thread) → Inventory update → Audit → Result

Run: pytest tests/test_workflow.py
"""

import urllib.error
from concurrent.futures import CancelledError
from unittest.mock import patch

from conftest import AUDIT_URL, mock_http_response
from observability.baggage import Baggage
from observability.context import TraceContext
from observability.propagation import TracePropagator
from observability.recorder import SpanRecorder
from observability.sink import SpanExporter
from orchestration.state import OrderState
from orchestration.workflow import AUDIT_FAILED, OrderWorkflow
from schemas.order import OrderRequest
from services.audit import AuditClient
from services.inventory import InventoryService
from services.payment import PaymentService


def order(**overrides) -> OrderRequest:
    fields = {"product_id": "P1", "quantity": 10, "user_id": "u1"}
    fields.update(overrides)
    return OrderRequest(**fields)


def test_completed_order(make_workflow, exporter):
    """Scenario: P1 x10 for u1 → COMPLETED with order and payment ids."""
    print("=" * 60)
    print("TEST: Completed order")
    print("=" * 60)

    result = make_workflow().create_order(order())

    print(f"  status: {result.status}")
    print(f"  order_id: {result.order_id}")
    print(f"  payment_id: {result.payment_id}")

    assert result.success
    assert result.status == "COMPLETED"
    assert result.state == OrderState.COMPLETED.value
    assert result.order_id.startswith("ORD-")
    assert result.payment_id.startswith("PAY-")
    assert result.message == "Order created successfully"
    assert result.audit is None
    assert result.audited is None

    (root,) = exporter.by_name("order.creation")
    assert result.trace_id
    assert result.trace_id == root.trace_id
    assert root.tags["order.id"] == result.order_id
    assert root.tags["user.id"] == "u1"
    assert root.error is None

    print("  ✅ PASSED\n")


def test_spans_form_a_tree_under_order_span(make_workflow, exporter):
    result = make_workflow().create_order(order())

    spans = exporter.for_trace(result.trace_id)
    (root,) = [s for s in spans if s.name == "order.creation"]
    children = [s for s in spans if s is not root]

    assert sorted(s.name for s in children) == ["inventory.check", "inventory.update", "payment.process"]
    assert all(s.parent_span_id == root.span_id for s in children)


def test_insufficient_stock_fails_without_payment(make_workflow, exporter):
    """Scenario: P1 x200 → FAILED with insufficient stock, no payment attempted."""
    result = make_workflow().create_order(order(quantity=200))

    assert not result.success
    assert result.status == "FAILED"
    assert "insufficient stock" in result.error.lower()
    assert result.error_kind == "domain"
    assert result.failed_step == "inventory.check"
    assert result.order_id is None
    assert result.payment_id is None
    assert exporter.by_name("payment.process") == []
    assert exporter.by_name("order.creation")[0].error == result.error


def test_payment_failure_aborts_before_inventory_update(make_workflow, exporter):
    result = make_workflow(failure_rate=1.0).create_order(order(correlation_id="c1"))

    assert result.status == "FAILED"
    assert result.failed_step == "payment.process"
    assert result.error == "Payment gateway timeout"
    assert result.error_kind == "domain"
    assert exporter.by_name("inventory.update") == []
    assert exporter.by_name("external.audit.call") == []
    assert exporter.by_name("order.creation")[0].error == "Payment gateway timeout"


def test_no_audit_call_without_correlation_id(make_workflow):
    with patch("urllib.request.urlopen") as mock_urlopen:
        result = make_workflow().create_order(order())

        mock_urlopen.assert_not_called()

    assert result.status == "COMPLETED"


def test_audit_failure_still_completes(make_workflow, exporter):
    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.side_effect = urllib.error.URLError("connection refused")

        result = make_workflow().create_order(order(correlation_id="c1"))

    assert result.success
    assert result.status == "COMPLETED"
    assert result.audited is False
    assert result.audit["status"] == AUDIT_FAILED
    assert "connection refused" in result.audit["error"]
    assert exporter.by_name("external.audit.call")[0].error is not None
    assert exporter.by_name("order.creation")[0].error is None


def test_audit_call_carries_trace_and_baggage_headers(make_workflow, exporter):
    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = mock_http_response({"audited": True})

        result = make_workflow().create_order(order(tenant_id="t1", correlation_id="c1"))

        sent = mock_urlopen.call_args[0][0]

    headers = {k.lower(): v for k, v in sent.header_items()}
    (audit_span,) = exporter.by_name("external.audit.call")

    assert sent.full_url == AUDIT_URL
    assert sent.get_method() == "POST"
    assert headers["x-b3-traceid"] == result.trace_id
    assert headers["x-b3-spanid"] == audit_span.span_id
    assert headers["baggage-user-id"] == "u1"
    assert headers["baggage-tenant-id"] == "t1"
    assert headers["baggage-correlation-id"] == "c1"
    assert result.audit == {"audited": True}
    assert result.audited is True
    assert result.state == OrderState.COMPLETED.value


def test_payment_task_observes_inbound_baggage(make_workflow, exporter):
    baggage = Baggage.of(user_id="u-42", tenant_id="acme", correlation_id="corr-7")

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = mock_http_response({})
        make_workflow().create_order(order(), baggage=baggage)

    (payment_span,) = exporter.by_name("payment.process")
    assert payment_span.tags["baggage.user-id"] == "u-42"
    assert payment_span.tags["baggage.tenant-id"] == "acme"
    assert payment_span.tags["baggage.correlation-id"] == "corr-7"
    assert payment_span.tags["user.id"] == "u-42"


def test_joins_inbound_trace(make_workflow, exporter):
    inbound = TraceContext.new_root()

    result = make_workflow().create_order(order(), parent=inbound)

    (root,) = exporter.by_name("order.creation")
    assert result.trace_id == inbound.trace_id
    assert root.parent_span_id == inbound.span_id


def test_unexpected_error_is_infrastructure_failure(recorder, propagator, exporter):
    class BrokenPayment(PaymentService):
        def process_payment(self, request, parent, baggage=None):
            raise RuntimeError("gateway client crashed")

    workflow = OrderWorkflow(
        recorder=recorder,
        inventory=InventoryService(recorder),
        payment=BrokenPayment(recorder),
        audit=AuditClient(AUDIT_URL, propagator),
    )

    result = workflow.create_order(order())

    assert result.status == "FAILED"
    assert result.error_kind == "infrastructure"
    assert result.failed_step == "payment.process"
    assert result.error == "gateway client crashed"
    assert exporter.by_name("inventory.update") == []
    assert exporter.by_name("order.creation")[0].error == "gateway client crashed"


def test_interrupted_payment_wait_is_domain_failure(recorder, propagator):
    class InterruptedPayment(PaymentService):
        def process_payment(self, request, parent, baggage=None):
            raise CancelledError()

    workflow = OrderWorkflow(
        recorder=recorder,
        inventory=InventoryService(recorder),
        payment=InterruptedPayment(recorder),
        audit=AuditClient(AUDIT_URL, propagator),
    )

    result = workflow.create_order(order())

    assert result.status == "FAILED"
    assert result.error_kind == "domain"
    assert result.error == "Payment processing interrupted"


def test_exporter_failure_does_not_fail_order():
    class ExplodingExporter(SpanExporter):
        def export(self, record):
            raise RuntimeError("collector down")

    recorder = SpanRecorder(exporter=ExplodingExporter())
    workflow = OrderWorkflow(
        recorder=recorder,
        inventory=InventoryService(recorder),
        payment=PaymentService(recorder, failure_rate=0.0),
        audit=AuditClient(AUDIT_URL, TracePropagator()),
    )

    assert workflow.create_order(order()).status == "COMPLETED"


def test_payment_interrupt_is_domain_failure(recorder, propagator, exporter):
    class InterruptedPayment(PaymentService):
        def process_payment(self, request, parent, baggage=None):
            raise KeyboardInterrupt()

    workflow = OrderWorkflow(
        recorder=recorder,
        inventory=InventoryService(recorder),
        payment=InterruptedPayment(recorder),
        audit=AuditClient(AUDIT_URL, propagator),
    )

    result = workflow.create_order(order())

    assert result.status == "FAILED"
    assert result.error_kind == "domain"
    assert result.failed_step == "payment.process"
    assert result.error == "Payment processing interrupted"
    assert exporter.by_name("inventory.update") == []


def test_audit_body_status_does_not_decide_success(make_workflow, exporter):
    """A remote body that happens to say AUDIT_FAILED is still a successful call."""
    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = mock_http_response({"status": AUDIT_FAILED})

        result = make_workflow().create_order(order(correlation_id="c1"))

    assert result.status == "COMPLETED"
    assert result.audited is True
    assert result.audit == {"status": AUDIT_FAILED}
    assert exporter.by_name("external.audit.call")[0].error is None


def test_audited_state_only_after_successful_audit(make_workflow):
    workflow = make_workflow()

    with patch("urllib.request.urlopen") as mock_urlopen:
        mock_urlopen.return_value = mock_http_response({"audited": True})
        ok = workflow.create_order(order(correlation_id="c1"))

        mock_urlopen.side_effect = urllib.error.URLError("connection refused")
        failed = workflow.create_order(order(correlation_id="c2"))

    assert ok.audited is True
    assert failed.audited is False


def test_inbound_trace_without_sampling_state_is_exported(make_workflow, exporter):
    """B3 with only trace and span ids defers sampling; the local default applies."""
    inbound = TracePropagator().extract_context({
        "X-B3-TraceId": "463ac35c9f6413ad48485a3953bb6124",
        "X-B3-SpanId": "a2fb4a1d1a96d312",
    })
    assert inbound.sampled is None

    result = make_workflow().create_order(order(), parent=inbound)

    (root,) = exporter.by_name("order.creation")
    assert result.trace_id == inbound.trace_id
    assert root.parent_span_id == inbound.span_id
    assert root.context.sampled is True
    assert len(exporter.for_trace(inbound.trace_id)) == 4
