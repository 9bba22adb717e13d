"""
Order Workflow

Linear order flow, each step wrapped in a span:

    RECEIVED -> STOCK_CHECKED -> PAYMENT_PROCESSED -> INVENTORY_UPDATED
             -> (AUDITED, only with a correlation id) -> COMPLETED

Any failed step moves the order to FAILED, skips the remaining steps and
marks the order span with the error. The caller always gets an OrderResult.
"""

import logging
import time
import uuid
from concurrent.futures import CancelledError, ThreadPoolExecutor
from typing import Any, Dict, Optional, Tuple

from observability.baggage import CORRELATION_ID, Baggage
from observability.context import TraceContext
from observability.logging_fields import span_logger
from observability.recorder import SpanRecorder
from observability.span import Span
from orchestration.state import FailureKind, OrderState, WorkflowState
from schemas.order import OrderRequest, OrderResult
from services.audit import AuditClient
from services.inventory import InventoryService
from services.payment import PaymentResult, PaymentService


logger = logging.getLogger(__name__)

AUDIT_FAILED = "AUDIT_FAILED"
SUCCESS_MESSAGE = "Order created successfully"


def generate_order_id() -> str:
    return f"ORD-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class OrderWorkflow:
    """
    Orchestrates one order across the mock domain services.

    Trace context is explicit: the order span's context is handed to every
    step, including the payment task running on a worker thread.
    """

    def __init__(
        self,
        recorder: SpanRecorder,
        inventory: InventoryService,
        payment: PaymentService,
        audit: AuditClient,
    ):
        self._recorder = recorder
        self._inventory = inventory
        self._payment = payment
        self._audit = audit

    def create_order(
        self,
        request: OrderRequest,
        parent: Optional[TraceContext] = None,
        baggage: Optional[Baggage] = None,
    ) -> OrderResult:
        """
        Run the order workflow.

        Args:
            request: The order
            parent: Inbound trace context; a new trace is started when None
            baggage: Baggage to propagate; derived from the request when None

        Returns:
            OrderResult: COMPLETED with order and payment ids, or FAILED with
            the failing step and error kind
        """
        if baggage is None:
            baggage = request.baggage()

        state = WorkflowState()
        order_id = None
        span = self._recorder.start_span("order.creation", parent, baggage)
        log = span_logger(logger, span, baggage)

        try:
            span.tag("product.id", request.product_id)
            span.tag("user.id", request.user_id or "anonymous")
            log.info(
                f"Creating order for product: {request.product_id}, "
                f"quantity: {request.quantity}, user: {request.user_id}"
            )

            self._run_steps(request, span, baggage, state)

            if not state.failed:
                order_id = generate_order_id()
                span.tag("order.id", order_id)
                state.advance(OrderState.COMPLETED)

        except Exception as e:
            log.exception(f"Order creation failed in {state.current_step}")
            state.fail(state.current_step, FailureKind.INFRASTRUCTURE, str(e) or type(e).__name__)

        finally:
            if state.failed:
                span.mark_error(state.failure.reason)
                log.error(f"Order failed at {state.failure.step}: {state.failure.reason}")
            self._recorder.finish(span)

        return self._build_result(span, state, order_id)

    def _run_steps(
        self,
        request: OrderRequest,
        span: Span,
        baggage: Baggage,
        state: WorkflowState,
    ) -> None:
        context = span.context

        # Step 1: Check inventory
        state.current_step = "inventory.check"
        if not self._inventory.check_stock(request.product_id, request.quantity, context, baggage):
            state.fail(
                state.current_step,
                FailureKind.DOMAIN,
                f"Insufficient stock for product: {request.product_id}",
            )
            return
        state.advance(OrderState.STOCK_CHECKED)

        # Step 2: Process payment on a worker thread
        state.current_step = "payment.process"
        payment = self._process_payment_async(request, context, baggage)
        if payment is None:
            state.fail(state.current_step, FailureKind.DOMAIN, "Payment processing interrupted")
            return
        if not payment.succeeded:
            state.fail(state.current_step, FailureKind.DOMAIN, payment.error)
            return
        state.payment_id = payment.payment_id
        state.advance(OrderState.PAYMENT_PROCESSED)

        # Step 3: Update inventory
        state.current_step = "inventory.update"
        self._inventory.update_inventory(request.product_id, request.quantity, context, baggage)
        state.advance(OrderState.INVENTORY_UPDATED)

        # Step 4: Audit call (only with a correlation id)
        if baggage.get(CORRELATION_ID):
            state.current_step = "external.audit.call"
            state.audit, state.audited = self._call_audit(request, context, baggage)
            if state.audited:
                state.advance(OrderState.AUDITED)

    def _process_payment_async(
        self,
        request: OrderRequest,
        context: TraceContext,
        baggage: Baggage,
    ) -> Optional[PaymentResult]:
        """
        Submit the payment to a worker thread and wait for it.

        Returns None when the wait was interrupted: the future was cancelled,
        or a KeyboardInterrupt reached the waiting thread or the worker.
        """
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="payment") as executor:
            future = executor.submit(self._payment.process_payment, request, context, baggage)
            try:
                return future.result()
            except CancelledError:
                return None
            except KeyboardInterrupt:
                future.cancel()
                logger.warning("Payment wait interrupted")
                return None

    def _call_audit(
        self,
        request: OrderRequest,
        context: TraceContext,
        baggage: Baggage,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Call the audit service under its own span.

        Returns the audit response and whether the call succeeded. A failed
        call never propagates; its error goes into the response dict.
        """
        with self._recorder.scoped("external.audit.call", context, baggage) as audit_span:
            audit_span.tag("http.method", "POST")
            audit_span.tag("http.url", self._audit.url)
            log = span_logger(logger, audit_span, baggage)
            log.info(f"Calling audit service: {self._audit.url}")

            try:
                result = self._audit.send(
                    request.model_dump(by_alias=True), audit_span.context, baggage
                )
                log.debug(f"Audit result: {result}")
                return result, True
            except Exception as e:
                audit_span.mark_error(e)
                log.warning(f"Audit service call failed: {e}")
                return {"status": AUDIT_FAILED, "error": str(e)}, False

    @staticmethod
    def _build_result(span: Span, state: WorkflowState, order_id: Optional[str]) -> OrderResult:
        if state.failed:
            return OrderResult(
                success=False,
                status=OrderState.FAILED.value,
                state=state.state.value,
                trace_id=span.trace_id,
                payment_id=state.payment_id,
                error=state.failure.reason,
                error_kind=state.failure.kind.value,
                failed_step=state.failure.step,
                audit=state.audit,
                audited=state.audited,
            )

        return OrderResult(
            success=True,
            status=OrderState.COMPLETED.value,
            state=state.state.value,
            trace_id=span.trace_id,
            order_id=order_id,
            payment_id=state.payment_id,
            message=SUCCESS_MESSAGE,
            audit=state.audit,
            audited=state.audited,
        )
