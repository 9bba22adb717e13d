"""
Payment Service (mock)

Succeeds unless a pseudo-random draw falls below the configured failure
rate. Runs on a worker thread; the trace context and baggage arrive as
arguments, never from ambient state.
"""

import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from observability.baggage import USER_ID, Baggage
from observability.context import TraceContext
from observability.logging_fields import span_logger
from observability.recorder import SpanRecorder
from schemas.order import OrderRequest
from services.latency import simulate_latency


logger = logging.getLogger(__name__)

GATEWAY_TIMEOUT = "Payment gateway timeout"


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of one payment attempt."""

    payment_id: Optional[str] = None
    error: Optional[str] = None
    trace_id: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.payment_id is not None


def generate_payment_id() -> str:
    return f"PAY-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class PaymentService:

    DEFAULT_FAILURE_RATE = 0.15

    def __init__(
        self,
        recorder: SpanRecorder,
        failure_rate: float = DEFAULT_FAILURE_RATE,
        latency_ms: int = 0,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            recorder: Span recorder
            failure_rate: Probability (0.0-1.0) that a payment is declined
            latency_ms: Simulated gateway latency
            rng: Random source, injectable for deterministic tests
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be between 0 and 1, got {failure_rate}")
        self._recorder = recorder
        self._failure_rate = failure_rate
        self._latency_ms = latency_ms
        self._rng = rng or random.Random()

    def process_payment(
        self,
        request: OrderRequest,
        parent: Optional[TraceContext],
        baggage: Optional[Baggage] = None,
    ) -> PaymentResult:
        with self._recorder.scoped("payment.process", parent, baggage) as span:
            user_id = (baggage.get(USER_ID) if baggage else None) or request.user_id
            span.tag("payment.method", "CREDIT_CARD")
            span.tag("user.id", user_id or "anonymous")

            log = span_logger(logger, span, baggage)
            log.info(f"Processing payment for order, user: {user_id}")

            simulate_latency(self._latency_ms)

            if self._rng.random() < self._failure_rate:
                span.mark_error(GATEWAY_TIMEOUT)
                log.warning(f"Payment failed: {GATEWAY_TIMEOUT}")
                return PaymentResult(error=GATEWAY_TIMEOUT, trace_id=span.trace_id)

            payment_id = generate_payment_id()
            span.tag("payment.id", payment_id)
            log.info(f"Payment processed successfully: {payment_id}")
            return PaymentResult(payment_id=payment_id, trace_id=span.trace_id)
