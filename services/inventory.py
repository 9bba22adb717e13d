"""
Inventory Service (mock)

No real inventory: a product is "in stock" iff the requested quantity does
not exceed a fixed limit.
"""

import logging
from typing import Optional

from observability.baggage import Baggage
from observability.context import TraceContext
from observability.logging_fields import span_logger
from observability.recorder import SpanRecorder
from services.latency import simulate_latency


logger = logging.getLogger(__name__)


class InventoryService:

    DEFAULT_STOCK_LIMIT = 100

    def __init__(
        self,
        recorder: SpanRecorder,
        stock_limit: int = DEFAULT_STOCK_LIMIT,
        check_latency_ms: int = 0,
        update_latency_ms: int = 0,
    ):
        self._recorder = recorder
        self._stock_limit = stock_limit
        self._check_latency_ms = check_latency_ms
        self._update_latency_ms = update_latency_ms

    def check_stock(
        self,
        product_id: str,
        quantity: int,
        parent: Optional[TraceContext],
        baggage: Optional[Baggage] = None,
    ) -> bool:
        """
        Check stock for a product.

        Returns:
            bool: True iff quantity <= stock limit
        """
        with self._recorder.scoped("inventory.check", parent, baggage) as span:
            span.tag("product.id", product_id)
            span.tag("requested.quantity", quantity)

            log = span_logger(logger, span, baggage)
            log.info(f"Checking stock for product: {product_id}")

            simulate_latency(self._check_latency_ms)
            in_stock = quantity <= self._stock_limit

            span.tag("in.stock", str(in_stock).lower())
            span.annotate("Stock check completed")
            return in_stock

    def update_inventory(
        self,
        product_id: str,
        quantity: int,
        parent: Optional[TraceContext],
        baggage: Optional[Baggage] = None,
    ) -> None:
        with self._recorder.scoped("inventory.update", parent, baggage) as span:
            span.tag("product.id", product_id)
            span.tag("quantity", quantity)

            log = span_logger(logger, span, baggage)
            log.info(f"Updating inventory for product: {product_id}, quantity: {quantity}")

            simulate_latency(self._update_latency_ms)
            log.debug("Inventory updated successfully")
