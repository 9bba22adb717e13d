from typing import Any, Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field


class OrderState(str, Enum):
    RECEIVED = "RECEIVED"
    STOCK_CHECKED = "STOCK_CHECKED"
    PAYMENT_PROCESSED = "PAYMENT_PROCESSED"
    INVENTORY_UPDATED = "INVENTORY_UPDATED"
    AUDITED = "AUDITED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FailureKind(str, Enum):
    """
    DOMAIN: the business said no (stock, payment declined, interrupted wait).
    INFRASTRUCTURE: something broke unexpectedly inside a step.
    """
    DOMAIN = "domain"
    INFRASTRUCTURE = "infrastructure"


class StepFailure(BaseModel):
    """
    Why a workflow step failed.
    """
    step: str
    kind: FailureKind
    reason: str


class WorkflowState(BaseModel):
    """
    Mutable state tracking during one order (internal use).
    """
    state: OrderState = OrderState.RECEIVED
    current_step: str = "order.creation"
    history: List[OrderState] = Field(default_factory=lambda: [OrderState.RECEIVED])
    payment_id: Optional[str] = None
    audit: Optional[Dict[str, Any]] = None
    audited: Optional[bool] = None
    failure: Optional[StepFailure] = None

    def advance(self, state: OrderState) -> None:
        self.state = state
        self.history.append(state)

    def fail(self, step: str, kind: FailureKind, reason: str) -> None:
        self.failure = StepFailure(step=step, kind=kind, reason=reason)
        self.advance(OrderState.FAILED)

    @property
    def failed(self) -> bool:
        return self.state == OrderState.FAILED
