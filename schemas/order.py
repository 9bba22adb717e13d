from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from observability.baggage import Baggage


class OrderRequest(BaseModel):
    """
    Order as received by the API.

    Accepts camelCase (productId) and snake_case (product_id) keys.
    User, tenant and correlation ids normally arrive as headers.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str = Field(..., min_length=1, description="Product to order")
    quantity: int = Field(..., gt=0, description="Units requested")
    user_id: Optional[str] = Field(default=None, description="Ordering user")
    tenant_id: Optional[str] = Field(default=None, description="Owning tenant")
    correlation_id: Optional[str] = Field(default=None, description="Caller correlation id")

    def baggage(self) -> Baggage:
        return Baggage.of(
            user_id=self.user_id,
            tenant_id=self.tenant_id,
            correlation_id=self.correlation_id,
        )


class OrderResult(BaseModel):
    """
    Structured outcome of the order workflow, success or failure.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    status: str = Field(..., description="COMPLETED or FAILED")
    state: str = Field(..., description="Last workflow state reached")
    trace_id: str = Field(..., description="Trace id of the order span")
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    failed_step: Optional[str] = None
    audit: Optional[Dict[str, Any]] = None
    audited: Optional[bool] = Field(
        default=None, description="Whether the audit call succeeded; unset when no audit was attempted"
    )

    def to_response(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, dropping unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
