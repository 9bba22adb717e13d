# Mock Domain Services Package
from services.inventory import InventoryService
from services.payment import PaymentResult, PaymentService
from services.audit import AuditCallError, AuditClient

__all__ = ["InventoryService", "PaymentService", "PaymentResult", "AuditClient", "AuditCallError"]
