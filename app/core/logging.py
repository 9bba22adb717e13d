import logging
import sys
from app.core.config import settings
from observability.logging_fields import TraceFieldsFilter

def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Every line carries the trace id, span id and baggage values of the
    operation that logged it ("-" when logged outside a span).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create console handler
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TraceFieldsFilter())
    formatter = logging.Formatter(
        fmt=(
            "%(asctime)s [%(levelname)s] [%(name)s] [%(trace_id)s,%(span_id)s] "
            "[user=%(user_id)s tenant=%(tenant_id)s corr=%(correlation_id)s] %(message)s"
        ),
        datefmt="%Y-%m-%dT%H:%M:%S%z"
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
