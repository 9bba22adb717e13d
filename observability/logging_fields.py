"""
Trace fields for log records.

Loggers carry the trace id, span id and baggage values of the operation
they log for, passed explicitly through a LoggerAdapter.
"""

import logging
from typing import Any, Dict, MutableMapping, Optional, Tuple

from observability.baggage import CORRELATION_ID, TENANT_ID, USER_ID, Baggage
from observability.span import Span


TRACE_FIELDS = ("trace_id", "span_id", "user_id", "tenant_id", "correlation_id")
UNSET = "-"


class TraceFieldsFilter(logging.Filter):
    """Fills missing trace fields so the formatter never fails."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in TRACE_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, UNSET)
        return True


class SpanLoggerAdapter(logging.LoggerAdapter):
    """Merges the bound trace fields with any per-call extra."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def trace_fields(span: Optional[Span], baggage: Optional[Baggage]) -> Dict[str, str]:
    fields = {name: UNSET for name in TRACE_FIELDS}
    if span is not None:
        fields["trace_id"] = span.context.trace_id
        fields["span_id"] = span.context.span_id
    if baggage is not None:
        fields["user_id"] = baggage.get(USER_ID) or UNSET
        fields["tenant_id"] = baggage.get(TENANT_ID) or UNSET
        fields["correlation_id"] = baggage.get(CORRELATION_ID) or UNSET
    return fields


def span_logger(logger: logging.Logger, span: Optional[Span], baggage: Optional[Baggage] = None) -> SpanLoggerAdapter:
    """Bind a logger to a span and its baggage."""
    return SpanLoggerAdapter(logger, trace_fields(span, baggage))
