# Observability Package
from observability.baggage import BAGGAGE_FIELDS, CORRELATION_ID, TENANT_ID, USER_ID, Baggage, BaggageField
from observability.context import TraceContext
from observability.propagation import TracePropagator
from observability.recorder import SpanRecorder
from observability.sink import InMemorySpanExporter, LoggingSpanExporter, SpanExporter, ZipkinSpanExporter
from observability.span import Span, SpanRecord, SpanStateError

__all__ = [
    "BAGGAGE_FIELDS",
    "USER_ID",
    "TENANT_ID",
    "CORRELATION_ID",
    "Baggage",
    "BaggageField",
    "TraceContext",
    "TracePropagator",
    "SpanRecorder",
    "SpanExporter",
    "LoggingSpanExporter",
    "InMemorySpanExporter",
    "ZipkinSpanExporter",
    "Span",
    "SpanRecord",
    "SpanStateError",
]
