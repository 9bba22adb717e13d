"""
Trace Context

Identity of one span within one trace.

DESIGN RULES:
- Immutable (frozen dataclass)
- Children are derived, never mutated in place
- Ids are lowercase hex strings (32 chars trace, 16 chars span)
"""

from dataclasses import dataclass, replace
from typing import Optional

from opentelemetry.sdk.trace.id_generator import RandomIdGenerator
from opentelemetry.trace import format_span_id, format_trace_id


_id_generator = RandomIdGenerator()


def new_trace_id() -> str:
    return format_trace_id(_id_generator.generate_trace_id())


def new_span_id() -> str:
    return format_span_id(_id_generator.generate_span_id())


@dataclass(frozen=True)
class TraceContext:
    """
    Identity of a span: trace id, span id, parent span id, sampling flag.

    sampled is None when the sampling decision was deferred upstream
    (B3 without a sampling state); the recorder decides it locally.
    """

    trace_id: str
    span_id: str
    parent_span_id: Optional[str] = None
    sampled: Optional[bool] = True

    @classmethod
    def new_root(cls, sampled: bool = True) -> "TraceContext":
        """Start a new trace with no parent."""
        return cls(trace_id=new_trace_id(), span_id=new_span_id(), sampled=sampled)

    def child(self) -> "TraceContext":
        """Derive the context of a child span: same trace, new span, parent = self."""
        return replace(self, span_id=new_span_id(), parent_span_id=self.span_id)

    def decided(self, sampled: bool) -> "TraceContext":
        """Return this context with a deferred sampling decision filled in."""
        if self.sampled is not None:
            return self
        return replace(self, sampled=sampled)

    @property
    def is_root(self) -> bool:
        return self.parent_span_id is None
