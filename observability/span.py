"""
Span Model

A timed, named record of one operation within a trace.

DESIGN RULES:
- A Span is open until finish(); a finished Span rejects further changes
- finish() produces a SpanRecord, which is immutable
- No dependencies on services or workflow
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from observability.context import TraceContext


class SpanStateError(RuntimeError):
    """Raised when a finished span is modified or finished again."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Annotation:
    timestamp: datetime
    value: str


@dataclass(frozen=True)
class SpanRecord:
    """
    Immutable record of a finished span, handed to exporters.
    """

    name: str
    context: TraceContext
    started_at: datetime
    finished_at: datetime
    tags: Dict[str, str] = field(default_factory=dict)
    annotations: Tuple[Annotation, ...] = ()
    error: Optional[str] = None

    @property
    def trace_id(self) -> str:
        return self.context.trace_id

    @property
    def span_id(self) -> str:
        return self.context.span_id

    @property
    def parent_span_id(self) -> Optional[str]:
        return self.context.parent_span_id

    @property
    def duration_us(self) -> int:
        delta = self.finished_at - self.started_at
        return int(delta.total_seconds() * 1_000_000)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging/export."""
        return {
            "name": self.name,
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_span_id": self.parent_span_id,
            "sampled": self.context.sampled,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_us": self.duration_us,
            "tags": dict(self.tags),
            "annotations": [
                {"timestamp": a.timestamp.isoformat(), "value": a.value}
                for a in self.annotations
            ],
            "error": self.error,
        }


class Span:
    """
    An open span. Belongs to exactly one TraceContext.
    """

    def __init__(self, name: str, context: TraceContext, started_at: Optional[datetime] = None):
        self.name = name
        self.context = context
        self.started_at = started_at or _now()
        self._tags: Dict[str, str] = {}
        self._annotations: List[Annotation] = []
        self._error: Optional[str] = None
        self._record: Optional[SpanRecord] = None

    @property
    def trace_id(self) -> str:
        return self.context.trace_id

    @property
    def finished(self) -> bool:
        return self._record is not None

    @property
    def tags(self) -> Dict[str, str]:
        return dict(self._tags)

    @property
    def annotations(self) -> Tuple[Annotation, ...]:
        return tuple(self._annotations)

    @property
    def error(self) -> Optional[str]:
        return self._error

    def tag(self, key: str, value: Any) -> None:
        self._check_open("tag")
        self._tags[key] = str(value)

    def annotate(self, value: str) -> None:
        self._check_open("annotate")
        self._annotations.append(Annotation(timestamp=_now(), value=value))

    def mark_error(self, error: Any) -> None:
        """Record an error (exception or message) on the span."""
        self._check_open("mark_error")
        message = str(error) or type(error).__name__
        self._error = message
        self._tags["error"] = message

    def finish(self) -> SpanRecord:
        self._check_open("finish")
        self._record = SpanRecord(
            name=self.name,
            context=self.context,
            started_at=self.started_at,
            finished_at=_now(),
            tags=dict(self._tags),
            annotations=tuple(self._annotations),
            error=self._error,
        )
        return self._record

    def _check_open(self, operation: str) -> None:
        if self._record is not None:
            raise SpanStateError(f"Cannot {operation} span '{self.name}': already finished")

    def __repr__(self) -> str:
        return f"Span(name={self.name!r}, trace_id={self.trace_id}, span_id={self.context.span_id})"
