"""
Span Recorder

Creates, annotates and finishes spans, and hands finished spans to the
configured exporter. Single point of span management for the workflow.

DESIGN RULES:
- Explicit parents: every span is started from a TraceContext or as a new root
- scoped() always finishes the span exactly once
- Export failures never reach the caller
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from observability.baggage import Baggage
from observability.context import TraceContext
from observability.sink import LoggingSpanExporter, SpanExporter
from observability.span import Span, SpanRecord


logger = logging.getLogger(__name__)

BAGGAGE_TAG_PREFIX = "baggage."


class SpanRecorder:
    """
    Coordinates span lifecycle.

    Responsibilities:
    - Derive child contexts from explicit parents
    - Copy baggage onto new spans as tags
    - Forward finished spans to the exporter (sampled spans only)
    """

    def __init__(
        self,
        exporter: Optional[SpanExporter] = None,
        sampled_by_default: bool = True,
    ):
        """
        Initialize span recorder.

        Args:
            exporter: SpanExporter for finished spans. Defaults to LoggingSpanExporter.
            sampled_by_default: Sampling decision for new root traces.
        """
        self._exporter = exporter or LoggingSpanExporter()
        self._sampled_by_default = sampled_by_default

    @property
    def exporter(self) -> SpanExporter:
        return self._exporter

    def start_span(
        self,
        name: str,
        parent: Optional[TraceContext] = None,
        baggage: Optional[Baggage] = None,
    ) -> Span:
        """
        Start a span as a child of parent, or as the root of a new trace.

        A parent whose sampling was deferred gets the local default.
        """
        if parent is None:
            context = TraceContext.new_root(sampled=self._sampled_by_default)
        else:
            context = parent.child().decided(self._sampled_by_default)

        span = Span(name=name, context=context)
        if baggage is not None:
            for field, value in baggage.items():
                span.tag(BAGGAGE_TAG_PREFIX + field.name, value)
        return span

    def tag(self, span: Span, key: str, value: Any) -> None:
        span.tag(key, value)

    def annotate(self, span: Span, text: str) -> None:
        span.annotate(text)

    def mark_error(self, span: Span, error: Any) -> None:
        span.mark_error(error)

    def finish(self, span: Span) -> SpanRecord:
        record = span.finish()
        if record.context.sampled:
            self._export(record)
        return record

    @contextmanager
    def scoped(
        self,
        name: str,
        parent: Optional[TraceContext] = None,
        baggage: Optional[Baggage] = None,
    ) -> Iterator[Span]:
        """
        Acquire a span, run the block, always finish on exit.

        An exception escaping the block is recorded on the span and re-raised.
        """
        span = self.start_span(name, parent, baggage)
        try:
            yield span
        except Exception as e:
            if span.error is None:
                span.mark_error(e)
            raise
        finally:
            self.finish(span)

    def _export(self, record: SpanRecord) -> None:
        try:
            self._exporter.export(record)
        except Exception as e:
            logger.warning(f"Span export failed for {record.name}: {e}")
