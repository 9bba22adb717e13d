"""
Trace Propagation

Moves a TraceContext and its Baggage in and out of header key-value pairs.

B3 encoding is delegated to the OpenTelemetry B3 propagator. Baggage fields
travel under their fixed header keys (see observability.baggage).

DESIGN RULES:
- Header lookup is case-insensitive
- Absent or malformed fields are treated as unset, never as errors
- No ambient state: callers pass the context in and get it back out
"""

import re
from typing import Dict, Mapping, MutableMapping, Optional, Tuple

from opentelemetry import trace
from opentelemetry.propagators.b3 import B3MultiFormat, B3SingleFormat
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags
from opentelemetry.trace import format_span_id, format_trace_id

from observability.baggage import BAGGAGE_FIELDS, Baggage
from observability.context import TraceContext


PARENT_SPAN_ID_KEY = "x-b3-parentspanid"
SAMPLED_KEY = "x-b3-sampled"
FLAGS_KEY = "x-b3-flags"
SINGLE_HEADER_KEY = "b3"

_SPAN_ID_RE = re.compile(r"^[0-9a-f]{16}$")


def _normalize(headers: Mapping[str, str]) -> Dict[str, str]:
    return {key.lower(): value for key, value in headers.items()}


def _valid_span_id(value: Optional[str]) -> Optional[str]:
    if value and _SPAN_ID_RE.match(value.lower()):
        return value.lower()
    return None


class TracePropagator:
    """
    B3 + baggage propagator.

    extract(): inbound headers -> (TraceContext or None, Baggage)
    inject():  (TraceContext, Baggage) -> outbound headers
    """

    def __init__(self, single_header: bool = False):
        """
        Args:
            single_header: Inject the compact `b3` header instead of the
                X-B3-* multi-header set. Extraction accepts both.
        """
        self._single_header = single_header
        self._extractor = B3MultiFormat()
        self._injector = B3SingleFormat() if single_header else B3MultiFormat()

    @property
    def single_header(self) -> bool:
        return self._single_header

    def extract(self, headers: Mapping[str, str]) -> Tuple[Optional[TraceContext], Baggage]:
        carrier = _normalize(headers)
        return self.extract_context(carrier), self.extract_baggage(carrier)

    def extract_context(self, headers: Mapping[str, str]) -> Optional[TraceContext]:
        carrier = _normalize(headers)
        otel_context = self._extractor.extract(carrier)
        span_context = trace.get_current_span(otel_context).get_span_context()
        if not span_context.is_valid:
            return None

        return TraceContext(
            trace_id=format_trace_id(span_context.trace_id),
            span_id=format_span_id(span_context.span_id),
            parent_span_id=self._extract_parent_span_id(carrier),
            sampled=span_context.trace_flags.sampled if self._has_sampling_state(carrier) else None,
        )

    def extract_baggage(self, headers: Mapping[str, str]) -> Baggage:
        carrier = _normalize(headers)
        return Baggage({field: carrier.get(field.key_name) for field in BAGGAGE_FIELDS})

    def inject(
        self,
        context: TraceContext,
        baggage: Optional[Baggage] = None,
        carrier: Optional[MutableMapping[str, str]] = None,
    ) -> MutableMapping[str, str]:
        """
        Write trace and baggage headers into carrier (a new dict if omitted).

        Returns the carrier.
        """
        if carrier is None:
            carrier = {}

        span_context = SpanContext(
            trace_id=int(context.trace_id, 16),
            span_id=int(context.span_id, 16),
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED if context.sampled else TraceFlags.DEFAULT),
        )
        self._injector.inject(
            carrier, context=trace.set_span_in_context(NonRecordingSpan(span_context))
        )

        if context.sampled is None:
            # Deferred decision: no sampling state on the wire. The single
            # header can only carry a parent id after a sampling state.
            if self._single_header:
                carrier[SINGLE_HEADER_KEY] = f"{context.trace_id}-{context.span_id}"
            else:
                carrier.pop(SAMPLED_KEY, None)

        # The OpenTelemetry B3 injector does not write the parent id
        if context.parent_span_id and (context.sampled is not None or not self._single_header):
            if self._single_header:
                carrier[SINGLE_HEADER_KEY] = f"{carrier[SINGLE_HEADER_KEY]}-{context.parent_span_id}"
            else:
                carrier[PARENT_SPAN_ID_KEY] = context.parent_span_id

        if baggage is not None:
            for field, value in baggage.items():
                carrier[field.key_name] = value

        return carrier

    @staticmethod
    def _has_sampling_state(carrier: Mapping[str, str]) -> bool:
        single = carrier.get(SINGLE_HEADER_KEY)
        if single:
            # traceid-spanid[-sampled[-parentspanid]]
            return len(single.split("-")) >= 3
        return SAMPLED_KEY in carrier or FLAGS_KEY in carrier

    @staticmethod
    def _extract_parent_span_id(carrier: Mapping[str, str]) -> Optional[str]:
        single = carrier.get(SINGLE_HEADER_KEY)
        if single:
            # traceid-spanid-sampled-parentspanid
            fields = single.split("-")
            return _valid_span_id(fields[3]) if len(fields) == 4 else None
        return _valid_span_id(carrier.get(PARENT_SPAN_ID_KEY))
