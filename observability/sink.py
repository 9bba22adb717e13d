"""
Span Exporters

Destinations for finished spans. The recorder hands every finished,
sampled SpanRecord to exactly one exporter.

DESIGN RULES:
- Side-effect only
- Never throw exceptions
- Storage-agnostic interface
"""

import json
import logging
import socket
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Dict, List, Optional

from observability.span import SpanRecord


logger = logging.getLogger(__name__)


class SpanExporter(ABC):
    """
    Accepts a finished span record.

    Implementations:
    - LoggingSpanExporter (default)
    - InMemorySpanExporter (tests, debugging)
    - ZipkinSpanExporter (collector over HTTP)
    - NoopSpanExporter
    """

    @abstractmethod
    def export(self, record: SpanRecord) -> None:
        """
        Export a finished span.

        Must not throw - failures should be logged and ignored.
        """
        pass


class NoopSpanExporter(SpanExporter):

    def export(self, record: SpanRecord) -> None:
        return None


class LoggingSpanExporter(SpanExporter):
    """
    Exporter that writes each span as a JSON line to the log.

    Useful for log aggregation systems.
    """

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._log = log or logging.getLogger("observability.spans")
        self._level = level

    def export(self, record: SpanRecord) -> None:
        try:
            self._log.log(self._level, json.dumps(record.to_dict()))
        except Exception as e:
            logger.warning(f"[SPANS] Failed to log span {record.name}: {e}")


class InMemorySpanExporter(SpanExporter):
    """
    Keeps finished spans in process memory.

    Thread-safe: spans finish on request threads and payment worker threads.
    """

    def __init__(self):
        self._records: List[SpanRecord] = []
        self._lock = Lock()

    def export(self, record: SpanRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> List[SpanRecord]:
        with self._lock:
            return list(self._records)

    def by_name(self, name: str) -> List[SpanRecord]:
        return [r for r in self.records if r.name == name]

    def for_trace(self, trace_id: str) -> List[SpanRecord]:
        return [r for r in self.records if r.trace_id == trace_id]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


def to_zipkin(record: SpanRecord, service_name: str) -> Dict[str, Any]:
    """Build a Zipkin v2 JSON span from a SpanRecord."""
    span: Dict[str, Any] = {
        "traceId": record.trace_id,
        "id": record.span_id,
        "name": record.name,
        "timestamp": int(record.started_at.timestamp() * 1_000_000),
        "duration": max(record.duration_us, 1),
        "localEndpoint": {"serviceName": service_name},
        "tags": dict(record.tags),
    }
    if record.parent_span_id:
        span["parentId"] = record.parent_span_id
    if record.annotations:
        span["annotations"] = [
            {"timestamp": int(a.timestamp.timestamp() * 1_000_000), "value": a.value}
            for a in record.annotations
        ]
    return span


class ZipkinSpanExporter(SpanExporter):
    """
    Posts each finished span to a Zipkin-compatible collector.

    GUARANTEES:
    - Never raises exceptions
    - Returns within timeout
    - Logs failures as warnings
    """

    def __init__(self, url: str, service_name: str, timeout_ms: int = 500):
        self._url = url
        self._service_name = service_name
        self._timeout_seconds = timeout_ms / 1000.0

    def export(self, record: SpanRecord) -> None:
        try:
            data = json.dumps([to_zipkin(record, self._service_name)]).encode("utf-8")
            req = urllib.request.Request(
                self._url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self._timeout_seconds) as response:
                _ = response.read()

        except urllib.error.URLError as e:
            logger.warning(f"[ZIPKIN] Failed to export span {record.name}: {e}")
        except socket.timeout:
            logger.warning(f"[ZIPKIN] Timeout exporting span {record.name}")
        except Exception as e:
            logger.warning(f"[ZIPKIN] Unexpected error exporting span {record.name}: {e}")


def build_exporter(kind: str, service_name: str, zipkin_url: str, zipkin_timeout_ms: int) -> SpanExporter:
    """Create the exporter named by configuration."""
    kind = kind.lower()
    if kind == "log":
        return LoggingSpanExporter()
    if kind == "memory":
        return InMemorySpanExporter()
    if kind == "zipkin":
        return ZipkinSpanExporter(zipkin_url, service_name, timeout_ms=zipkin_timeout_ms)
    if kind == "none":
        return NoopSpanExporter()
    raise ValueError(f"Unknown span exporter: {kind}")
