"""
Audit Client

Posts the order to an external audit endpoint, carrying B3 and baggage
headers so the audit service joins the same trace.

Failures raise AuditCallError; deciding that they are non-fatal is the
workflow's job.
"""

import json
import logging
import socket
import urllib.error
import urllib.request
from typing import Any, Dict, Optional

from observability.baggage import Baggage
from observability.context import TraceContext
from observability.propagation import TracePropagator


logger = logging.getLogger(__name__)


class AuditCallError(Exception):
    """The audit call failed (transport, HTTP status or response body)."""


class AuditClient:

    def __init__(self, url: str, propagator: TracePropagator, timeout_ms: int = 2000):
        self._url = url
        self._propagator = propagator
        self._timeout_seconds = timeout_ms / 1000.0

    @property
    def url(self) -> str:
        return self._url

    def build_headers(self, context: TraceContext, baggage: Optional[Baggage]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        self._propagator.inject(context, baggage, headers)
        return headers

    def send(
        self,
        payload: Dict[str, Any],
        context: TraceContext,
        baggage: Optional[Baggage] = None,
    ) -> Dict[str, Any]:
        """
        POST payload to the audit endpoint.

        Args:
            payload: JSON-serializable order body
            context: Context of the client span making the call
            baggage: Baggage to propagate

        Returns:
            The decoded JSON mapping returned by the audit service

        Raises:
            AuditCallError: on any failure
        """
        logger.debug(f"POST {self._url}")
        req = urllib.request.Request(
            self._url,
            data=json.dumps(payload).encode("utf-8"),
            headers=self.build_headers(context, baggage),
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self._timeout_seconds) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            raise AuditCallError(f"Audit service returned HTTP {e.code}") from e
        except urllib.error.URLError as e:
            raise AuditCallError(f"Audit service unreachable: {e.reason}") from e
        except socket.timeout as e:
            raise AuditCallError("Audit service timed out") from e

        try:
            result = json.loads(body or b"{}")
        except ValueError as e:
            raise AuditCallError(f"Audit service returned invalid JSON: {e}") from e

        if not isinstance(result, dict):
            raise AuditCallError("Audit service returned a non-object response")
        return result
