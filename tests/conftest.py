import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from observability.propagation import TracePropagator
from observability.recorder import SpanRecorder
from observability.sink import InMemorySpanExporter
from orchestration.workflow import OrderWorkflow
from services.audit import AuditClient
from services.inventory import InventoryService
from services.payment import PaymentService


AUDIT_URL = "http://audit.test/api/audit"


def mock_http_response(payload) -> MagicMock:
    """urlopen() return value usable as a context manager."""
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode("utf-8")
    response.__enter__ = MagicMock(return_value=response)
    response.__exit__ = MagicMock(return_value=False)
    return response


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def recorder(exporter):
    return SpanRecorder(exporter=exporter)


@pytest.fixture
def propagator():
    return TracePropagator()


@pytest.fixture
def make_workflow(recorder, propagator):
    """Build an OrderWorkflow with no latency and a fixed payment failure rate."""
    def _make(failure_rate: float = 0.0, stock_limit: int = 100) -> OrderWorkflow:
        return OrderWorkflow(
            recorder=recorder,
            inventory=InventoryService(recorder, stock_limit=stock_limit),
            payment=PaymentService(recorder, failure_rate=failure_rate),
            audit=AuditClient(AUDIT_URL, propagator, timeout_ms=100),
        )
    return _make
