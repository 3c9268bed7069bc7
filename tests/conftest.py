"""
Pytest fixtures for the fiscal engine test suite.

Provides:
- Clean logging state around every test
- A JSON log capture for asserting on structured log records
- The shipped tax profiles
"""

import json
import logging
from io import StringIO

import pytest

from fiscal_config import get_tax_profile
from fiscal_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


class LogCapture:
    """Collects JSON log lines written by the fiscal logger hierarchy."""

    def __init__(self) -> None:
        self.stream = StringIO()
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(StructuredFormatter())

    @property
    def records(self) -> list[dict]:
        lines = self.stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    def messages(self) -> list[str]:
        return [r["message"] for r in self.records]

    def find(self, message: str) -> list[dict]:
        return [r for r in self.records if r["message"] == message]


@pytest.fixture
def log_capture() -> LogCapture:
    """Route fiscal logs (DEBUG and up) into an in-memory JSON capture."""
    capture = LogCapture()
    configure_logging(handler=capture.handler, level=logging.DEBUG)
    return capture


@pytest.fixture
def es_freelance_profile():
    return get_tax_profile("es_freelance")
