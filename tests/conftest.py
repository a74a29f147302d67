"""Shared test fixtures for the MCP tool bridge."""

from typing import List

import pytest


@pytest.fixture
def event_log() -> List[str]:
    """Ordered record of observable events (emitted text, tool calls, ...)."""
    return []
