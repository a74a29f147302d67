"""
Session-related models for the MCP tool bridge runtime.

These describe:
- TransportKind enum (SSE, STREAMABLE), the key of each session store
"""

from enum import Enum


class TransportKind(str, Enum):
    SSE = "sse"
    STREAMABLE = "streamable"
