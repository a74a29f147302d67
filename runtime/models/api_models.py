"""
HTTP response models for the MCP tool bridge runtime API.
"""

from typing import Dict, Optional

from pydantic import BaseModel


class JsonRpcErrorBody(BaseModel):
    code: int
    message: str


class JsonRpcErrorResponse(BaseModel):
    """
    Protocol-level error returned by /mcp when a request neither continues
    a known session nor initializes a new one.
    """
    jsonrpc: str = "2.0"
    error: JsonRpcErrorBody
    id: Optional[int] = None


class HealthResponse(BaseModel):
    status: str
    sessions: Dict[str, int]


def bad_request_no_session() -> JsonRpcErrorResponse:
    return JsonRpcErrorResponse(
        error=JsonRpcErrorBody(
            code=-32000,
            message="Bad Request: No valid session ID provided",
        ),
    )
