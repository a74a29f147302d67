"""
Pydantic models used by the MCP tool bridge runtime.

Split into:
- session_models: TransportKind
- api_models: HTTP response schemas (JSON-RPC error, health)
"""
