"""
Runtime package for the MCP tool bridge server.

This package contains:
- API layer (FastAPI app, transport negotiation, routes)
- Session host + registry (one store per transport kind)
- Transports (legacy SSE, streamable HTTP)
- Tools (server-side tool registry and the demo greeting tool)
- Models (session + HTTP response schemas)
"""
