"""
Connection handles owned by the session registry.

- StreamableConnection: one streamable-HTTP transport bound to a session id
- SseConnection: one legacy SSE session (event stream + POSTed messages)
"""
