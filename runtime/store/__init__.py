"""
Storage abstractions for the MCP tool bridge runtime.

Includes:
- SessionRegistry: in-memory session id -> connection handle stores,
  one per transport kind
"""
