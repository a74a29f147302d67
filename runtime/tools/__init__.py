"""
Server-side tools exposed over MCP.

For now we only ship a demo `greeting` tool; the registry is what the
MCP server reads when clients list or call tools.
"""
