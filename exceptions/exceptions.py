"""
Custom exceptions for the MCP tool bridge.

Each one carries the identifiers a caller needs to report the failure.
They are used across:

  - runtime/store/ and runtime/transports/ (server sessions)
  - core/api/ and core/client/ (chat streaming and tool calls)
  - cli/

Placing them at the project root (exceptions/) avoids circular imports
and keeps exception types consistent between the server and the client.
"""


class BridgeError(Exception):
    """Base class for every error raised by this project."""


class SessionIdCollisionError(BridgeError):
    """
    Raised when the session registry cannot find a free identifier after
    regenerating it `attempts` times for the given transport kind.
    """

    def __init__(self, kind, attempts):
        self.kind = kind
        self.attempts = attempts
        msg = f"Could not allocate a unique {kind} session id after {attempts} attempts"
        super().__init__(msg)


class SessionClosedError(BridgeError):
    """Raised when a message is delivered to a legacy session that is already closed."""

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is closed")


class ServerConnectionError(BridgeError):
    """
    Raised by the client when the initial session with the MCP server
    cannot be established. This is fatal for the interactive client.
    """

    def __init__(self, url, details=None):
        self.url = url
        self.details = details or "Unknown connection failure."
        msg = f"Could not connect to MCP server at {url}\nDetails: {self.details}"
        super().__init__(msg)


class ToolInvocationError(BridgeError):
    """
    Raised inside the tool gateway when a remote tool reports an error.

    The gateway always converts it into a failed outcome; it never reaches
    the orchestration loop.
    """

    def __init__(self, tool_name, details=None):
        self.tool_name = tool_name
        self.details = details or "Tool reported an error."
        super().__init__(f"Tool {tool_name} failed: {self.details}")


class StreamConsumedError(BridgeError):
    """Raised when a chat stream is iterated a second time."""

    def __init__(self):
        super().__init__(
            "Chat stream has already been consumed; issue a new chat request to retry."
        )
