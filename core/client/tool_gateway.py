"""Tool Invocation Gateway: calls one remote tool and never raises.

Every failure mode (remote error, timeout, malformed arguments, a result
flagged as an error) is logged and turned into a failed ToolOutcome, so
the orchestration loop can move on to the next call.
"""

import logging
from datetime import timedelta
from typing import Any, Optional

from exceptions.exceptions import ToolInvocationError
from .conversation import ToolCallRequest, ToolOutcome, render_content


logger = logging.getLogger(__name__)


class ToolInvocationGateway:
    """
    Parameters
    ----------
    session:
        An initialized MCP ClientSession (anything with `call_tool`).
    timeout:
        Per-call read timeout in seconds; None uses the session default.
    """

    def __init__(self, session: Any, timeout: Optional[float] = None) -> None:
        self.session = session
        self.timeout = timeout

    async def invoke(self, request: ToolCallRequest) -> ToolOutcome:
        if request.argument_error:
            logger.warning("[TOOL] Not calling %s: %s", request.name, request.argument_error)
            return ToolOutcome.failure(request, request.argument_error)

        logger.info("[TOOL] Calling tool %s with args %s", request.name, request.arguments)
        try:
            result = await self._call(request)
            if getattr(result, "isError", False):
                raise ToolInvocationError(request.name, render_content(result.content))
        except ToolInvocationError as exc:
            logger.warning("[TOOL] %s", exc)
            return ToolOutcome.failure(request, exc.details, content=result.content)
        except Exception as exc:
            logger.warning("[TOOL] Error calling tool %s: %s", request.name, exc, exc_info=True)
            return ToolOutcome.failure(request, str(exc) or type(exc).__name__)

        logger.info("[TOOL] Tool %s succeeded", request.name)
        return ToolOutcome.success(request, result.content)

    async def _call(self, request: ToolCallRequest) -> Any:
        if self.timeout is None:
            return await self.session.call_tool(request.name, request.arguments)
        return await self.session.call_tool(
            request.name,
            request.arguments,
            read_timeout_seconds=timedelta(seconds=self.timeout),
        )
