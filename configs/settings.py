from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """
    Central configuration for the MCP tool bridge.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties.
    """

    def __init__(self) -> None:
        # OpenAI-compatible chat service configuration
        self._openai_api_key = os.getenv("OPENAI_API_KEY")
        self._openai_base_url = os.getenv("OPENAI_BASE_URL") or None
        self._model = os.getenv("MCP_BRIDGE_MODEL", "gpt-4.1-mini")

        # Server side
        self._host = os.getenv("MCP_BRIDGE_HOST", "127.0.0.1")
        self._port = int(os.getenv("MCP_BRIDGE_PORT", "3000"))
        self._json_response = _env_flag("MCP_BRIDGE_JSON_RESPONSE")
        self._server_name = os.getenv("MCP_BRIDGE_SERVER_NAME", "mcp-server")
        self._server_version = os.getenv("MCP_BRIDGE_SERVER_VERSION", "1.0.0")

        # Client side
        self._server_url = os.getenv(
            "MCP_BRIDGE_SERVER_URL", "http://localhost:3000/sse"
        )
        self._transport = os.getenv("MCP_BRIDGE_TRANSPORT", "sse").lower()
        self._tool_timeout = float(os.getenv("MCP_BRIDGE_TOOL_TIMEOUT", "30"))

        self._log_level = os.getenv("MCP_BRIDGE_LOG_LEVEL", "INFO").upper()

    # ------------------------------------------------------------------
    # Chat service settings
    # ------------------------------------------------------------------

    @property
    def openai_api_key(self) -> str:
        if not self._openai_api_key:
            raise RuntimeError(
                "OPENAI_API_KEY is not set. Please export it in your environment "
                "or define it in a .env file."
            )
        return self._openai_api_key

    @property
    def openai_base_url(self) -> Optional[str]:
        return self._openai_base_url

    @property
    def model(self) -> str:
        return self._model

    # ------------------------------------------------------------------
    # Server settings
    # ------------------------------------------------------------------

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def json_response(self) -> bool:
        return self._json_response

    @property
    def server_name(self) -> str:
        return self._server_name

    @property
    def server_version(self) -> str:
        return self._server_version

    # ------------------------------------------------------------------
    # Client settings
    # ------------------------------------------------------------------

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def transport(self) -> str:
        return self._transport

    @property
    def tool_timeout(self) -> float:
        return self._tool_timeout

    @property
    def log_level(self) -> str:
        return self._log_level


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic root handler once, at CLI start-up."""
    logging.basicConfig(
        level=(level or settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
