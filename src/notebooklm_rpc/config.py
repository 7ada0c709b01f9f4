"""Environment-sourced configuration.

The transport consumes these values but does not own them:

  NOTEBOOKLM_BL              Build-version override (bl query parameter)
  NOTEBOOKLM_SESSION_ID      Session-id override (f.sid query parameter)
  NOTEBOOKLM_DEBUG           Enable debug logging of API traffic (true/false)
  NOTEBOOKLM_TIMEOUT         Unary request timeout in seconds (default: 30.0)
  NOTEBOOKLM_QUERY_TIMEOUT   Streaming request timeout in seconds (default: 120.0)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from . import constants

LOGGER_NAME = "notebooklm_rpc"
DEBUG_HANDLER_NAME = "notebooklm_rpc.debug"


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by the session provider, transport and dispatcher."""

    build_version: str = ""
    session_id: str = ""
    debug: bool = False
    timeout: float = constants.DEFAULT_TIMEOUT
    query_timeout: float = constants.QUERY_TIMEOUT

    @property
    def has_session_override(self) -> bool:
        """True only when both session parameters are explicitly configured."""
        return bool(self.build_version and self.session_id)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ClientConfig":
        env = os.environ if environ is None else environ
        return cls(
            build_version=env.get("NOTEBOOKLM_BL", "").strip(),
            session_id=env.get("NOTEBOOKLM_SESSION_ID", "").strip(),
            debug=_env_flag(env.get("NOTEBOOKLM_DEBUG")),
            timeout=float(env.get("NOTEBOOKLM_TIMEOUT", constants.DEFAULT_TIMEOUT)),
            query_timeout=float(env.get("NOTEBOOKLM_QUERY_TIMEOUT", constants.QUERY_TIMEOUT)),
        )


def enable_debug_logging() -> None:
    """Log NotebookLM API requests/responses at DEBUG level to stderr.

    Safe to call more than once: the stderr handler is only installed once.
    """
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(logging.DEBUG)

    # Child loggers start at WARNING; open them up too
    for name in ("session", "transport", "dispatcher"):
        logging.getLogger(f"{LOGGER_NAME}.{name}").setLevel(logging.DEBUG)

    if any(h.get_name() == DEBUG_HANDLER_NAME for h in package_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(DEBUG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    package_logger.addHandler(handler)
