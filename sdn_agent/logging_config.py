"""Agent logging with provisioning context.

Launch and attach log lines carry the identifiers an operator needs to
correlate them with the controller: network and domain ids, the container,
its subnet and addresses. Callers attach them with ``extra=log_context(...)``;
the JSON formatter promotes them to top-level keys and the text formatter
appends them as ``key=value`` pairs.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from sdn_agent.config import settings

# Provisioning identifiers, in the order the text formatter prints them
CONTEXT_FIELDS = (
    "network_id",
    "domain_id",
    "bridge_name",
    "container_id",
    "subnet_id",
    "address",
    "public_address",
)

# LogRecord attributes that are not user-supplied extras
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}


def log_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra`` mapping for a provisioning log call.

    Unset fields are dropped. Addresses and networks are logged in their
    string form so every formatter sees the same value.
    """
    context = {}
    for key, value in fields.items():
        if value is None:
            continue
        if not isinstance(value, (str, int, float, bool)):
            value = str(value)
        context[key] = value
    return context


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class AgentJSONFormatter(logging.Formatter):
    """One JSON object per record.

    Known provisioning fields (see ``CONTEXT_FIELDS``) are top-level keys;
    any other extras go under ``extra``.
    """

    def __init__(self, agent_id: str = ""):
        super().__init__()
        self.agent_id = agent_id

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "sdn-agent",
        }

        if self.agent_id:
            log_entry["agent_id"] = self.agent_id

        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            if key in CONTEXT_FIELDS:
                log_entry[key] = _jsonable(value)
            else:
                extra[key] = _jsonable(value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry)


class AgentTextFormatter(logging.Formatter):
    """Human-readable format for development.

    [timestamp] LEVEL [agent_id] logger: message network_id=42 container_id=c1
    """

    def __init__(self, agent_id: str = ""):
        super().__init__()
        self.agent_id = agent_id

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        agent_part = f" [{self.agent_id[:8]}]" if self.agent_id else ""

        message = f"[{timestamp}] {record.levelname:8}{agent_part} {record.name}: {record.getMessage()}"

        context = [f"{key}={getattr(record, key)}" for key in CONTEXT_FIELDS if hasattr(record, key)]
        if context:
            message += " " + " ".join(context)

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


def setup_agent_logging(agent_id: str = "") -> None:
    """Configure the root logger from settings.

    Args:
        agent_id: The agent's ID for inclusion in log entries
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)

    if settings.log_format.lower() == "json":
        handler.setFormatter(AgentJSONFormatter(agent_id))
    else:
        handler.setFormatter(AgentTextFormatter(agent_id))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)

    # Controller traffic is logged by ControllerClient itself
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
