"""Tool dispatcher — the ``handle(tool_name, arguments)`` boundary.

Validates arguments against the tool's schema, runs the invoker, and turns
every failure into the same ``{"success": false, ...}`` envelope. Only an
unknown tool name escapes as an exception, since that is a protocol-level
error rather than a tool outcome.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from mediabridge.services.gateway import ProviderAPIError, UpstreamTransportError
from mediabridge.services.task_resolver import TaskResolutionError
from mediabridge.services.task_store import DuplicateTaskError, TaskNotFoundError
from mediabridge.services.tool_catalog import ToolDescriptor

logger = logging.getLogger(__name__)


class ToolNotFoundError(LookupError):
    """No tool is registered under this name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolValidationError(ValueError):
    """Caller-supplied arguments failed the tool's schema."""

    def __init__(self, tool_name: str, error: ValidationError):
        super().__init__(f"Invalid arguments for {tool_name}: {error.error_count()} error(s)")
        self.tool_name = tool_name
        self.details = json.loads(error.json(include_url=False))


@dataclass(frozen=True)
class ToolResult:
    """A tool outcome as one JSON text content block."""
    payload: dict[str, Any]
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [
                {
                    "type": "text",
                    "text": json.dumps(self.payload, indent=2, ensure_ascii=False, default=str),
                }
            ],
            "isError": self.is_error,
        }


def _failure(error: str, error_type: str, **extra: Any) -> ToolResult:
    return ToolResult({"success": False, "error": error, "error_type": error_type, **extra}, is_error=True)


class ToolDispatcher:
    """Route tool invocations to their descriptors."""

    def __init__(self, catalog: Iterable[ToolDescriptor]) -> None:
        self._catalog = tuple(catalog)
        self._by_name = {tool.name: tool for tool in self._catalog}

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self._catalog]

    def list_tools(self) -> list[dict[str, Any]]:
        return [tool.to_dict() for tool in self._catalog]

    def parse_arguments(self, tool: ToolDescriptor, arguments: Any) -> BaseModel:
        try:
            return tool.arguments.model_validate(arguments if arguments is not None else {})
        except ValidationError as e:
            raise ToolValidationError(tool.name, e) from e

    async def handle(self, tool_name: str, arguments: Any = None) -> ToolResult:
        """Invoke ``tool_name`` with ``arguments``.

        Raises:
            ToolNotFoundError: If no such tool is registered.
        """
        tool = self._by_name.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(tool_name)

        try:
            args = self.parse_arguments(tool, arguments)
        except ToolValidationError as e:
            logger.info("%s", e)
            return _failure(str(e), "validation", details=e.details)

        logger.info("Invoking tool %s", tool_name)
        try:
            return ToolResult(await tool.invoke(args))
        except ProviderAPIError as e:
            return _failure(str(e), "provider", code=e.code, category=e.category)
        except UpstreamTransportError as e:
            return _failure(
                str(e), "transport", status_code=e.status_code, timed_out=e.timed_out,
            )
        except DuplicateTaskError as e:
            logger.error("Upstream returned an already-stored task id %s", e.task_id)
            return _failure(str(e), "duplicate_task", task_id=e.task_id)
        except TaskNotFoundError as e:
            return _failure(str(e), "not_found", task_id=e.task_id)
        except TaskResolutionError as e:
            return _failure(
                str(e), "unresolved", task_id=e.task_id,
                attempts=[attempt.to_dict() for attempt in e.attempts],
            )
        except SQLAlchemyError as e:
            logger.exception("Storage failure in tool %s", tool_name)
            return _failure(f"Task storage unavailable: {e.__class__.__name__}", "storage")
