"""Shared helpers for MCP tool registration."""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import BaseModel

from ..errors import ServiceError

logger = logging.getLogger(__name__)

ToolFn = TypeVar("ToolFn", bound=Callable[..., Awaitable[Any]])


def tool_errors(prefix: str = "") -> Callable[[ToolFn], ToolFn]:
    """Convert ``ServiceError`` into an error-flagged ``ToolError`` result."""

    def decorator(fn: ToolFn) -> ToolFn:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await fn(*args, **kwargs)
            except ServiceError as exc:
                logger.info("tool_failed tool=%s kind=%s", fn.__name__, exc.kind.value)
                raise ToolError(f"{prefix}Error: {exc}") from exc

        return wrapper  # type: ignore[return-value]

    return decorator


def register(mcp: FastMCP, tools: dict[str, Callable[..., Any]]) -> dict[str, Callable[..., Any]]:
    for name, fn in tools.items():
        mcp.tool(name=name)(fn)
    return tools


def dump(value: Any) -> Any:
    """Render models (and lists of them) as JSON-ready data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [dump(item) for item in value]
    if isinstance(value, tuple):
        return [dump(item) for item in value]
    if isinstance(value, dict):
        return {key: dump(item) for key, item in value.items()}
    return value
