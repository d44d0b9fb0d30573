"""Action registry - register wallet actions and dispatch calls by name."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

logger = logging.getLogger(__name__)

NO_ARGUMENTS: dict[str, Any] = {"type": "object", "properties": {}, "required": []}


@dataclass
class Tool:
    name: str
    description: str
    parameters: dict[str, Any]
    func: Callable[..., Any] | Callable[..., Awaitable[Any]]
    is_async: bool = False
    # Alternative phrasings an agent may use for this action
    similes: list[str] = field(default_factory=list)

    def to_definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.parameters,
        }

    async def execute(self, **kwargs) -> dict[str, Any]:
        """Run the action and shape its outcome as a status dict.

        Any failure becomes ``{"status": "error", "message": ...}``; no
        traceback crosses this boundary.
        """
        try:
            inspect.signature(self.func).bind(**kwargs)
        except TypeError as exc:
            logger.warning(f"Bad arguments for {self.name}: {exc}")
            return {"status": "error", "message": f"Invalid arguments: {exc}"}

        try:
            if self.is_async:
                result = await self.func(**kwargs)
            else:
                result = self.func(**kwargs)
        except ValidationError as exc:
            message = "; ".join(err["msg"].removeprefix("Value error, ") for err in exc.errors())
            logger.warning(f"Invalid input for {self.name}: {message}")
            return {"status": "error", "message": message}
        except Exception as exc:
            logger.error(f"Action {self.name} failed: {exc}")
            return {"status": "error", "message": str(exc) or type(exc).__name__}

        if isinstance(result, dict):
            return {"status": "success", **result}
        return {"status": "success", "result": result}


class ToolRegistry:
    """Global registry of available actions."""

    _instance: ToolRegistry | None = None
    _tools: dict[str, Tool]

    def __init__(self):
        self._tools = {}

    @classmethod
    def get(cls) -> ToolRegistry:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, tool: Tool) -> None:
        existing = self._tools.get(tool.name)
        if existing is not None and existing.func is not tool.func:
            logger.warning(f"Replacing registered action {tool.name}")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_tools(self, names: list[str] | None = None) -> list[Tool]:
        if names is None:
            return list(self._tools.values())
        return [self._tools[n] for n in names if n in self._tools]

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def resolve(self, name: str) -> Tool | None:
        """Look an action up by name, then by simile (case-insensitive)."""
        tool = self._tools.get(name)
        if tool is not None:
            return tool
        wanted = " ".join(name.replace("_", " ").lower().split())
        for candidate in self._tools.values():
            if wanted in (s.lower() for s in candidate.similes):
                return candidate
        return None

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """Dispatch a call by action name or simile."""
        t = self.resolve(name)
        if t is None:
            return {"status": "error", "message": f"Unknown tool: {name}"}
        return await t.execute(**(arguments or {}))


def tool(
    name: str,
    description: str,
    parameters: dict[str, Any] | None = None,
    similes: list[str] | None = None,
):
    """Decorator to register a function as an action.

    ``parameters`` is the JSON Schema of the keyword arguments; actions that
    take none may omit it.

    Usage:
        @tool("list_wallets", "List all wallets", similes=["list wallet"])
        async def list_wallets() -> dict:
            ...
    """

    def decorator(func: Callable) -> Callable:
        t = Tool(
            name=name,
            description=description,
            parameters=parameters if parameters is not None else dict(NO_ARGUMENTS),
            func=func,
            is_async=inspect.iscoroutinefunction(func),
            similes=list(similes or []),
        )
        ToolRegistry.get().register(t)
        return func

    return decorator
