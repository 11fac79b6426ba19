"""Tool capabilities and the per-agent function registry."""

import inspect
import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .errors import ConfigurationError
from .types import Result

CONTEXT_VARIABLES_PARAM = "context_variables"

JSON_TYPES = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
    type(None): "null",
}


def empty_parameters() -> Dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


def to_result(value: Any) -> Result:
    """Normalize whatever a tool returned into a Result."""
    from .agent import Agent

    if isinstance(value, Result):
        return value
    if isinstance(value, Agent):
        return Result(value=json.dumps({"assistant": value.name}), agent=value)
    if value is None:
        return Result()
    try:
        return Result(value=str(value))
    except Exception as e:
        raise TypeError(f"Failed to cast response to string: {value!r}. "
                        f"Make sure tools return a string or Result object. Error: {e}")


class Tool:
    """Capability interface: a named executable the model can call."""

    name: str = ""
    description: str = ""
    parameters: Optional[Dict[str, Any]] = None

    def invoke(self, arguments: Dict[str, Any], context_variables: Dict[str, Any]) -> Result:
        raise NotImplementedError

    def to_schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters if self.parameters is not None else empty_parameters(),
            },
        }


class FunctionTool(Tool):
    """Tool backed by a plain Python function."""

    def __init__(self, func: Callable, name: Optional[str] = None, description: Optional[str] = None,
                 parameters: Optional[Dict[str, Any]] = None):
        self.func = func
        self.name = name or func.__name__
        self.description = description if description is not None else (func.__doc__ or "").strip()
        self.parameters = parameters or function_parameters(func)
        try:
            self._wants_context = CONTEXT_VARIABLES_PARAM in inspect.signature(func).parameters
        except (TypeError, ValueError):
            self._wants_context = False

    @classmethod
    def from_function(cls, func: Callable) -> "FunctionTool":
        return cls(func)

    def invoke(self, arguments: Dict[str, Any], context_variables: Dict[str, Any]) -> Result:
        kwargs = dict(arguments)
        if self._wants_context:
            kwargs[CONTEXT_VARIABLES_PARAM] = context_variables
        return to_result(self.func(**kwargs))

    def __repr__(self):
        return f"FunctionTool({self.name!r})"


def function_parameters(func: Callable) -> Dict[str, Any]:
    """Build a JSON schema for func's parameters from its signature."""
    try:
        signature = inspect.signature(func)
    except ValueError as e:
        raise ConfigurationError(f"Failed to get signature for function {func.__name__}: {e}")

    properties = {}
    required = []
    for param in signature.parameters.values():
        if param.name == CONTEXT_VARIABLES_PARAM:
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = param.annotation
        json_type = JSON_TYPES.get(annotation, "string") if annotation is not param.empty else "string"
        properties[param.name] = {"type": json_type}
        if param.default is param.empty:
            required.append(param.name)

    return {"type": "object", "properties": properties, "required": required}


def function_to_json(func: Callable) -> Dict[str, Any]:
    """OpenAI tool declaration for a plain function."""
    return FunctionTool(func).to_schema()


def as_tool(item: Union[Tool, Callable]) -> Tool:
    if isinstance(item, Tool):
        return item
    if callable(item):
        return FunctionTool.from_function(item)
    raise ConfigurationError(f"Not a tool or callable: {item!r}")


class FunctionRegistry:
    """Ordered mapping from tool name to Tool for one agent."""

    def __init__(self, tools: Optional[Iterable[Union[Tool, Callable]]] = None):
        self._tools: Dict[str, Tool] = {}
        for item in tools or []:
            self.register(item)

    def register(self, item: Union[Tool, Callable]) -> Tool:
        tool = as_tool(item)
        if not tool.name:
            raise ConfigurationError(f"Tool has no name: {item!r}")
        if tool.name in self._tools:
            raise ConfigurationError(f"Duplicate tool name: {tool.name}")
        self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self) -> List[Dict[str, Any]]:
        return [tool.to_schema() for tool in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self):
        return iter(self._tools.values())
