import os
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import ConfigurationError
from .tools import FunctionRegistry, Tool

DEFAULT_MODEL = os.getenv("SWARM_DEFAULT_MODEL", "gpt-4o")
DEFAULT_INSTRUCTIONS = "You are a helpful agent."


class Instructions:
    """System prompt for an agent, either fixed text or computed per turn."""

    @staticmethod
    def of(value: Union[str, Callable, "Instructions", None]) -> "Instructions":
        if isinstance(value, Instructions):
            return value
        if value is None:
            return StaticInstructions(DEFAULT_INSTRUCTIONS)
        if isinstance(value, str):
            return StaticInstructions(value)
        if callable(value):
            return ComputedInstructions(value)
        raise ConfigurationError(f"Instructions must be a string or a callable, got {type(value).__name__}")

    def resolve(self, context_variables: Dict[str, Any]) -> str:
        raise NotImplementedError


class StaticInstructions(Instructions):

    def __init__(self, text: str):
        self.text = text

    def resolve(self, context_variables: Dict[str, Any]) -> str:
        return self.text

    def __repr__(self):
        return f"StaticInstructions({self.text[:40]!r})"


class ComputedInstructions(Instructions):
    """Instructions produced by func(context_variables), evaluated fresh each turn."""

    def __init__(self, func: Callable[[Dict[str, Any]], str]):
        self.func = func

    def resolve(self, context_variables: Dict[str, Any]) -> str:
        try:
            text = self.func(dict(context_variables))
        except Exception as e:
            raise ConfigurationError(f"Instructions function {getattr(self.func, '__name__', self.func)!r} failed: {e}") from e
        if not isinstance(text, str):
            raise ConfigurationError(f"Instructions function returned {type(text).__name__}, expected str")
        return text

    def __repr__(self):
        return f"ComputedInstructions({getattr(self.func, '__name__', self.func)!r})"


class Agent:
    """A named persona: instructions, model and the tools it may call.

    Agents are treated as immutable during a run. A handoff replaces the
    active agent with another Agent object rather than changing this one.
    """

    def __init__(self,
                 name: str = "Agent",
                 model: str = DEFAULT_MODEL,
                 instructions: Union[str, Callable, Instructions, None] = DEFAULT_INSTRUCTIONS,
                 functions: Optional[List[Union[Tool, Callable]]] = None,
                 tool_choice: Optional[str] = None,
                 parallel_tool_calls: bool = True,
                 supports_streaming: bool = True):
        self.name = name
        self.model = model
        self.instructions = Instructions.of(instructions)
        self.functions: List[Union[Tool, Callable]] = list(functions or [])
        self.tool_choice = tool_choice
        self.parallel_tool_calls = parallel_tool_calls
        self.supports_streaming = supports_streaming
        self._registry: Optional[FunctionRegistry] = None

    @property
    def registry(self) -> FunctionRegistry:
        """Tool registry built from functions on first use."""
        if self._registry is None:
            self._registry = FunctionRegistry(self.functions)
        return self._registry

    def validate(self):
        """Raise ConfigurationError when a required field is missing."""
        if not self.name or not isinstance(self.name, str):
            raise ConfigurationError("Agent name is required")
        if not self.model or not isinstance(self.model, str):
            raise ConfigurationError(f"Agent '{self.name}' has no model")
        if self._registry is None:
            self._registry = FunctionRegistry(self.functions)

    def system_prompt(self, context_variables: Dict[str, Any]) -> str:
        return self.instructions.resolve(context_variables)

    def __repr__(self):
        return f"Agent(name={self.name!r}, model={self.model!r}, tools={[getattr(f, 'name', getattr(f, '__name__', '?')) for f in self.functions]})"
