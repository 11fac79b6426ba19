"""
Exception classes for swarm runs.

Gateway, configuration and cancellation faults are surfaced to the caller.
Tool faults and unknown tools never leave the turn loop; they are reported
back to the model as tool-reply messages instead.
"""

from typing import Any, Dict, Optional


class SwarmError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(SwarmError):
    """Raised before any gateway call when an agent or run is misconfigured."""


class GatewayError(SwarmError):
    """Raised when the completion gateway fails. Never retried by the turn loop."""

    def __init__(self, message: str, model: Optional[str] = None, cause: Optional[BaseException] = None):
        self.model = model
        self.cause = cause
        if model:
            message = f"{message} (model: {model})"
        super().__init__(message)


class RunCancelled(SwarmError):
    """
    Raised when a run observes that its context was cancelled.

    Attributes:
      agent_name: The agent that was active when cancellation was observed
      context: Additional details about the run
    """

    def __init__(self, agent_name: Optional[str] = None, context: Optional[Dict[str, Any]] = None,
                 message: Optional[str] = None):
        self.agent_name = agent_name
        self.context = context or {}
        if message is None:
            message = self._build_message()
        self.message = message
        super().__init__(message)

    def _build_message(self) -> str:
        parts = ["Run cancelled"]
        if self.agent_name:
            parts[0] += f" while agent '{self.agent_name}' was active"
        parts[0] += "."
        details = [f"{k}: {v}" for k, v in self.context.items() if v is not None]
        if details:
            parts.append(f"Context: {', '.join(details)}.")
        return " ".join(parts)


class DeadlineExceeded(RunCancelled):
    """Raised when the shared deadline of a run elapses."""

    def __init__(self, timeout: Optional[float] = None, agent_name: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.timeout = timeout
        super().__init__(agent_name=agent_name, context=context)

    def _build_message(self) -> str:
        head = "Deadline exceeded"
        if self.timeout is not None:
            head += f" after {self.timeout}s"
        if self.agent_name:
            head += f" while agent '{self.agent_name}' was active"
        return head + "."


class ToolError(SwarmError):
    """Describes a failed tool invocation. Converted into a tool-reply message."""

    def __init__(self, tool_name: str, cause: BaseException):
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Tool {tool_name} failed: {cause}")
