"""
Swarm Agents - lightweight multi-agent orchestration

This package runs conversations between a user and one or more agents:
- Agents call Python functions (tools) the model asks for
- A tool can hand the conversation off to another agent
- Replies can be streamed through a callback handler
- Independent conversations can run concurrently under one deadline
"""

from .agent import Agent, ComputedInstructions, Instructions, StaticInstructions
from .api import AnthropicGateway, Gateway, OpenAIGateway, RoutingGateway, chat_complete, get_gateway
from .context import RunContext
from .core import Swarm
from .errors import (
    ConfigurationError,
    DeadlineExceeded,
    GatewayError,
    RunCancelled,
    SwarmError,
    ToolError,
)
from .manager import AgentManager
from .repl import run_demo_loop
from .streaming import CollectingStreamHandler, PrintingStreamHandler, StreamHandler, StreamingRelay
from .tools import FunctionRegistry, FunctionTool, Tool, function_to_json
from .types import DEFAULT_MAX_TURNS, ConcurrentRunResult, Response, Result, RunConfig

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "Instructions",
    "StaticInstructions",
    "ComputedInstructions",
    "Swarm",
    "AgentManager",
    "RunContext",
    "Gateway",
    "OpenAIGateway",
    "AnthropicGateway",
    "RoutingGateway",
    "get_gateway",
    "chat_complete",
    "StreamHandler",
    "CollectingStreamHandler",
    "PrintingStreamHandler",
    "StreamingRelay",
    "Tool",
    "FunctionTool",
    "FunctionRegistry",
    "function_to_json",
    "Result",
    "Response",
    "RunConfig",
    "ConcurrentRunResult",
    "DEFAULT_MAX_TURNS",
    "SwarmError",
    "ConfigurationError",
    "GatewayError",
    "RunCancelled",
    "DeadlineExceeded",
    "ToolError",
    "run_demo_loop",
]
