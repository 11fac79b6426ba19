"""Value types passed between the turn loop, tools and the coordinator."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .util import env_int

if TYPE_CHECKING:
    from .agent import Agent
    from .streaming import StreamHandler

DEFAULT_MAX_TURNS = env_int("SWARM_MAX_TURNS", 10)

# Chat messages are plain dicts in the OpenAI shape:
# {"role": "system"|"user"|"assistant"|"tool", "content": str, ...}
# Assistant messages may carry "tool_calls" and "sender",
# tool replies carry "tool_call_id" and "tool_name".
Message = Dict[str, Any]


@dataclass
class Result:
    """
    What a tool hands back to the turn loop.

    Attributes:
      value: Payload reported to the model as the tool reply
      agent: Replacement agent, if the tool requests a handoff
      context_variables: Keys to merge into the run's context variables
    """

    value: str = ""
    agent: Optional["Agent"] = None
    context_variables: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Response:
    """Outcome of one run: messages appended, final agent, final context variables."""

    messages: List[Message] = field(default_factory=list)
    agent: Optional["Agent"] = None
    context_variables: Dict[str, Any] = field(default_factory=dict)

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    @property
    def content(self) -> str:
        """Content of the final message, or empty."""
        last = self.last_message
        return (last or {}).get("content") or ""


@dataclass
class RunConfig:
    """Everything needed to launch one run, used by the coordinator."""

    agent: "Agent"
    messages: List[Message] = field(default_factory=list)
    context_variables: Dict[str, Any] = field(default_factory=dict)
    model_override: Optional[str] = None
    stream: bool = False
    stream_handler: Optional["StreamHandler"] = None
    execute_tools: bool = True
    max_turns: int = DEFAULT_MAX_TURNS
    debug: bool = False


@dataclass
class ConcurrentRunResult:
    """Result slot for one agent in a concurrent run. Written exactly once."""

    agent_name: str
    response: Optional[Response] = None
    error: Optional[BaseException] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None
