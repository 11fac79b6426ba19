"""
Completion gateway adapters.

The turn loop talks to a Gateway: complete() returns one assistant message,
stream() yields delta dicts shaped like OpenAI chat chunk deltas. Messages
and tool declarations use the OpenAI chat format throughout; adapters for
other providers translate at this boundary.

Transient transport failures are retried here with tenacity. Whatever still
fails is raised as GatewayError and is not retried by the caller.
"""

import json
import os
import threading
from typing import Any, Dict, Iterator, List, Optional

import anthropic
import openai
from tenacity import Retrying, retry_if_exception, stop_any, stop_after_attempt, wait_exponential

from .context import RunContext
from .errors import GatewayError, SwarmError
from .types import Message
from .util import env_int

GATEWAY_RETRIES = env_int("SWARM_GATEWAY_RETRIES", 3)
MAX_TOKENS = env_int("SWARM_MAX_TOKENS", 4096)
GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# keys the OpenAI chat API accepts on a message
OPENAI_MESSAGE_KEYS = ("role", "content", "name", "tool_calls", "tool_call_id")

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, TRANSIENT_ERRORS)


def _retrying(ctx: Optional[RunContext] = None) -> Retrying:
    def run_done(retry_state) -> bool:
        return ctx is not None and ctx.cancelled

    return Retrying(
        stop=stop_any(stop_after_attempt(max(GATEWAY_RETRIES, 1)), run_done),
        wait=wait_exponential(multiplier=0.5, max=8),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )


class Gateway:
    """Opaque completion service used by the turn loop."""

    def complete(self, ctx: Optional[RunContext], messages: List[Message], model: str,
                 tools: Optional[List[Dict[str, Any]]] = None, tool_choice: Optional[str] = None,
                 parallel_tool_calls: bool = True) -> Message:
        raise NotImplementedError

    def stream(self, ctx: Optional[RunContext], messages: List[Message], model: str,
               tools: Optional[List[Dict[str, Any]]] = None, tool_choice: Optional[str] = None,
               parallel_tool_calls: bool = True) -> Iterator[Dict[str, Any]]:
        raise NotImplementedError

    def _call(self, ctx: Optional[RunContext], func, **kwargs):
        """Run func with retries, converting provider errors into GatewayError.

        Retries stop as soon as ctx is cancelled or past its deadline.
        """
        model = kwargs.get("model")
        try:
            for attempt in _retrying(ctx):
                with attempt:
                    return func(**kwargs)
        except SwarmError:
            raise
        except Exception as e:
            raise GatewayError(f"Completion request failed: {e}", model=model, cause=e) from e


def _timeout(ctx: Optional[RunContext]) -> Dict[str, Any]:
    remaining = ctx.remaining() if ctx is not None else None
    return {"timeout": remaining} if remaining is not None else {}


def to_openai_messages(messages: List[Message]) -> List[Message]:
    """Strip bookkeeping keys and fix up empty assistant content."""
    result = []
    for message in messages:
        clean = {k: v for k, v in message.items() if k in OPENAI_MESSAGE_KEYS and v is not None}
        if clean.get("role") == "assistant" and clean.get("tool_calls") and not clean.get("content"):
            clean["content"] = None
        result.append(clean)
    return result


class OpenAIGateway(Gateway):
    """Gateway backed by the openai SDK (any OpenAI-compatible endpoint)."""

    def __init__(self, client: Optional[openai.OpenAI] = None, api_key: Optional[str] = None,
                 base_url: Optional[str] = None):
        self._client = client
        self._api_key = api_key
        self._base_url = base_url

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            self._client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    def _request(self, ctx, messages, model, tools, tool_choice, parallel_tool_calls) -> Dict[str, Any]:
        request = {
            "model": model,
            "messages": to_openai_messages(messages),
        }
        if tools:
            request["tools"] = tools
            request["parallel_tool_calls"] = parallel_tool_calls
            if tool_choice:
                request["tool_choice"] = tool_choice
        request.update(_timeout(ctx))
        return request

    def complete(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True) -> Message:
        request = self._request(ctx, messages, model, tools, tool_choice, parallel_tool_calls)
        completion = self._call(ctx, self.client.chat.completions.create, **request)
        message = completion.choices[0].message
        result = {"role": "assistant", "content": message.content or ""}
        if message.tool_calls:
            result["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.function.name, "arguments": call.function.arguments},
                }
                for call in message.tool_calls
            ]
        return result

    def stream(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True):
        request = self._request(ctx, messages, model, tools, tool_choice, parallel_tool_calls)
        chunks = self._call(ctx, self.client.chat.completions.create, stream=True, **request)
        for chunk in chunks:
            if not chunk.choices:
                continue
            yield chunk.choices[0].delta.model_dump(exclude_none=True)


def to_anthropic_messages(messages: List[Message]):
    """Split out the system prompt and translate tool traffic into content blocks."""
    system_parts = []
    result = []
    for message in messages:
        role = message.get("role")
        content = message.get("content") or ""

        if role == "system":
            if content:
                system_parts.append(content)
            continue

        if role == "tool":
            block = {"type": "tool_result", "tool_use_id": message.get("tool_call_id"), "content": content}
            last = result[-1] if result else None
            if (last and last["role"] == "user" and isinstance(last["content"], list)
                    and all(b.get("type") == "tool_result" for b in last["content"])):
                last["content"].append(block)
            else:
                result.append({"role": "user", "content": [block]})
            continue

        if role == "assistant":
            blocks = []
            if content:
                blocks.append({"type": "text", "text": content})
            for call in message.get("tool_calls") or []:
                function = call.get("function", {})
                try:
                    arguments = json.loads(function.get("arguments") or "{}")
                except json.JSONDecodeError:
                    arguments = {}
                blocks.append({"type": "tool_use", "id": call.get("id"), "name": function.get("name"),
                               "input": arguments})
            if blocks:
                result.append({"role": "assistant", "content": blocks})
            continue

        result.append({"role": "user", "content": content})

    return "\n\n".join(system_parts), result


def to_anthropic_tools(tools: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    result = []
    for tool in tools or []:
        function = tool.get("function", tool)
        result.append({
            "name": function["name"],
            "description": function.get("description", ""),
            "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
        })
    return result


def to_anthropic_tool_choice(tool_choice: Optional[str], parallel_tool_calls: bool) -> Optional[Dict[str, Any]]:
    if tool_choice == "none":
        return {"type": "none"}
    choice = {"type": "any" if tool_choice == "required" else "auto"}
    if not parallel_tool_calls:
        choice["disable_parallel_tool_use"] = True
    return choice


class AnthropicGateway(Gateway):
    """Gateway backed by the anthropic SDK."""

    def __init__(self, client: Optional[anthropic.Anthropic] = None, api_key: Optional[str] = None,
                 max_tokens: int = MAX_TOKENS):
        self._client = client
        self._api_key = api_key
        self.max_tokens = max_tokens

    @property
    def client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def _request(self, ctx, messages, model, tools, tool_choice, parallel_tool_calls) -> Dict[str, Any]:
        system, converted = to_anthropic_messages(messages)
        request = {"model": model, "messages": converted, "max_tokens": self.max_tokens}
        if system:
            request["system"] = system
        if tools:
            request["tools"] = to_anthropic_tools(tools)
            request["tool_choice"] = to_anthropic_tool_choice(tool_choice, parallel_tool_calls)
        request.update(_timeout(ctx))
        return request

    def complete(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True) -> Message:
        request = self._request(ctx, messages, model, tools, tool_choice, parallel_tool_calls)
        response = self._call(ctx, self.client.messages.create, **request)
        text = []
        calls = []
        for block in response.content:
            if block.type == "text":
                text.append(block.text)
            elif block.type == "tool_use":
                calls.append({
                    "id": block.id,
                    "type": "function",
                    "function": {"name": block.name, "arguments": json.dumps(block.input)},
                })
        result = {"role": "assistant", "content": "".join(text)}
        if calls:
            result["tool_calls"] = calls
        return result

    def stream(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True):
        request = self._request(ctx, messages, model, tools, tool_choice, parallel_tool_calls)
        events = self._call(ctx, self.client.messages.create, stream=True, **request)
        # content block index -> tool call index
        tool_index: Dict[int, int] = {}
        for event in events:
            if event.type == "content_block_start" and event.content_block.type == "tool_use":
                tool_index[event.index] = len(tool_index)
                yield {"tool_calls": [{
                    "index": tool_index[event.index],
                    "id": event.content_block.id,
                    "function": {"name": event.content_block.name, "arguments": ""},
                }]}
            elif event.type == "content_block_delta":
                if event.delta.type == "text_delta":
                    yield {"content": event.delta.text}
                elif event.delta.type == "input_json_delta" and event.index in tool_index:
                    yield {"tool_calls": [{
                        "index": tool_index[event.index],
                        "function": {"arguments": event.delta.partial_json},
                    }]}


class RoutingGateway(Gateway):
    """Picks a provider adapter from the model name and reuses it."""

    def __init__(self):
        self._gateways: Dict[str, Gateway] = {}
        self._lock = threading.Lock()

    def for_model(self, model: str) -> Gateway:
        provider = provider_for(model)
        with self._lock:
            if provider not in self._gateways:
                self._gateways[provider] = get_gateway(model)
            return self._gateways[provider]

    def complete(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True):
        return self.for_model(model).complete(ctx, messages, model, tools, tool_choice, parallel_tool_calls)

    def stream(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True):
        return self.for_model(model).stream(ctx, messages, model, tools, tool_choice, parallel_tool_calls)


def provider_for(model: str) -> str:
    name = (model or "").lower()
    if name.startswith("claude"):
        return "anthropic"
    if name.startswith("gemini"):
        return "gemini"
    return "openai"


def get_gateway(model: str) -> Gateway:
    """Build a gateway for the provider that serves model."""
    provider = provider_for(model)
    if provider == "anthropic":
        return AnthropicGateway(api_key=os.getenv("ANTHROPIC_API_KEY"))
    if provider == "gemini":
        return OpenAIGateway(api_key=os.getenv("GEMINI_API_KEY"), base_url=GEMINI_OPENAI_BASE_URL)
    return OpenAIGateway(api_key=os.getenv("OPENAI_API_KEY"), base_url=os.getenv("OPENAI_BASE_URL"))


def chat_complete(messages: List[Message], model_name: str = "gpt-4o", max_tokens: int = 2048) -> str:
    """One-shot completion without tools. Returns the reply text."""
    gateway = get_gateway(model_name)
    if isinstance(gateway, AnthropicGateway):
        gateway.max_tokens = max_tokens
    return gateway.complete(None, messages, model_name)["content"]
