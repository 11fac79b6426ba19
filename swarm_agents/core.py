import copy
import json
from typing import Any, Dict, List, Optional

from .agent import Agent
from .api import Gateway, RoutingGateway
from .context import RunContext
from .errors import ConfigurationError, GatewayError, SwarmError, ToolError
from .streaming import StreamHandler, StreamingRelay
from .tools import FunctionRegistry
from .types import DEFAULT_MAX_TURNS, Message, Response
from .util import debug_print


def tool_reply(call_id: Optional[str], name: str, content: Any) -> Message:
    return {
        "role": "tool",
        "tool_call_id": call_id,
        "tool_name": name,
        "content": "" if content is None else str(content),
    }


def parse_arguments(raw: Any) -> Dict[str, Any]:
    """Decode the model's argument payload. Empty payloads mean no arguments."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    arguments = json.loads(raw)
    if not isinstance(arguments, dict):
        raise ValueError(f"Expected a JSON object for arguments, got {type(arguments).__name__}")
    return arguments


class Swarm:
    """Runs the agent turn loop against a completion gateway."""

    def __init__(self, gateway: Optional[Gateway] = None):
        self.gateway = gateway or RoutingGateway()

    def _gateway_messages(self, agent: Agent, history: List[Message],
                          context_variables: Dict[str, Any]) -> List[Message]:
        instructions = agent.system_prompt(context_variables)
        body = history[1:] if history and history[0].get("role") == "system" else history
        return [{"role": "system", "content": instructions}] + body

    def get_chat_completion(self, ctx: RunContext, agent: Agent, history: List[Message],
                            context_variables: Dict[str, Any], model_override: Optional[str],
                            stream: bool, debug: bool):
        """Submit one request. Returns a message, or a delta iterator when streaming."""
        messages = self._gateway_messages(agent, history, context_variables)
        model = model_override or agent.model
        tools = agent.registry.schemas()
        debug_print(debug, f"[{agent.name}] Getting chat completion from {model} for:", messages)

        ctx.check(agent.name)
        call = self.gateway.stream if stream else self.gateway.complete
        try:
            return call(ctx, messages, model, tools or None, agent.tool_choice, agent.parallel_tool_calls)
        except Exception as e:
            # a request cut short by the deadline reports the cancellation, not the transport error
            cancelled = ctx.error(agent.name)
            if cancelled is not None:
                raise cancelled from e
            if isinstance(e, SwarmError):
                raise
            raise GatewayError(f"Completion request failed: {e}", model=model, cause=e) from e

    def _streamed_turn(self, ctx: RunContext, agent: Agent, history: List[Message],
                       context_variables: Dict[str, Any], model_override: Optional[str],
                       handler: Optional[StreamHandler], debug: bool) -> Message:
        model = model_override or agent.model
        relay = StreamingRelay(handler, model=model, ctx=ctx, sender=agent.name)
        try:
            result = self.get_chat_completion(ctx, agent, history, context_variables, model_override,
                                              stream=agent.supports_streaming, debug=debug)
        except ConfigurationError:
            raise
        except SwarmError as e:
            relay.fail(e)
            raise

        if not agent.supports_streaming:
            return relay.relay_message(dict(result, sender=agent.name))
        return relay.relay(result, sender=agent.name, agent_name=agent.name)

    def handle_tool_calls(self, tool_calls: List[Dict[str, Any]], registry: FunctionRegistry,
                          context_variables: Dict[str, Any], debug: bool = False) -> Response:
        """
        Execute tool calls in the order the model emitted them.

        Returns a partial Response: one tool reply per call, the handoff
        agent if any tool requested one (the last one wins), and the
        context-variable keys the tools set. Unknown tools and failing
        tools are reported in their reply; they never raise.
        """
        partial = Response()
        running = dict(context_variables)

        for call in tool_calls:
            function = call.get("function", {})
            name = function.get("name", "")
            call_id = call.get("id")

            tool = registry.get(name)
            if tool is None:
                debug_print(debug, f"Tool {name} not found in function map.")
                partial.messages.append(tool_reply(call_id, name, f"Error: Tool {name} not found."))
                continue

            debug_print(debug, f"Processing tool call: {name} with arguments {function.get('arguments')}")
            try:
                arguments = parse_arguments(function.get("arguments"))
                result = tool.invoke(arguments, dict(running))
            except Exception as e:
                error = ToolError(name, e)
                debug_print(debug, f"Error: {error}")
                partial.messages.append(tool_reply(call_id, name, f"Error: {error}"))
                continue

            partial.messages.append(tool_reply(call_id, name, result.value))
            if result.context_variables:
                running.update(result.context_variables)
                partial.context_variables.update(result.context_variables)
            if result.agent is not None:
                partial.agent = result.agent

        return partial

    def run(self, agent: Agent, messages: List[Message], context_variables: Optional[Dict[str, Any]] = None,
            model_override: Optional[str] = None, stream: bool = False,
            stream_handler: Optional[StreamHandler] = None, execute_tools: bool = True,
            max_turns: int = DEFAULT_MAX_TURNS, debug: bool = False,
            ctx: Optional[RunContext] = None) -> Response:
        """
        Drive the conversation until the model answers without tool calls,
        tool calls come back with execute_tools off, or max_turns gateway
        calls have been made.

        The caller's messages and context_variables are copied, never mutated.
        The returned Response holds only the messages this call appended.
        """
        if max_turns < 1:
            raise ConfigurationError(f"max_turns must be at least 1, got {max_turns}")
        if agent is None:
            raise ConfigurationError("An agent is required")
        agent.validate()

        ctx = ctx or RunContext.background()
        active_agent = agent
        context_variables = dict(context_variables or {})
        history = copy.deepcopy(list(messages))
        init_len = len(history)
        turns = 0

        while turns < max_turns:
            if stream:
                message = self._streamed_turn(ctx, active_agent, history, context_variables,
                                              model_override, stream_handler, debug)
            else:
                message = self.get_chat_completion(ctx, active_agent, history, context_variables,
                                                   model_override, stream=False, debug=debug)
                message = dict(message, sender=active_agent.name)
            turns += 1
            debug_print(debug, f"[{active_agent.name}] Received completion:", message)
            history.append(message)

            if not message.get("tool_calls"):
                debug_print(debug, "Ending turn.")
                break
            if not execute_tools:
                debug_print(debug, "Returning tool calls unexecuted.")
                break

            partial = self.handle_tool_calls(message["tool_calls"], active_agent.registry,
                                             context_variables, debug)
            history.extend(partial.messages)
            context_variables.update(partial.context_variables)
            if partial.agent is not None and partial.agent is not active_agent:
                partial.agent.validate()
                debug_print(debug, f"Handoff: {active_agent.name} -> {partial.agent.name}")
                active_agent = partial.agent
        else:
            debug_print(debug, f"Reached max_turns ({max_turns}), stopping.")

        return Response(
            messages=history[init_len:],
            agent=active_agent,
            context_variables=context_variables,
        )

    def streaming_response(self, agent: Agent, messages: List[Message], stream_handler: StreamHandler,
                           context_variables: Optional[Dict[str, Any]] = None,
                           model_override: Optional[str] = None, execute_tools: bool = True,
                           max_turns: int = DEFAULT_MAX_TURNS, debug: bool = False,
                           ctx: Optional[RunContext] = None) -> Response:
        """Run with streaming on, delivering each gateway round trip through stream_handler."""
        return self.run(agent, messages, context_variables=context_variables, model_override=model_override,
                        stream=True, stream_handler=stream_handler, execute_tools=execute_tools,
                        max_turns=max_turns, debug=debug, ctx=ctx)
