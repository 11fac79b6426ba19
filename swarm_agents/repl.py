"""Interactive terminal loop for trying out agents."""

import json
from typing import Any, Dict, List, Optional

from .agent import Agent
from .core import Swarm
from .streaming import PrintingStreamHandler, StreamHandler
from .types import Message


class DemoStreamHandler(PrintingStreamHandler):
    """Prefixes each streamed reply with the agent name."""

    def __init__(self, stream=None):
        super().__init__(stream)
        self.agent_name: Optional[str] = None
        self._prefixed = False

    def on_agent(self, name: str):
        self.agent_name = name

    def on_start(self):
        self._prefixed = False

    def on_token(self, fragment: str):
        if not self._prefixed:
            self.stream.write(f"\033[94m{self.agent_name}\033[0m: ")
            self._prefixed = True
        super().on_token(fragment)


def pretty_print_messages(messages: List[Message]):
    for message in messages:
        if message.get("role") != "assistant":
            continue

        print(f"\033[94m{message.get('sender')}\033[0m:", end=" ")
        if message.get("content"):
            print(message["content"])

        tool_calls = message.get("tool_calls") or []
        if len(tool_calls) > 1:
            print()
        for call in tool_calls:
            function = call.get("function", {})
            name = function.get("name")
            try:
                args = json.dumps(json.loads(function.get("arguments") or "{}")).replace(":", "=")
            except json.JSONDecodeError:
                args = function.get("arguments")
            print(f"\033[95m{name}\033[0m({args[1:-1] if args else ''})")


def run_demo_loop(starting_agent: Agent, context_variables: Optional[Dict[str, Any]] = None,
                  stream: bool = False, debug: bool = False, swarm: Optional[Swarm] = None,
                  handler: Optional[StreamHandler] = None, input_func=input):
    """Chat with starting_agent until the user types quit or sends EOF."""
    client = swarm or Swarm()
    print("Starting Swarm CLI 🐝")

    messages: List[Message] = []
    agent = starting_agent
    context_variables = dict(context_variables or {})
    handler = handler or DemoStreamHandler()

    while True:
        try:
            user_input = input_func("\033[90mUser\033[0m: ").strip()
        except EOFError:
            break
        if user_input.lower() in ("quit", "exit", "q"):
            break
        if not user_input:
            continue

        messages.append({"role": "user", "content": user_input})

        response = client.run(
            agent=agent,
            messages=messages,
            context_variables=context_variables,
            stream=stream,
            stream_handler=handler,
            debug=debug,
        )
        if not stream:
            pretty_print_messages(response.messages)

        messages.extend(response.messages)
        agent = response.agent
        context_variables = response.context_variables

    print("Goodbye!")
    return messages, agent, context_variables
