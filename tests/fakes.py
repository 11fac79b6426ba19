"""Scripted gateway so tests never touch the network."""

import copy
import json
import threading

from swarm_agents import Gateway


def assistant(content="done"):
    return {"role": "assistant", "content": content}


def tool_call(name, arguments=None, call_id=None):
    return {
        "id": call_id or f"call_{name}",
        "type": "function",
        "function": {"name": name, "arguments": json.dumps(arguments or {})},
    }


def tool_calls(*calls, content=""):
    return {"role": "assistant", "content": content, "tool_calls": list(calls)}


def to_deltas(message, size=3):
    """Split a message into OpenAI-style stream deltas."""
    deltas = [{"role": "assistant"}]
    content = message.get("content") or ""
    for i in range(0, len(content), size):
        deltas.append({"content": content[i:i + size]})
    for index, call in enumerate(message.get("tool_calls") or []):
        arguments = call["function"]["arguments"]
        deltas.append({"tool_calls": [{"index": index, "id": call["id"], "type": "function",
                                       "function": {"name": call["function"]["name"], "arguments": ""}}]})
        for i in range(0, len(arguments), size):
            deltas.append({"tool_calls": [{"index": index, "function": {"arguments": arguments[i:i + size]}}]})
    return deltas


class FakeGateway(Gateway):
    """Replays scripted replies and records every request.

    A script item may be a message dict, an exception to raise, a list of
    raw stream deltas (exceptions inside it are raised mid-stream), or a
    callable (messages, model, tools) returning one of those. When the
    script runs out the gateway answers "done".
    """

    def __init__(self, script=None, by_model=None):
        self.script = list(script or [])
        self.by_model = {k: list(v) for k, v in (by_model or {}).items()}
        self.calls = []
        self.lock = threading.Lock()

    def _next(self, messages, model, tools, stream):
        with self.lock:
            self.calls.append({
                "messages": copy.deepcopy(messages),
                "model": model,
                "tools": copy.deepcopy(tools),
                "stream": stream,
            })
            queue = self.by_model.get(model, self.script)
            if queue and len(queue) > 1:
                item = queue.pop(0)
            elif queue:
                # the last item repeats
                item = queue[0]
            else:
                item = assistant()
        if callable(item):
            item = item(messages, model, tools)
        if isinstance(item, BaseException):
            raise item
        return copy.deepcopy(item)

    def complete(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True):
        item = self._next(messages, model, tools, stream=False)
        assert isinstance(item, dict), "stream deltas scripted for a non-streaming call"
        return item

    def stream(self, ctx, messages, model, tools=None, tool_choice=None, parallel_tool_calls=True):
        item = self._next(messages, model, tools, stream=True)
        deltas = item if isinstance(item, list) else to_deltas(item)
        for delta in deltas:
            if isinstance(delta, BaseException):
                raise delta
            yield delta
