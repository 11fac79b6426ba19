"""
Streaming relay and callback handlers.

A relay covers exactly one gateway round trip. It guarantees:
on_start fires once before anything else, on_token receives content
fragments in arrival order, on_tool_call fires once per assembled tool
call, and exactly one of on_complete / on_error ends the stream.
"""

import sys
from typing import Any, Dict, Iterable, List, Optional

from .context import RunContext
from .errors import GatewayError, SwarmError
from .types import Message
from .util import merge_chunk


class StreamHandler:
    """Callbacks for a streamed gateway call. Override what you need."""

    def on_agent(self, name: str):
        """Called just before on_start with the name of the agent that is replying."""
        pass

    def on_start(self):
        pass

    def on_token(self, fragment: str):
        pass

    def on_tool_call(self, call: Dict[str, Any]):
        pass

    def on_complete(self, message: Message):
        pass

    def on_error(self, error: BaseException):
        pass


class CollectingStreamHandler(StreamHandler):
    """Records every event in order. Handy for callers that want the raw stream."""

    def __init__(self):
        self.events: List[tuple] = []
        self.tokens: List[str] = []
        self.tool_calls: List[Dict[str, Any]] = []
        self.completed: List[Message] = []
        self.errors: List[BaseException] = []

    def on_start(self):
        self.events.append(("start", None))

    def on_token(self, fragment: str):
        self.tokens.append(fragment)
        self.events.append(("token", fragment))

    def on_tool_call(self, call: Dict[str, Any]):
        self.tool_calls.append(call)
        self.events.append(("tool_call", call))

    def on_complete(self, message: Message):
        self.completed.append(message)
        self.events.append(("complete", message))

    def on_error(self, error: BaseException):
        self.errors.append(error)
        self.events.append(("error", error))

    @property
    def text(self) -> str:
        return "".join(self.tokens)


class PrintingStreamHandler(StreamHandler):
    """Writes tokens to a terminal as they arrive."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def on_token(self, fragment: str):
        self.stream.write(fragment)
        self.stream.flush()

    def on_tool_call(self, call: Dict[str, Any]):
        function = call.get("function", {})
        self.stream.write(f"\n[tool] {function.get('name')}({function.get('arguments')})")
        self.stream.flush()

    def on_complete(self, message: Message):
        self.stream.write("\n")
        self.stream.flush()

    def on_error(self, error: BaseException):
        self.stream.write(f"\n[error] {error}\n")
        self.stream.flush()


class StreamingRelay:
    """Feeds one gateway stream through a handler and assembles the final message."""

    def __init__(self, handler: Optional[StreamHandler] = None, model: Optional[str] = None,
                 ctx: Optional[RunContext] = None, sender: Optional[str] = None):
        self.handler = handler or StreamHandler()
        self.model = model
        self.ctx = ctx
        self.sender = sender
        self.started = False
        self.finished = False
        self._emitted = set()

    def _start(self):
        if not self.started:
            self.started = True
            if self.sender:
                self.handler.on_agent(self.sender)
            self.handler.on_start()

    def _complete(self, message: Message):
        if self.finished:
            return
        self.finished = True
        self.handler.on_complete(message)

    def _fail(self, error: BaseException):
        if self.finished:
            return
        self._start()
        self.finished = True
        self.handler.on_error(error)

    def _emit_tool_call(self, index: int, call: Dict[str, Any]):
        if index in self._emitted:
            return
        self._emitted.add(index)
        self.handler.on_tool_call(call)

    def relay(self, chunks: Iterable[Dict[str, Any]], sender: Optional[str] = None,
              agent_name: Optional[str] = None) -> Message:
        """Consume delta chunks, firing callbacks, and return the assembled message."""
        if sender:
            self.sender = sender
        message = {"role": "assistant", "content": "", "sender": self.sender, "tool_calls": {}}
        self._start()
        try:
            current = None
            for delta in chunks:
                if self.ctx is not None:
                    self.ctx.check(agent_name)
                index = merge_chunk(message, delta)
                fragment = delta.get("content")
                if fragment:
                    self.handler.on_token(fragment)
                if index >= 0:
                    if current is not None and index != current:
                        self._emit_tool_call(current, message["tool_calls"][current])
                    current = index
            for index in sorted(message["tool_calls"]):
                self._emit_tool_call(index, message["tool_calls"][index])
        except Exception as e:
            cancelled = self.ctx.error(agent_name) if self.ctx is not None else None
            if cancelled is not None:
                error = cancelled
            elif isinstance(e, SwarmError):
                error = e
            else:
                error = GatewayError(f"Streaming failed: {e}", model=self.model, cause=e)
            self._fail(error)
            if error is e:
                raise
            raise error from e

        calls = [message["tool_calls"][i] for i in sorted(message["tool_calls"])]
        if calls:
            message["tool_calls"] = calls
        else:
            del message["tool_calls"]
        self._complete(message)
        return message

    def relay_message(self, message: Message) -> Message:
        """Replay a non-streamed message through the handler as one round trip."""
        self._start()
        if message.get("content"):
            self.handler.on_token(message["content"])
        for index, call in enumerate(message.get("tool_calls") or []):
            self._emit_tool_call(index, call)
        self._complete(message)
        return message

    def fail(self, error: BaseException):
        """Report a failure that happened before or instead of the stream."""
        self._fail(error)
