import os
from datetime import datetime
from typing import Dict

DEBUG = os.getenv("DEBUG", "false").lower() == "true"


def env_int(name: str, default: int) -> int:
    """Read an integer setting from the environment."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def debug_print(debug: bool, *args) -> None:
    """Print a timestamped line when debug output is enabled."""
    if not (debug or DEBUG):
        return
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    message = " ".join(map(str, args))
    print(f"[{timestamp}] {message}")


def merge_fields(target: Dict, source: Dict):
    """Merge streamed delta fields into target, concatenating strings."""
    for key, value in source.items():
        if isinstance(value, str):
            target[key] = target.get(key, "") + value
        elif value is not None and isinstance(value, dict):
            merge_fields(target.setdefault(key, {}), value)


def merge_chunk(final_response: Dict, delta: Dict) -> int:
    """
    Fold one streamed delta into the assembled assistant message.

    Returns the index of the tool call the delta touched, or -1 for content.
    """
    delta = dict(delta)
    delta.pop("role", None)
    tool_calls = delta.pop("tool_calls", None)
    merge_fields(final_response, {k: v for k, v in delta.items() if k == "content"})

    index = -1
    if tool_calls:
        for call in tool_calls:
            index = call.get("index", 0)
            slot = final_response["tool_calls"].setdefault(
                index,
                {"id": "", "type": "function", "function": {"name": "", "arguments": ""}},
            )
            fragment = {k: v for k, v in call.items() if k not in ("index", "type")}
            merge_fields(slot, fragment)
    return index
