#!/usr/bin/env python3
"""
Tool Integration Example

This example shows how to:
1. Define plain Python functions as tools
2. Read and update context variables from a tool
3. Compute instructions from context variables
4. Stream the reply to the terminal

Run with: python examples/tool_example.py
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm_agents import Agent, PrintingStreamHandler, Result, Swarm


# Define simple tools
def calculate(expression: str) -> str:
    """Evaluate a mathematical expression."""
    safe_dict = {
        "__builtins__": {},
        "sum": sum,
        "range": range,
        "pow": pow,
        "abs": abs,
        "min": min,
        "max": max
    }
    return str(eval(expression, safe_dict))


def remember_total(total: int, context_variables):
    """Store a running total the user asked you to remember."""
    previous = context_variables.get("total", 0)
    return Result(
        value=f"Stored {total} (was {previous})",
        context_variables={"total": total},
    )


def instructions(context_variables):
    total = context_variables.get("total")
    base = "You are a careful calculator. Use the tools for every computation."
    if total is not None:
        return f"{base} The remembered total is {total}."
    return base


calculator = Agent(
    name="Calculator",
    model="gpt-4o-mini",
    instructions=instructions,
    functions=[calculate, remember_total],
)


def main():
    client = Swarm()
    response = client.streaming_response(
        agent=calculator,
        messages=[{
            "role": "user",
            "content": "Sum the cubes of 1 through 30 and remember the result.",
        }],
        stream_handler=PrintingStreamHandler(),
        context_variables={"user": "demo"},
        max_turns=6,
    )
    print(f"\nContext variables: {response.context_variables}")


if __name__ == "__main__":
    main()
