#!/usr/bin/env python3
"""Interactive terminal interface for Swarm Agents"""

import os
import sys

from swarm_agents import Agent, run_demo_loop


def lookup_order(order_id: str):
    """Look up the status of an order."""
    return f"Order {order_id} shipped yesterday."


support_agent = Agent(
    name="Support",
    model=os.getenv("SWARM_DEFAULT_MODEL", "gpt-4o-mini"),
    instructions="You help customers with their orders. Be concise.",
    functions=[lookup_order],
)


def transfer_to_support():
    """Hand the user to the support agent."""
    return support_agent


triage_agent = Agent(
    name="Triage",
    model=os.getenv("SWARM_DEFAULT_MODEL", "gpt-4o-mini"),
    instructions="Figure out what the user needs and transfer order questions to support.",
    functions=[transfer_to_support],
)


if __name__ == "__main__":
    stream = "--no-stream" not in sys.argv
    debug = os.getenv("DEBUG", "false").lower() == "true"
    try:
        run_demo_loop(triage_agent, stream=stream, debug=debug)
    except KeyboardInterrupt:
        print("\nGoodbye!")
