#!/usr/bin/env python3
"""
Simple Swarm Example

This shows the most basic way to use the package:
1. Define two agents
2. Give the first one a function that hands off to the second
3. Run a conversation and print what came back

Run with: python examples/simple_example.py
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm_agents import Agent, Swarm

spanish_agent = Agent(
    name="Spanish Agent",
    model="gpt-4o-mini",
    instructions="You only speak Spanish.",
)


def transfer_to_spanish_agent():
    """Transfer spanish speaking users immediately."""
    return spanish_agent


english_agent = Agent(
    name="English Agent",
    model="gpt-4o-mini",
    instructions="You only speak English.",
    functions=[transfer_to_spanish_agent],
)


def main():
    client = Swarm()
    response = client.run(
        agent=english_agent,
        messages=[{"role": "user", "content": "Hola. ¿Cómo estás?"}],
        max_turns=5,
    )

    for message in response.messages:
        if message["role"] == "assistant" and message.get("content"):
            print(f"{message['sender']}: {message['content']}")
    print(f"✅ Finished with {response.agent.name}")


if __name__ == "__main__":
    main()
