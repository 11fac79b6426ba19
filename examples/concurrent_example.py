#!/usr/bin/env python3
"""
Concurrent Runs Example

Three agents answer independent questions in parallel under one shared
deadline. Results come back as they finish; a timeout in one run does
not affect the others.

Run with: python examples/concurrent_example.py
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from swarm_agents import Agent, AgentManager, RunConfig, RunContext

MISSIONS = {
    "poet": "Write a two-line poem about coding.",
    "historian": "In one sentence, who was Ada Lovelace?",
    "chef": "Name one dish that uses saffron.",
}


def main():
    configs = {
        key: RunConfig(
            agent=Agent(name=key.title(), model="gpt-4o-mini", instructions="Answer briefly."),
            messages=[{"role": "user", "content": mission}],
            max_turns=3,
        )
        for key, mission in MISSIONS.items()
    }

    manager = AgentManager(debug=True)
    with RunContext.with_timeout(30) as ctx:
        for key, result in manager.iter_concurrent(ctx, configs):
            if result.ok:
                print(f"✅ [{key}] {result.response.content}")
            else:
                print(f"❌ [{key}] {type(result.error).__name__}: {result.error}")

    manager.print_status()


if __name__ == "__main__":
    main()
