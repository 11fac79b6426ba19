import io

from fakes import FakeGateway, assistant, tool_call, tool_calls
from swarm_agents import Agent, CollectingStreamHandler, StreamingRelay, Swarm, run_demo_loop
from swarm_agents.repl import DemoStreamHandler


def test_demo_loop_carries_agent_and_history(capsys):
    sales = Agent(name="Sales", model="sales-model")

    def transfer_to_sales():
        return sales

    triage = Agent(name="Triage", model="triage-model", functions=[transfer_to_sales])
    gateway = FakeGateway(by_model={
        "triage-model": [tool_calls(tool_call("transfer_to_sales"))],
        "sales-model": [assistant("Let's talk prices.")],
    })
    inputs = iter(["I want to buy", "", "quit"])

    messages, agent, _ = run_demo_loop(triage, swarm=Swarm(gateway), input_func=lambda prompt: next(inputs))

    assert agent is sales
    assert messages[0] == {"role": "user", "content": "I want to buy"}
    assert messages[-1]["content"] == "Let's talk prices."
    out = capsys.readouterr().out
    assert "transfer_to_sales" in out
    assert "Let's talk prices." in out


def test_demo_loop_streams_and_stops_on_eof():
    def no_more_input(prompt):
        raise EOFError

    handler = CollectingStreamHandler()
    gateway = FakeGateway([assistant("hi")])
    inputs = iter(["hello"])

    def read(prompt):
        try:
            return next(inputs)
        except StopIteration:
            return no_more_input(prompt)

    messages, _, _ = run_demo_loop(Agent(name="A", model="m"), stream=True, swarm=Swarm(gateway),
                                   handler=handler, input_func=read)

    assert handler.text == "hi"
    assert messages[-1]["content"] == "hi"


def test_streamed_replies_are_labelled_with_the_agent_after_a_handoff():
    sales = Agent(name="Sales", model="sales-model")

    def transfer_to_sales():
        return sales

    triage = Agent(name="Triage", model="triage-model", functions=[transfer_to_sales])
    gateway = FakeGateway(by_model={
        "triage-model": [tool_calls(tool_call("transfer_to_sales"), content="Routing you.")],
        "sales-model": [assistant("Let's talk prices.")],
    })
    inputs = iter(["I want to buy", "quit"])
    out = io.StringIO()

    run_demo_loop(triage, stream=True, swarm=Swarm(gateway), handler=DemoStreamHandler(stream=out),
                  input_func=lambda prompt: next(inputs))

    text = out.getvalue()
    assert "Triage\033[0m: Routing you." in text
    assert "Sales\033[0m: Let's talk prices." in text


def test_relay_names_the_replying_agent_before_start():
    class Recording(CollectingStreamHandler):
        def on_agent(self, name):
            self.events.append(("agent", name))

    handler = Recording()
    StreamingRelay(handler, sender="Sales").relay(iter([{"content": "hi"}]))

    assert handler.events[:2] == [("agent", "Sales"), ("start", None)]
