import sys
import threading
import time
from types import SimpleNamespace

import httpx
import openai
import pytest

from fakes import FakeGateway, assistant, tool_call, tool_calls
from swarm_agents import (
    Agent,
    AgentManager,
    ConfigurationError,
    DeadlineExceeded,
    GatewayError,
    Result,
    RunCancelled,
    RunConfig,
    RunContext,
    Swarm,
    api,
)
from swarm_agents.api import OpenAIGateway


def user(text):
    return [{"role": "user", "content": text}]


def test_deadline_only_cancels_the_slow_agent():
    def slow_lookup():
        time.sleep(0.5)
        return "finally"

    gateway = FakeGateway(by_model={
        "fast-a": [assistant("alpha done")],
        "fast-b": [assistant("beta done")],
        "slow": [tool_calls(tool_call("slow_lookup"))],
    })
    configs = {
        "alpha": RunConfig(agent=Agent(name="Alpha", model="fast-a"), messages=user("a")),
        "beta": RunConfig(agent=Agent(name="Beta", model="fast-b"), messages=user("b")),
        "gamma": RunConfig(agent=Agent(name="Gamma", model="slow", functions=[slow_lookup]),
                           messages=user("c"), max_turns=5),
    }

    with RunContext.with_timeout(0.2) as ctx:
        results = AgentManager(Swarm(gateway)).run_concurrent(ctx, configs)

    assert list(results) == ["alpha", "beta", "gamma"]
    assert results["alpha"].ok and results["alpha"].response.content == "alpha done"
    assert results["beta"].ok and results["beta"].response.content == "beta done"
    assert isinstance(results["gamma"].error, DeadlineExceeded)
    assert results["gamma"].response is None
    assert results["gamma"].agent_name == "Gamma"
    assert len([c for c in gateway.calls if c["model"] == "slow"]) == 1


def test_failures_are_isolated_per_agent():
    gateway = FakeGateway(by_model={
        "ok": [assistant("fine")],
        "broken": [RuntimeError("503")],
    })
    configs = {
        "good": RunConfig(agent=Agent(name="Good", model="ok")),
        "bad": RunConfig(agent=Agent(name="Bad", model="broken")),
        "misconfigured": RunConfig(agent=Agent(name="", model="ok")),
    }

    results = AgentManager(Swarm(gateway)).run_concurrent(None, configs)

    assert results["good"].ok
    assert isinstance(results["bad"].error, GatewayError)
    assert isinstance(results["misconfigured"].error, ConfigurationError)


def test_cancelled_context_cancels_every_pending_run():
    ctx = RunContext()
    ctx.cancel()
    gateway = FakeGateway()
    configs = {name: RunConfig(agent=Agent(name=name, model="m")) for name in ("x", "y", "z")}

    results = AgentManager(Swarm(gateway)).run_concurrent(ctx, configs)

    assert gateway.calls == []
    for result in results.values():
        assert isinstance(result.error, RunCancelled)
        assert not isinstance(result.error, DeadlineExceeded)


def test_as_completed_yields_in_finishing_order():
    release = threading.Event()

    def wait_for_release():
        release.wait(2)
        return "released"

    def respond(messages, model, tools):
        if messages[-1]["role"] == "tool":
            return assistant("slow finished")
        return tool_calls(tool_call("wait_for_release"))

    gateway = FakeGateway(by_model={"quick": [assistant("quick finished")], "slow": [respond]})
    configs = {
        "slow": RunConfig(agent=Agent(name="Slow", model="slow", functions=[wait_for_release])),
        "quick": RunConfig(agent=Agent(name="Quick", model="quick")),
    }

    seen = []
    for key, result in AgentManager(Swarm(gateway)).iter_concurrent(None, configs):
        seen.append(key)
        assert result.ok
        release.set()

    assert seen == ["quick", "slow"]


def test_runs_do_not_share_context_variables():
    def tag(context_variables):
        return Result(value="tagged", context_variables={"owner": context_variables["me"]})

    shared = {"owner": None}
    gateway = FakeGateway(by_model={
        "m1": [tool_calls(tool_call("tag")), assistant("ok")],
        "m2": [tool_calls(tool_call("tag")), assistant("ok")],
    })
    configs = {
        "one": RunConfig(agent=Agent(name="One", model="m1", functions=[tag]),
                         context_variables=dict(shared, me="one")),
        "two": RunConfig(agent=Agent(name="Two", model="m2", functions=[tag]),
                         context_variables=dict(shared, me="two")),
    }

    results = AgentManager(Swarm(gateway)).run_concurrent(None, configs)

    assert results["one"].response.context_variables["owner"] == "one"
    assert results["two"].response.context_variables["owner"] == "two"
    assert configs["one"].context_variables["owner"] is None


def test_max_workers_limits_parallelism():
    active = []
    peak = []
    lock = threading.Lock()

    def respond(messages, model, tools):
        with lock:
            active.append(model)
            peak.append(len(active))
        time.sleep(0.05)
        with lock:
            active.remove(model)
        return assistant(model)

    gateway = FakeGateway(by_model={f"m{i}": [respond] for i in range(4)})
    configs = {f"r{i}": RunConfig(agent=Agent(name=f"R{i}", model=f"m{i}")) for i in range(4)}

    results = AgentManager(Swarm(gateway), max_workers=1).run_concurrent(None, configs)

    assert all(r.ok for r in results.values())
    assert max(peak) == 1


def test_empty_config_returns_empty_map():
    assert AgentManager(Swarm(FakeGateway())).run_concurrent(None, {}) == {}


def test_deadline_during_a_request_is_reported_as_deadline(monkeypatch):
    monkeypatch.setattr(api, "GATEWAY_RETRIES", 3)
    attempts = []
    lock = threading.Lock()

    def create(**kwargs):
        with lock:
            attempts.append(kwargs["model"])
        if kwargs["model"] == "slow":
            time.sleep(0.15)
            raise openai.APITimeoutError(request=httpx.Request("POST", "https://example.invalid"))
        message = SimpleNamespace(content=f"{kwargs['model']} done", tool_calls=None)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    configs = {
        "alpha": RunConfig(agent=Agent(name="Alpha", model="fast-a"), messages=user("a")),
        "beta": RunConfig(agent=Agent(name="Beta", model="fast-b"), messages=user("b")),
        "gamma": RunConfig(agent=Agent(name="Gamma", model="slow"), messages=user("c")),
    }

    with RunContext.with_timeout(0.1) as ctx:
        results = AgentManager(Swarm(OpenAIGateway(client=client))).run_concurrent(ctx, configs)

    assert results["alpha"].response.content == "fast-a done"
    assert results["beta"].response.content == "fast-b done"
    assert isinstance(results["gamma"].error, DeadlineExceeded)
    assert attempts.count("slow") == 1


def test_gateway_fault_after_the_deadline_is_reported_as_deadline():
    def late_failure(messages, model, tools):
        time.sleep(0.15)
        return RuntimeError("connection reset")

    gateway = FakeGateway([late_failure])

    with RunContext.with_timeout(0.05) as ctx:
        configs = {"late": RunConfig(agent=Agent(name="Late", model="m"))}
        results = AgentManager(Swarm(gateway)).run_concurrent(ctx, configs)

    assert isinstance(results["late"].error, DeadlineExceeded)
    assert isinstance(results["late"].error.__cause__, RuntimeError)


@pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
def test_system_exit_in_a_tool_still_fills_the_slot():
    def bail_out():
        sys.exit(1)

    gateway = FakeGateway(by_model={
        "exit": [tool_calls(tool_call("bail_out"))],
        "ok": [assistant("fine")],
    })
    configs = {
        "quitter": RunConfig(agent=Agent(name="Quitter", model="exit", functions=[bail_out])),
        "steady": RunConfig(agent=Agent(name="Steady", model="ok")),
    }
    manager = AgentManager(Swarm(gateway))
    done = {}

    waiter = threading.Thread(target=lambda: done.update(manager.run_concurrent(None, configs)), daemon=True)
    waiter.start()
    waiter.join(2)

    assert not waiter.is_alive()
    assert isinstance(done["quitter"].error, SystemExit)
    assert done["steady"].ok
    assert manager.total_runs_failed == 1


def test_overlapping_runs_on_one_manager_keep_their_own_results():
    release = threading.Event()

    def hold(messages, model, tools):
        release.wait(2)
        return assistant("held")

    gateway = FakeGateway(by_model={"hold": [hold], "quick": [assistant("quick")]})
    manager = AgentManager(Swarm(gateway))
    first = {}

    waiter = threading.Thread(target=lambda: first.update(manager.run_concurrent(
        None, {"held": RunConfig(agent=Agent(name="Held", model="hold"))})), daemon=True)
    waiter.start()
    second = manager.run_concurrent(None, {"quick": RunConfig(agent=Agent(name="Quick", model="quick"))})
    release.set()
    waiter.join(2)

    assert list(second) == ["quick"]
    assert list(first) == ["held"]
    assert first["held"].response.content == "held"
    assert manager.total_runs_started == 2
