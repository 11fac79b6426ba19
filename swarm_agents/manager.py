import copy
import threading
import time
from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

from .collector import ResultCollector
from .context import RunContext
from .core import Swarm
from .errors import ConfigurationError
from .types import ConcurrentRunResult, RunConfig


class AgentManager:
    """Runs several independent agent conversations in parallel threads.

    All runs share one RunContext, so cancelling it (or letting its deadline
    pass) stops every run that is still going at its next gateway call.
    A failure in one run is recorded in that run's slot only.
    """

    def __init__(self, swarm: Optional[Swarm] = None, max_workers: Optional[int] = None,
                 debug: bool = False):
        self.swarm = swarm or Swarm()
        self.max_workers = max_workers
        self.debug = debug

        # Thread tracking
        self.threads: Dict[str, threading.Thread] = {}
        self.collector: Optional[ResultCollector] = None

        # Metrics
        self.total_runs_started = 0
        self.total_runs_failed = 0
        self.start_time = None
        self._metrics_lock = threading.Lock()

    def _run_one(self, ctx: RunContext, key: str, config: RunConfig, collector: ResultCollector,
                 slots: Optional[threading.Semaphore]):
        agent_name = getattr(config.agent, "name", key)
        started = time.monotonic()
        try:
            if slots is not None:
                slots.acquire()
            try:
                ctx.check(agent_name)
                response = self.swarm.run(
                    agent=config.agent,
                    messages=copy.deepcopy(config.messages),
                    context_variables=dict(config.context_variables),
                    model_override=config.model_override,
                    stream=config.stream,
                    stream_handler=config.stream_handler,
                    execute_tools=config.execute_tools,
                    max_turns=config.max_turns,
                    debug=config.debug or self.debug,
                    ctx=ctx,
                )
            finally:
                if slots is not None:
                    slots.release()
            result = ConcurrentRunResult(agent_name=agent_name, response=response,
                                         duration=time.monotonic() - started)
        except BaseException as e:
            # SystemExit and friends still fill the slot, then end this thread
            with self._metrics_lock:
                self.total_runs_failed += 1
            collector.publish(key, ConcurrentRunResult(agent_name=agent_name, error=e,
                                                       duration=time.monotonic() - started))
            if not isinstance(e, Exception):
                raise
            return
        collector.publish(key, result)

    def start(self, ctx: Optional[RunContext], configs: Dict[str, RunConfig]) -> ResultCollector:
        """Launch one thread per configured key and return the collector they report to."""
        collector, _ = self._launch(ctx, configs)
        return collector

    def _launch(self, ctx: Optional[RunContext],
                configs: Dict[str, RunConfig]) -> Tuple[ResultCollector, Dict[str, threading.Thread]]:
        for key, config in configs.items():
            if not isinstance(config, RunConfig):
                raise ConfigurationError(f"Config for {key!r} must be a RunConfig, got {type(config).__name__}")

        ctx = ctx or RunContext.background()
        collector = ResultCollector(configs.keys(), debug=self.debug)
        slots = threading.Semaphore(self.max_workers) if self.max_workers else None
        threads: Dict[str, threading.Thread] = {}

        for key, config in configs.items():
            thread = threading.Thread(
                target=self._run_one,
                args=(ctx, key, config, collector, slots),
                name=f"Agent-{key}",
            )
            thread.daemon = True
            thread.start()
            threads[key] = thread

        with self._metrics_lock:
            # most recent run, for print_status
            self.collector = collector
            self.threads = threads
            self.start_time = datetime.now()
            self.total_runs_started += len(threads)

        if self.debug:
            print(f"[Manager] Started {len(configs)} runs")
        return collector, threads

    def iter_concurrent(self, ctx: Optional[RunContext],
                        configs: Dict[str, RunConfig]) -> Iterator[Tuple[str, ConcurrentRunResult]]:
        """Yield (key, result) pairs as runs finish."""
        collector = self.start(ctx, configs)
        for _ in range(len(configs)):
            yield collector.next_completed()

    def run_concurrent(self, ctx: Optional[RunContext],
                       configs: Dict[str, RunConfig]) -> Dict[str, ConcurrentRunResult]:
        """Run every config and wait for all of them. Keys keep configuration order."""
        collector, threads = self._launch(ctx, configs)
        for _ in range(len(configs)):
            collector.next_completed()
        for thread in threads.values():
            thread.join()
        if self.debug:
            print(f"[Manager] All {len(configs)} runs finished")
        return collector.snapshot()

    def print_status(self):
        """Print a summary of the most recent concurrent run."""
        runtime = (datetime.now() - self.start_time).seconds if self.start_time else 0
        results = self.collector.snapshot() if self.collector else {}
        pending = self.collector.pending() if self.collector else []

        print("\n=== Concurrent Run Status ===")
        print(f"Runtime: {runtime}s")
        print(f"Runs started: {self.total_runs_started}, failed: {self.total_runs_failed}")
        print(f"Finished: {len(results)}, pending: {len(pending)}")

        for key, result in results.items():
            if result.ok:
                print(f"  - {key} ({result.agent_name}): {result.response.content[:80]}")
            else:
                print(f"  - {key} ({result.agent_name}): ERROR {type(result.error).__name__}: {result.error}")
        for key in pending:
            print(f"  - {key}: running...")

        print("=============================\n")
