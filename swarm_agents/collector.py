import queue
import threading
from typing import Dict, Iterable, List, Optional, Tuple

from .types import ConcurrentRunResult
from .util import debug_print


class ResultCollector:
    """Single point where concurrent runs hand in their results.

    Each key is written exactly once. Writers only call publish(); readers
    either drain the completion queue in finishing order or take a snapshot
    keyed in configuration order.
    """

    def __init__(self, keys: Iterable[str], debug: bool = False):
        self.keys: List[str] = list(keys)
        self.results: Dict[str, ConcurrentRunResult] = {}
        self.completed: "queue.Queue[Tuple[str, ConcurrentRunResult]]" = queue.Queue()
        self.lock = threading.Lock()
        self.debug = debug

    def publish(self, key: str, result: ConcurrentRunResult) -> bool:
        """Record the result for key. Returns False if key already has one."""
        with self.lock:
            if key in self.results:
                debug_print(self.debug, f"[Collector] Ignoring second result for {key}")
                return False
            self.results[key] = result
        self.completed.put((key, result))
        if result.error is not None:
            debug_print(self.debug, f"[Collector] {key} failed: {result.error}")
        else:
            debug_print(self.debug, f"[Collector] {key} finished in {result.duration:.2f}s")
        return True

    def next_completed(self, timeout: Optional[float] = None) -> Tuple[str, ConcurrentRunResult]:
        """Block until the next run finishes."""
        return self.completed.get(timeout=timeout)

    def pending(self) -> List[str]:
        with self.lock:
            return [key for key in self.keys if key not in self.results]

    @property
    def done(self) -> bool:
        return not self.pending()

    def snapshot(self) -> Dict[str, ConcurrentRunResult]:
        """Results so far, in configuration order."""
        with self.lock:
            return {key: self.results[key] for key in self.keys if key in self.results}
