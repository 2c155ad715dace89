"""Per-resource serialisation of reconciles.

Kopf serialises handlers per watched object, but a Sidecar is reconciled
from its own events, from events of the pods it owns and from a timer. The
gate here makes those triggers share one in-flight reconcile per Sidecar.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Flight:
    """One in-flight run of a key and the outcome its waiters receive."""

    def __init__(self) -> None:
        self.dirty = False
        self.finished = False
        self.result: Any = None
        self.error: BaseException | None = None


class ReconcileGate:
    """Run at most one reconcile per key at a time, coalescing the rest.

    A caller arriving while its key is in flight marks the key dirty and
    waits. The in-flight caller runs the reconcile again after it finishes,
    as long as the key was marked dirty in between (at most once per pass).
    This mirrors the dirty set of a controller work queue.

    Waiting callers share the outcome of the run they joined: the result of
    its last pass, or the exception that ended it. A trigger is therefore
    never reported as handled while the pass meant to cover it failed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._finished = threading.Condition(self._lock)
        self._flights: dict[str, _Flight] = {}

    def run(self, key: str, func: Callable[[], T]) -> tuple[bool, T | None]:
        """Run func for key, or join the run already in flight for key.

        Returns:
            Tuple of (ran, result of the last pass). ``ran`` is False if the
            call was coalesced into a run started by another caller.

        Raises:
            Whatever func raised. An exception ends the run, drops any
            pending re-run and is raised to the runner and to every caller
            waiting on it.
        """
        with self._lock:
            flight = self._flights.get(key)
            if flight is not None:
                flight.dirty = True
                logger.debug(f"Reconcile of {key} already in flight, waiting for it")
                self._finished.wait_for(lambda: flight.finished)
                if flight.error is not None:
                    raise flight.error
                return False, flight.result
            flight = _Flight()
            self._flights[key] = flight

        try:
            while True:
                result = func()
                with self._lock:
                    if not flight.dirty:
                        flight.result = result
                        self._finish(key, flight)
                        return True, result
                    flight.dirty = False
                logger.debug(f"Re-running reconcile of {key} for coalesced triggers")
        except BaseException as e:
            with self._lock:
                flight.error = e
                self._finish(key, flight)
            raise

    def _finish(self, key: str, flight: _Flight) -> None:
        # Caller holds self._lock
        flight.finished = True
        del self._flights[key]
        self._finished.notify_all()
