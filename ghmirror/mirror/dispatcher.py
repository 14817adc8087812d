"""
Update Dispatcher — Serialize mirror update passes.

Webhook deliveries arrive concurrently, but git must never clone or fetch
into the same mirror directory twice at once. All update passes therefore
go through one dispatcher:

- ``dispatch()`` queues a request for the single background worker and
  returns immediately (webhook path).
- ``dispatch_sync()`` runs the pass in the calling thread and returns the
  results (batch path).

Both hold the same lock for the whole pass. Requests that pile up while
the worker is busy are merged into one pass over the union of their
names. Configuration is fetched from the provider at the start of every
pass.

## Usage

    dispatcher = UpdateDispatcher(ConfigProvider(config_path))
    dispatcher.dispatch({"widgets"})       # async
    dispatcher.dispatch_sync(set())        # all mirrors, blocking
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional

from ..config.models import GlobalConfig
from ..errors import ConfigurationError
from .store import MirrorUpdateResult, update_mirrors

logger = logging.getLogger(__name__)

UpdateFn = Callable[[Iterable[str], GlobalConfig], List[MirrorUpdateResult]]


@dataclass(frozen=True)
class UpdateRequest:
    """Mirrors to update; an empty set means all of them."""

    target_names: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, names: Optional[Iterable[str]] = None) -> "UpdateRequest":
        return cls(frozenset(names or ()))

    @property
    def is_all(self) -> bool:
        return not self.target_names

    def merge(self, other: "UpdateRequest") -> "UpdateRequest":
        if self.is_all or other.is_all:
            return UpdateRequest()
        return UpdateRequest(self.target_names | other.target_names)

    def describe(self) -> str:
        if self.is_all:
            return "all mirrors"
        return ", ".join(sorted(self.target_names))


_STOP = object()


class UpdateDispatcher:
    """Single-worker queue in front of the mirror store."""

    def __init__(
        self,
        config_provider: Callable[[], GlobalConfig],
        update: Optional[UpdateFn] = None,
    ):
        self._config_provider = config_provider
        self._update = update or update_mirrors
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()  # held for every update pass
        self._start_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    # ─── Public API ─────────────────────────────────────────

    def start(self) -> None:
        """Start the background worker if it is not running."""
        with self._start_lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._run, name="mirror-dispatcher", daemon=True
            )
            self._worker.start()

    def dispatch(self, names: Optional[Iterable[str]] = None) -> UpdateRequest:
        """Queue an update pass and return without waiting for it."""
        request = UpdateRequest.of(names)
        self.start()
        self._queue.put(request)
        logger.info(f"Queued mirror update for {request.describe()}")
        return request

    def dispatch_sync(self, names: Optional[Iterable[str]] = None) -> List[MirrorUpdateResult]:
        """
        Run an update pass in the calling thread.

        Raises:
            ConfigurationError: the configuration cannot be loaded or the
                base mirror directory is missing.
        """
        return self._execute(UpdateRequest.of(names))

    def join(self) -> None:
        """Block until every queued request has been processed."""
        self._queue.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish queued work, then stop the worker."""
        worker = self._worker
        if worker is None or not worker.is_alive():
            return
        self._queue.put(_STOP)
        worker.join(timeout)

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # ─── Internals ──────────────────────────────────────────

    def _execute(self, request: UpdateRequest) -> List[MirrorUpdateResult]:
        with self._lock:
            config = self._config_provider()
            return self._update(set(request.target_names), config)

    def _drain(self, first: UpdateRequest) -> tuple:
        """Collect every pending request behind ``first``."""
        batch = [first]
        stop_seen = False
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _STOP:
                stop_seen = True
                break
            batch.append(item)
        return batch, stop_seen

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                self._queue.task_done()
                return

            batch, stop_seen = self._drain(item)
            request = batch[0]
            for other in batch[1:]:
                request = request.merge(other)
            if len(batch) > 1:
                logger.info(f"Merged {len(batch)} pending requests into one pass")

            try:
                self._execute(request)
            except ConfigurationError as e:
                logger.error(f"Mirror update for {request.describe()} aborted: {e}")
            except Exception:
                logger.exception(f"Unexpected error updating {request.describe()}")
            finally:
                for _ in batch:
                    self._queue.task_done()

            if stop_seen:
                self._queue.task_done()
                return
