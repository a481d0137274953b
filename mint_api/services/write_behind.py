# mint_api/services/write_behind.py
import atexit
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class WriteBehind:
    """
    Runs durable writes off the request path.

    A single worker keeps writes in submission order: the metadata insert of
    a create is queued before its image blob, so the blob job can see
    whether the insert failed. Each job runs inside a fresh app context so
    it gets its own SQLAlchemy session. Failures stay in the returned future
    and are logged by the job itself; callers that need durability wait on
    the future or on flush(). Pending writes are drained at process exit.
    """

    def __init__(self, max_workers: int = 1):
        self._max_workers = max_workers
        self._app = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._inflight = set()
        self._lock = threading.Lock()

    def init_app(self, app):
        self._app = app
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="write-behind"
            )
            atexit.register(self.shutdown, app.config.get("WRITE_BEHIND_TIMEOUT"))

    def submit(self, fn: Callable, *args, **kwargs):
        if self._executor is None or self._app is None:
            raise RuntimeError("WriteBehind no inicializado (llamar init_app)")

        app = self._app

        def _run():
            with app.app_context():
                return fn(*args, **kwargs)

        future = self._executor.submit(_run)
        with self._lock:
            self._inflight.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future):
        with self._lock:
            self._inflight.discard(future)

    def pending(self) -> int:
        with self._lock:
            return sum(1 for f in self._inflight if not f.done())

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for every queued write. Returns False if some are still running."""
        with self._lock:
            futures = list(self._inflight)
        if not futures:
            return True
        _, not_done = wait(futures, timeout=timeout)
        if not_done:
            logger.warning(f"flush: {len(not_done)} escrituras siguen en curso tras {timeout}s")
        return not not_done

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Drain queued writes and stop the worker. Later submits raise."""
        executor, self._executor = self._executor, None
        if executor is None:
            return True
        drained = self.flush(timeout)
        if not drained:
            logger.error("shutdown: se descartan escrituras pendientes")
        executor.shutdown(wait=drained)
        return drained
