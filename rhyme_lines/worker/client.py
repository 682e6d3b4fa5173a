"""Caller-side handle for the background rhyme worker."""

from __future__ import annotations

import itertools
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from . import protocol
from .worker import RhymeWorker
from ..config import Settings, get_settings
from ..core.database import CURRENT_VERSION, JsonFetcher
from ..core.errors import ClientTerminated, DictionaryLoadFailure, MalformedResponse, RhymeLinesError
from ..core.models import QueryRequest, QueryResult
from ..core.query import query_rhymes
from ..utils.observability import get_logger
from ..utils.telemetry import RhymeTelemetry, get_tracker

WorkerFactory = Callable[..., RhymeWorker]

FALLBACK_WARNING = "Rhyme dictionary unavailable; using fallback generator"
NOT_LOADED_WARNING = "Rhyme dictionary not loaded; using fallback generator"
LOADING_WARNING = "Rhyme dictionary is still loading"
STALE_WARNING = "Rhyme dictionary version stale: v{loaded} loaded, v{current} is current"
FLAGS_WARNING = "Rhyme dictionary has no quality flags; suggestions are unfiltered"


class WorkerClientState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"
    TERMINATED = "terminated"


@dataclass
class _PendingRequest:
    future: "Future[QueryResult]"
    started_at: float


class RhymeWorkerClient:
    """Owns one background worker, its dictionary load and the request protocol.

    ``init`` and ``get_rhymes`` return :class:`concurrent.futures.Future`
    objects that complete on the worker thread. Replies are matched to
    callers by request id, so requests may complete in any order.
    """

    def __init__(
        self,
        *,
        base_origin: Optional[str] = None,
        version: Optional[int] = None,
        timeout: Optional[float] = None,
        cache_size: Optional[int] = None,
        default_cap: Optional[int] = None,
        fetch: Optional[JsonFetcher] = None,
        telemetry: Optional[RhymeTelemetry] = None,
        settings: Optional[Settings] = None,
        worker_factory: Optional[WorkerFactory] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        settings = settings or get_settings()
        self.base_origin = base_origin if base_origin is not None else settings.db_origin
        self.version = int(version if version is not None else settings.db_version)
        self._timeout = timeout if timeout is not None else settings.fetch_timeout
        self._cache_size = cache_size if cache_size is not None else settings.cache_size
        self._default_cap = default_cap if default_cap is not None else settings.default_cap
        self._fetch = fetch
        self._telemetry = telemetry or get_tracker()
        self._worker_factory: WorkerFactory = worker_factory or RhymeWorker
        self._clock = clock

        self._lock = threading.RLock()
        self._state = WorkerClientState.UNINITIALIZED
        self._worker: Optional[RhymeWorker] = None
        self._init_future: Optional["Future[None]"] = None
        self._pending: Dict[str, _PendingRequest] = {}
        self._request_counter = itertools.count(1)
        self._db_info: Dict[str, Any] = {}
        self._load_error: Optional[str] = None
        self._logger = get_logger(__name__).bind(component="rhyme_worker_client")

    # Public API -----------------------------------------------------------
    def init(self) -> "Future[None]":
        """Start the worker and load the dictionary, coalescing repeated calls."""

        with self._lock:
            if self._state is WorkerClientState.TERMINATED:
                raise ClientTerminated("Rhyme worker client has been terminated")
            if self._init_future is not None:
                return self._init_future

            self._init_future = Future()
            self._init_future.set_running_or_notify_cancel()
            self._state = WorkerClientState.INITIALIZING
            self._worker = self._worker_factory(
                self._handle_message,
                fetch=self._fetch,
                timeout=self._timeout,
                cache_size=self._cache_size,
                default_cap=self._default_cap,
            )
            self._logger.info(
                "Starting rhyme worker",
                context={"base_origin": self.base_origin, "version": self.version},
            )
            # Queued before releasing the lock so no query overtakes the load.
            self._worker.start()
            self._worker.post_message(protocol.init_message(self.base_origin, self.version))
            return self._init_future

    def get_rhymes(self, request: QueryRequest) -> "Future[QueryResult]":
        """Return suggestions for ``request``.

        While the worker is initializing or ready the query runs on the worker
        thread; before ``init`` or after a failed load it runs locally against
        the fallback generator and the returned future is already complete.
        """

        future: "Future[QueryResult]" = Future()
        future.set_running_or_notify_cancel()

        with self._lock:
            state = self._state
            if state is WorkerClientState.TERMINATED:
                raise ClientTerminated("Rhyme worker client has been terminated")
            if state in (WorkerClientState.INITIALIZING, WorkerClientState.READY):
                request_id = self._next_request_id()
                self._pending[request_id] = _PendingRequest(future, self._clock())
                worker = self._worker
            else:
                worker = None

        if worker is None:
            self._answer_locally(request, future)
            return future

        worker.post_message(protocol.get_rhymes_message(request_id, request))
        return future

    def get_warning(self) -> Optional[str]:
        with self._lock:
            state = self._state
            info = dict(self._db_info)
            load_error = self._load_error

        if state is WorkerClientState.UNINITIALIZED:
            return NOT_LOADED_WARNING
        if state is WorkerClientState.INITIALIZING:
            return LOADING_WARNING
        if state is WorkerClientState.ERROR:
            return f"{FALLBACK_WARNING} ({load_error})" if load_error else FALLBACK_WARNING
        if state is WorkerClientState.READY:
            loaded = info.get("version")
            if isinstance(loaded, int) and loaded < CURRENT_VERSION:
                return STALE_WARNING.format(loaded=loaded, current=CURRENT_VERSION)
            if info.get("flagsAvailable") is False:
                return FLAGS_WARNING
        return None

    def get_status(self) -> WorkerClientState:
        with self._lock:
            return self._state

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def db_info(self) -> Mapping[str, Any]:
        with self._lock:
            return dict(self._db_info)

    def terminate(self) -> None:
        """Stop the worker, drop the dictionary and fail outstanding requests."""

        with self._lock:
            if self._state is WorkerClientState.TERMINATED:
                return
            self._state = WorkerClientState.TERMINATED
            pending = list(self._pending.values())
            self._pending.clear()
            worker = self._worker
            self._worker = None
            init_future = self._init_future
            self._db_info = {}

        if worker is not None:
            worker.stop()
        for entry in pending:
            entry.future.set_exception(ClientTerminated("Worker terminated"))
        if init_future is not None and not init_future.done():
            init_future.set_exception(ClientTerminated("Worker terminated"))
        self._logger.info("Rhyme worker client terminated", context={"failed_pending": len(pending)})

    # Internal helpers -----------------------------------------------------
    def _next_request_id(self) -> str:
        return f"rhyme-{next(self._request_counter)}-{time.time_ns()}"

    def _answer_locally(self, request: QueryRequest, future: "Future[QueryResult]") -> None:
        started = self._clock()
        try:
            result = query_rhymes(None, request, default_cap=self._default_cap)
        except Exception as exc:
            self._telemetry.track_error()
            self._logger.exception("Local fallback query failed", context={"error": str(exc)})
            future.set_exception(exc)
            return
        self._telemetry.track_request((self._clock() - started) * 1000.0)
        future.set_result(result)

    def _handle_message(self, message: Any) -> None:
        """Dispatch one worker reply. Runs on the worker thread."""

        try:
            msg_type = protocol.reply_type(message)
            if msg_type == protocol.INIT_OK:
                self._on_init_ok(message)
            elif msg_type == protocol.INIT_ERR:
                self._on_init_err(message)
            elif msg_type == protocol.GET_RHYMES_OK:
                self._on_rhymes_ok(message)
            else:
                self._on_rhymes_err(message)
        except MalformedResponse as exc:
            self._logger.warning("Dropping malformed worker reply", context={"error": str(exc)})

    def _on_init_ok(self, message: Mapping[str, Any]) -> None:
        with self._lock:
            if self._state is not WorkerClientState.INITIALIZING:
                return
            self._state = WorkerClientState.READY
            self._db_info = dict(message.get("db") or {})
            init_future = self._init_future
        self._logger.info("Rhyme worker ready", context=dict(self._db_info))
        if init_future is not None and not init_future.done():
            init_future.set_result(None)

    def _on_init_err(self, message: Mapping[str, Any]) -> None:
        error = str(message.get("error") or "Rhyme dictionary failed to load")
        with self._lock:
            if self._state is not WorkerClientState.INITIALIZING:
                return
            self._state = WorkerClientState.ERROR
            self._load_error = error
            init_future = self._init_future
        self._logger.warning("Rhyme worker degraded to fallback generator", context={"error": error})
        if init_future is not None and not init_future.done():
            init_future.set_exception(DictionaryLoadFailure(error))

    def _on_rhymes_ok(self, message: Mapping[str, Any]) -> None:
        request_id = protocol.request_id_of(message)
        with self._lock:
            entry = self._pending.get(request_id)
        if entry is None:
            raise MalformedResponse(f"No pending request for id {request_id}")

        # An undecodable reply leaves the request pending for the caller's timeout.
        result = QueryResult.from_dict(message.get("result"))

        with self._lock:
            if self._pending.pop(request_id, None) is None:
                return
        self._telemetry.track_request((self._clock() - entry.started_at) * 1000.0)
        if message.get("cached"):
            self._telemetry.track_cache_hit()
        entry.future.set_result(result)

    def _on_rhymes_err(self, message: Mapping[str, Any]) -> None:
        request_id = protocol.request_id_of(message)
        with self._lock:
            entry = self._pending.pop(request_id, None)
        if entry is None:
            raise MalformedResponse(f"No pending request for id {request_id}")
        self._telemetry.track_error()
        entry.future.set_exception(RhymeLinesError(str(message.get("error") or "Worker error")))


__all__ = [
    "FALLBACK_WARNING",
    "FLAGS_WARNING",
    "LOADING_WARNING",
    "NOT_LOADED_WARNING",
    "STALE_WARNING",
    "RhymeWorkerClient",
    "WorkerClientState",
]
