"""Background thread that owns the loaded dictionary and answers queries."""

from __future__ import annotations

import copy
import queue
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from . import protocol
from ..core.capper import DEFAULT_CAP, resolve_cap
from ..core.database import DEFAULT_FETCH_TIMEOUT, JsonFetcher, RhymeDatabase, load_rhyme_db
from ..core.errors import DictionaryLoadFailure
from ..core.models import Mode, QueryRequest, RhymeType
from ..core.normalize import normalize_lexeme
from ..core.query import query_rhymes, select_source
from ..utils.observability import (
    add_span_attributes,
    create_counter,
    get_logger,
    record_exception,
    start_span,
)

Poster = Callable[[protocol.Message], None]
CacheKey = Tuple[Any, ...]

DEFAULT_CACHE_SIZE = 2000


class RhymeWorker:
    """Single background thread fed by an inbox queue.

    The dictionary is fetched at most once per worker, on the first ``init``
    message; later ``init`` messages replay the first outcome. Replies go back
    through ``post``, which the client wires to its message handler. Once
    :meth:`stop` is called, queued messages are dropped and nothing more is
    posted, even if a fetch in flight completes afterwards.
    """

    def __init__(
        self,
        post: Poster,
        *,
        fetch: Optional[JsonFetcher] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        cache_size: int = DEFAULT_CACHE_SIZE,
        default_cap: int = DEFAULT_CAP,
    ) -> None:
        self._post = post
        self._fetch = fetch
        self._timeout = timeout
        self._max_cache_entries = max(0, int(cache_size))
        self._default_cap = default_cap
        self._inbox: "queue.Queue[protocol.Message]" = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="rhyme-worker", daemon=True)
        self._stopping = threading.Event()
        self._database: Optional[RhymeDatabase] = None
        self._init_reply: Optional[protocol.Message] = None
        self._cache: "OrderedDict[CacheKey, Dict[str, Any]]" = OrderedDict()
        self._logger = get_logger(__name__).bind(component="rhyme_worker")
        self._metric_cache_misses = create_counter(
            "rhyme_lines_worker_cache_misses_total",
            "Queries computed by the worker instead of served from its cache.",
        )

    # Lifecycle ------------------------------------------------------------
    def start(self) -> None:
        self._thread.start()

    def post_message(self, message: protocol.Message) -> None:
        if self._stopping.is_set():
            return
        self._inbox.put(message)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the thread to exit without waiting unless ``timeout`` is given."""

        self._stopping.set()
        self._inbox.put(protocol.terminate_message())
        if timeout is None:
            return
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        while True:
            message = self._inbox.get()
            msg_type = message.get("type")
            if msg_type == protocol.TERMINATE or self._stopping.is_set():
                break
            if msg_type == protocol.INIT:
                self._handle_init(message)
            elif msg_type == protocol.GET_RHYMES:
                self._handle_get_rhymes(message)
            else:
                self._logger.warning("Ignoring unknown worker message", context={"type": msg_type})

        self._database = None
        self._cache.clear()
        self._logger.info("Rhyme worker stopped", context={"dropped": self._inbox.qsize()})

    def _reply(self, message: protocol.Message) -> None:
        if self._stopping.is_set():
            return
        self._post(message)

    # Handlers -------------------------------------------------------------
    def _handle_init(self, message: protocol.Message) -> None:
        if self._init_reply is not None:
            self._reply(dict(self._init_reply))
            return

        base_origin = str(message.get("baseOrigin") or "")
        version = int(message["version"])
        with start_span("rhyme_lines.worker.load_db", {"db.version": version}) as span:
            try:
                database = load_rhyme_db(
                    base_origin,
                    version=version,
                    timeout=self._timeout,
                    fetch=self._fetch,
                )
            except DictionaryLoadFailure as exc:
                record_exception(span, exc)
                self._logger.error(
                    "Rhyme DB load failed",
                    context={"base_origin": base_origin, "version": version, "error": str(exc)},
                )
                self._init_reply = protocol.init_err(str(exc))
            else:
                add_span_attributes(span, {"db.entries": len(database)})
                self._database = database
                self._init_reply = protocol.init_ok(
                    {
                        "version": database.version,
                        "entries": len(database),
                        "legacy": database.legacy,
                        "flagsAvailable": database.flags_available,
                        "generatedAt": database.generated_at,
                    }
                )
        self._reply(dict(self._init_reply))

    def _cache_key(self, request: QueryRequest) -> CacheKey:
        modes = tuple(mode.value for mode in Mode if mode in request.active_modes)
        targets = tuple(normalize_lexeme(request.target_for(Mode(mode))) for mode in modes)
        rhyme_types = tuple(kind.value for kind in RhymeType if kind in request.rhyme_types)
        version = self._database.version if self._database is not None else None
        return (modes, targets, rhyme_types, resolve_cap(request.cap, self._default_cap), version)

    def _cache_get(self, key: CacheKey) -> Optional[Dict[str, Any]]:
        entry = self._cache.get(key)
        if entry is not None:
            self._cache.move_to_end(key)
        return entry

    def _cache_put(self, key: CacheKey, value: Dict[str, Any]) -> None:
        if self._max_cache_entries <= 0:
            return
        self._cache[key] = value
        self._cache.move_to_end(key)
        while len(self._cache) > self._max_cache_entries:
            self._cache.popitem(last=False)

    @staticmethod
    def _refresh_debug(payload: Dict[str, Any], request: QueryRequest, updated_at: float) -> Dict[str, Any]:
        # Cached entries share normalized targets but not raw text or timing.
        refreshed = copy.deepcopy(payload)
        for mode_value, record in refreshed.get("debug", {}).items():
            record["rawTarget"] = request.target_for(Mode(mode_value))
            meta = record.setdefault("meta", {})
            meta["updatedAt"] = updated_at
            meta["debounceMs"] = request.debounce_ms
        return refreshed

    def _handle_get_rhymes(self, message: protocol.Message) -> None:
        request_id = str(message.get("requestId"))
        try:
            request = QueryRequest.from_dict(message.get("request") or {})
        except (AttributeError, TypeError, ValueError) as exc:
            self._logger.warning(
                "Rejecting undecodable query",
                context={"request_id": request_id, "error": str(exc)},
            )
            self._reply(protocol.get_rhymes_err(request_id, f"Invalid request: {exc}"))
            return

        source = select_source(self._database).name
        try:
            key = self._cache_key(request)
            cached = self._cache_get(key)
            if cached is not None:
                payload = self._refresh_debug(cached, request, time.time())
                self._reply(protocol.get_rhymes_ok(request_id, payload, cached=True, source=source))
                return

            self._metric_cache_misses.inc()
            with start_span("rhyme_lines.worker.query", {"rhyme.source": source}):
                result = query_rhymes(self._database, request, default_cap=self._default_cap)
            payload = result.as_dict()
            self._cache_put(key, payload)
        except Exception as exc:
            self._logger.exception(
                "Rhyme query crashed in worker",
                context={"request_id": request_id, "error": str(exc)},
            )
            self._reply(protocol.get_rhymes_err(request_id, str(exc)))
            return

        self._reply(
            protocol.get_rhymes_ok(request_id, copy.deepcopy(payload), cached=False, source=source)
        )


__all__ = ["DEFAULT_CACHE_SIZE", "RhymeWorker"]
