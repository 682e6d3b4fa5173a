"""Multi-mode rhyme lookup: candidate retrieval, filtering stages and capping."""

from __future__ import annotations

import time
from typing import Callable, Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple

from .capper import DEFAULT_CAP, RENDER_STAGE, build_visible_suggestions, resolve_cap
from .database import RhymeDatabase
from .fallback import generate_typed_candidates
from .models import (
    Mode,
    QueryRequest,
    QueryResult,
    RhymeDebugCap,
    RhymeDebugMeta,
    RhymeSuggestionDebug,
    RhymeType,
)
from .normalize import normalize_lexeme
from ..utils.observability import get_logger

# Rejection reasons recorded in ``RhymeSuggestionDebug.rejections``.
INVALID_INPUT = "invalid-input"
NOT_FOUND = "not-found"
INVALID_CANDIDATE = "invalid-candidate"
DUPLICATE = "duplicate"
SELF_MATCH = "self-match"
ENGINE_ERROR = "engine-error"
RHYME_TYPE = "rhyme-type"

# Dictionary quality flags that remove a candidate; the flag doubles as the reason.
REJECTED_FLAGS = frozenset({"proper", "foreign", "weird"})

STAGES = ("pool", "normalized", "deduped", "self", "type", "quality", RENDER_STAGE)

_logger = get_logger(__name__).bind(component="query_engine")


class CandidateSource(Protocol):
    """Where a query's raw candidate pool comes from."""

    name: str

    def candidates(self, key: str) -> Optional[Sequence[str]]:
        """Return the stored pool for ``key`` or ``None`` when the key is unknown."""

    def flag_for(self, word: str) -> Optional[str]:
        """Return a quality flag for ``word`` if the source has one."""

    def rhyme_type_for(self, key: str, word: str) -> Optional[RhymeType]:
        """Return how ``word`` rhymes with ``key``, ``None`` when unknown."""


class DictionarySource:
    name = "dictionary"

    def __init__(self, database: RhymeDatabase) -> None:
        self.database = database

    def candidates(self, key: str) -> Optional[Sequence[str]]:
        return self.database.lookup(key)

    def flag_for(self, word: str) -> Optional[str]:
        return self.database.flag_for(word)

    def rhyme_type_for(self, key: str, word: str) -> Optional[RhymeType]:
        return self.database.rhyme_type(key, word)


class FallbackSource:
    name = "fallback"

    def __init__(self) -> None:
        self._types: Dict[str, Dict[str, RhymeType]] = {}

    def candidates(self, key: str) -> Optional[Sequence[str]]:
        typed = generate_typed_candidates(key)
        self._types[key] = dict(typed)
        return [word for word, _ in typed]

    def flag_for(self, word: str) -> Optional[str]:
        return None

    def rhyme_type_for(self, key: str, word: str) -> Optional[RhymeType]:
        return self._types.get(key, {}).get(word)


def select_source(database: Optional[RhymeDatabase]) -> CandidateSource:
    """Pick the dictionary when one is loaded, the generator otherwise."""

    if database is None:
        return FallbackSource()
    return DictionarySource(database)


def _filter_pool(
    source: CandidateSource,
    target: str,
    pool: Sequence[str],
    debug: RhymeSuggestionDebug,
    rhyme_types: FrozenSet[RhymeType],
) -> List[str]:
    normalized: List[str] = []
    for candidate in pool:
        key = normalize_lexeme(candidate)
        if key:
            normalized.append(key)
        else:
            debug.reject(INVALID_CANDIDATE)
    debug.record_stage("normalized", len(normalized))

    seen = set()
    deduped: List[str] = []
    for word in normalized:
        if word in seen:
            debug.reject(DUPLICATE)
            continue
        seen.add(word)
        deduped.append(word)
    debug.record_stage("deduped", len(deduped))

    without_self = [word for word in deduped if word != target]
    debug.reject(SELF_MATCH, len(deduped) - len(without_self))
    debug.record_stage("self", len(without_self))

    # Candidates without a recorded type are kept whatever the selection.
    selected: List[str] = []
    for word in without_self:
        kind = source.rhyme_type_for(target, word)
        if kind is not None and kind not in rhyme_types:
            debug.reject(RHYME_TYPE)
            continue
        selected.append(word)
    debug.record_stage("type", len(selected))

    survivors: List[str] = []
    for word in selected:
        flag = source.flag_for(word)
        if flag in REJECTED_FLAGS:
            debug.reject(flag)
            continue
        survivors.append(word)
    debug.record_stage("quality", len(survivors))
    return survivors


def _query_mode(
    source: CandidateSource,
    request: QueryRequest,
    mode: Mode,
    cap: int,
    updated_at: float,
    active_modes: List[Mode],
) -> Tuple[List[str], RhymeSuggestionDebug]:
    raw_target = request.target_for(mode)
    normalized = normalize_lexeme(raw_target)
    debug = RhymeSuggestionDebug(
        raw_target=raw_target,
        normalized_target=normalized,
        active_modes=list(active_modes),
        meta=RhymeDebugMeta(updated_at=updated_at, debounce_ms=request.debounce_ms),
    )

    if not normalized:
        debug.reject(INVALID_INPUT)
        debug.record_stage("pool", 0)
        return [], debug

    try:
        pool = source.candidates(normalized)
        if pool is None:
            debug.reject(NOT_FOUND)
            pool = ()
        debug.pool_count = len(pool)
        debug.record_stage("pool", debug.pool_count)

        filtered = _filter_pool(source, normalized, pool, debug, request.rhyme_types)
        debug.filtered_count = len(filtered)

        visible = build_visible_suggestions(filtered, cap)
    except Exception as exc:
        _logger.exception(
            "Rhyme query failed; returning no suggestions",
            context={"mode": mode.value, "target": normalized, "source": source.name, "error": str(exc)},
        )
        debug.pool_count = debug.filtered_count = debug.rendered_count = 0
        debug.reject(ENGINE_ERROR)
        return [], debug

    debug.rendered_count = len(visible)
    debug.record_stage(RENDER_STAGE, debug.rendered_count)
    debug.cap = RhymeDebugCap(applied=len(filtered) > cap, limit=cap, stage=RENDER_STAGE)
    return visible, debug


def query_rhymes(
    database: Optional[RhymeDatabase],
    request: QueryRequest,
    *,
    default_cap: int = DEFAULT_CAP,
    clock: Callable[[], float] = time.time,
) -> QueryResult:
    """Answer ``request`` against ``database``, or the fallback generator when it is ``None``.

    Each active mode is computed independently, so a rejected caret word never
    affects the line-last list. Stored candidate order is preserved; the
    engine only filters and truncates.
    """

    source = select_source(database)
    cap = resolve_cap(request.cap, default_cap)
    updated_at = float(clock())
    active_modes = [mode for mode in Mode if mode in request.active_modes]

    result = QueryResult()
    for mode in active_modes:
        words, debug = _query_mode(source, request, mode, cap, updated_at, active_modes)
        result.results[mode] = words
        result.debug[mode] = debug
    return result


__all__ = [
    "CandidateSource",
    "DictionarySource",
    "FallbackSource",
    "DUPLICATE",
    "ENGINE_ERROR",
    "INVALID_CANDIDATE",
    "INVALID_INPUT",
    "NOT_FOUND",
    "REJECTED_FLAGS",
    "RHYME_TYPE",
    "SELF_MATCH",
    "STAGES",
    "query_rhymes",
    "select_source",
]
