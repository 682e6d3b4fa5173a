"""Rhyme suggestions for a lyrics editor, served from a background worker."""

from .core import (
    CURRENT_VERSION,
    Mode,
    QueryRequest,
    QueryResult,
    build_db_url,
    build_visible_suggestions,
    normalize_lexeme,
    normalize_token,
    query_rhymes,
)
from .utils.telemetry import get_telemetry, track_cache_hit, track_error, track_request
from .worker import RhymeWorkerClient, WorkerClientState, get_rhyme_client, init_rhyme_client

__all__ = [
    "CURRENT_VERSION",
    "Mode",
    "QueryRequest",
    "QueryResult",
    "build_db_url",
    "build_visible_suggestions",
    "normalize_lexeme",
    "normalize_token",
    "query_rhymes",
    "get_telemetry",
    "track_cache_hit",
    "track_error",
    "track_request",
    "RhymeWorkerClient",
    "WorkerClientState",
    "get_rhyme_client",
    "init_rhyme_client",
]
