"""Core rhyme lookup: normalization, dictionary, fallback, query and capping."""

from .capper import DEFAULT_CAP, build_visible_suggestions
from .cmudict_loader import CMUDictLoader
from .database import (
    CURRENT_VERSION,
    RhymeDatabase,
    build_db_url,
    load_rhyme_db,
    parse_rhyme_db_payload,
)
from .errors import (
    ClientTerminated,
    DictionaryLoadFailure,
    DictionaryVersionMismatch,
    InvalidInput,
    MalformedResponse,
    RhymeLinesError,
)
from .fallback import generate_candidates, is_valid_word
from .models import (
    ALL_RHYME_TYPES,
    Mode,
    QueryRequest,
    QueryResult,
    RhymeDebugCap,
    RhymeDebugMeta,
    RhymeSuggestionDebug,
    RhymeType,
)
from .normalize import normalize_lexeme, normalize_token
from .query import query_rhymes

__all__ = [
    "DEFAULT_CAP",
    "build_visible_suggestions",
    "CMUDictLoader",
    "CURRENT_VERSION",
    "RhymeDatabase",
    "build_db_url",
    "load_rhyme_db",
    "parse_rhyme_db_payload",
    "ClientTerminated",
    "DictionaryLoadFailure",
    "DictionaryVersionMismatch",
    "InvalidInput",
    "MalformedResponse",
    "RhymeLinesError",
    "generate_candidates",
    "is_valid_word",
    "ALL_RHYME_TYPES",
    "Mode",
    "QueryRequest",
    "QueryResult",
    "RhymeDebugCap",
    "RhymeDebugMeta",
    "RhymeSuggestionDebug",
    "RhymeType",
    "normalize_lexeme",
    "normalize_token",
    "query_rhymes",
]
