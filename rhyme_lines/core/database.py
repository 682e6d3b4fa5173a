"""Versioned phonetic dictionary: asset location, parsing and loading."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import unquote, urlsplit

import requests

from .errors import DictionaryLoadFailure, DictionaryVersionMismatch
from .models import RhymeType
from .normalize import normalize_lexeme
from ..utils.observability import get_logger

CURRENT_VERSION = 2
LEGACY_VERSION = 1
DEFAULT_FETCH_TIMEOUT = 10.0

JsonFetcher = Callable[[str, float], Any]

_logger = get_logger(__name__).bind(component="rhyme_db")


def build_db_url(base_origin: str, version: int = CURRENT_VERSION) -> str:
    """Return the asset URL for dictionary ``version`` under ``base_origin``.

    The path segment and the ``v`` query parameter always carry the same
    version so cached assets of other versions stay addressable for rollback.
    """

    origin = str(base_origin).rstrip("/")
    version = int(version)
    return f"{origin}/rhyme-db/rhyme-db.v{version}.json?v={version}"


@dataclass(frozen=True)
class RhymeDatabase:
    """Immutable mapping of normalized lexemes to pre-ranked rhyme candidates."""

    version: int
    entries: Mapping[str, Tuple[str, ...]]
    flags: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    generated_at: Optional[str] = None
    source: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    rhyme_types: Mapping[str, Mapping[str, RhymeType]] = field(default_factory=lambda: MappingProxyType({}))
    legacy: bool = False
    flags_available: bool = True

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, word: object) -> bool:
        return word in self.entries

    def lookup(self, key: str) -> Optional[Tuple[str, ...]]:
        """Return stored candidates for a normalized ``key`` or ``None`` on a miss."""

        return self.entries.get(key)

    def flag_for(self, word: str) -> Optional[str]:
        return self.flags.get(word)

    def rhyme_type(self, key: str, word: str) -> Optional[RhymeType]:
        """Return how ``word`` rhymes with ``key``; ``None`` for untyped entries."""

        return self.rhyme_types.get(key, {}).get(word)


def _detect_version(payload: Mapping[str, Any]) -> Tuple[int, bool]:
    raw_version = payload.get("version")
    if raw_version is None:
        return LEGACY_VERSION, True
    if isinstance(raw_version, bool) or not isinstance(raw_version, int):
        raise DictionaryLoadFailure(f"Invalid rhyme DB version: {raw_version!r}")
    return raw_version, False


def parse_rhyme_db_payload(
    payload: Any,
    *,
    expected_version: int = CURRENT_VERSION,
) -> RhymeDatabase:
    """Validate a decoded JSON document and freeze it into a :class:`RhymeDatabase`.

    Keys that do not normalize are dropped and keys that normalize to the
    same lexeme are merged in document order. An entry is either a plain
    candidate list or an object of ``perfect``, ``near`` and ``slant`` lists;
    typed lists are concatenated in that order and each candidate keeps the
    type of its first occurrence.
    """

    if not isinstance(payload, dict):
        raise DictionaryLoadFailure("Invalid rhyme DB payload")

    detected, legacy = _detect_version(payload)
    if legacy:
        _logger.warning("Rhyme DB payload has no version; assuming legacy v1")
    if detected != expected_version:
        raise DictionaryVersionMismatch(detected, expected_version)

    rhymes = payload.get("rhymes")
    if not isinstance(rhymes, dict):
        raise DictionaryLoadFailure("Rhyme DB payload is missing the rhymes index")

    merged: Dict[str, List[str]] = {}
    typed: Dict[str, Dict[str, RhymeType]] = {}
    dropped_keys = 0
    for raw_key, candidates in rhymes.items():
        key = normalize_lexeme(raw_key)
        if not key or not isinstance(candidates, (list, dict)):
            dropped_keys += 1
            continue
        bucket = merged.setdefault(key, [])
        if isinstance(candidates, list):
            bucket.extend(item for item in candidates if isinstance(item, str))
            continue
        types = typed.setdefault(key, {})
        for kind in RhymeType:
            group = candidates.get(kind.value)
            if not isinstance(group, list):
                continue
            for item in group:
                if not isinstance(item, str):
                    continue
                bucket.append(item)
                types.setdefault(normalize_lexeme(item), kind)

    raw_flags = payload.get("flags")
    flags_available = isinstance(raw_flags, dict)
    flags: Dict[str, str] = {}
    if flags_available:
        for raw_word, flag in raw_flags.items():
            word = normalize_lexeme(raw_word)
            if word and isinstance(flag, str) and flag:
                flags[word] = flag

    if dropped_keys:
        _logger.warning(
            "Dropped rhyme DB keys that failed normalization",
            context={"dropped": dropped_keys, "kept": len(merged)},
        )

    source = payload.get("source")
    return RhymeDatabase(
        version=detected,
        entries=MappingProxyType({key: tuple(value) for key, value in merged.items()}),
        flags=MappingProxyType(flags),
        rhyme_types=MappingProxyType({key: MappingProxyType(value) for key, value in typed.items()}),
        generated_at=payload.get("generatedAt"),
        source=MappingProxyType(dict(source) if isinstance(source, dict) else {}),
        legacy=legacy,
        flags_available=flags_available,
    )


def fetch_json(url: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> Any:
    """Fetch and decode a JSON document from an HTTP(S) URL, ``file://`` URL or path."""

    parts = urlsplit(url)
    if parts.scheme in {"http", "https"}:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise DictionaryLoadFailure(f"Failed to load rhyme db from {url}: {exc}") from exc
        except ValueError as exc:
            raise DictionaryLoadFailure(f"Rhyme db at {url} is not valid JSON") from exc

    if parts.scheme == "file":
        path = Path(unquote(parts.path))
    elif parts.scheme in {"", None} or len(parts.scheme) == 1:
        # Bare paths, including Windows drive letters, with any ``?v=`` suffix removed.
        path = Path(url.split("?", 1)[0])
    else:
        raise DictionaryLoadFailure(f"Unsupported rhyme db URL scheme: {parts.scheme}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise DictionaryLoadFailure(f"Failed to read rhyme db at {path}: {exc}") from exc
    except ValueError as exc:
        raise DictionaryLoadFailure(f"Rhyme db at {path} is not valid JSON") from exc


def load_rhyme_db(
    base_origin: str,
    *,
    version: int = CURRENT_VERSION,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    fetch: Optional[JsonFetcher] = None,
) -> RhymeDatabase:
    """Fetch, parse and validate the dictionary published under ``base_origin``."""

    url = build_db_url(base_origin, version)
    fetcher = fetch or fetch_json
    try:
        payload = fetcher(url, timeout)
    except DictionaryLoadFailure:
        raise
    except Exception as exc:
        raise DictionaryLoadFailure(f"Failed to load rhyme db from {url}: {exc}") from exc

    database = parse_rhyme_db_payload(payload, expected_version=version)
    _logger.info(
        "Rhyme DB loaded",
        context={
            "url": url,
            "version": database.version,
            "entries": len(database),
            "flags_available": database.flags_available,
        },
    )
    return database


__all__ = [
    "CURRENT_VERSION",
    "DEFAULT_FETCH_TIMEOUT",
    "LEGACY_VERSION",
    "JsonFetcher",
    "RhymeDatabase",
    "build_db_url",
    "fetch_json",
    "load_rhyme_db",
    "parse_rhyme_db_payload",
]
