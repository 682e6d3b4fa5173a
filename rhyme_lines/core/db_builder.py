"""Build the versioned rhyme dictionary asset from CMU pronunciations."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .cmudict_loader import CMUDictLoader
from .database import CURRENT_VERSION
from .models import RhymeType
from ..utils.observability import get_logger

DEFAULT_MAX_CANDIDATES = 200

KNOWN_NAMES = frozenset({"haim", "heim", "seim", "syme", "braim", "chaym", "schrime"})
FOREIGN_TOKENS = frozenset({"beim", "sein", "mein", "kein", "zum", "zur", "nicht", "auch"})

# Headwords spelled with anything beyond letters, apostrophes and hyphens.
_CLEAN_HEADWORD = re.compile(r"^[a-zA-Z'-]+$")

_logger = get_logger(__name__).bind(component="rhyme_db_builder")


def _rank(loader: CMUDictLoader, word: str, candidates: Iterable[str]) -> List[str]:
    target_syllables = loader.syllable_count(word)
    return sorted(
        candidates,
        key=lambda candidate: (abs(loader.syllable_count(candidate) - target_syllables), candidate),
    )


def rank_typed_candidates(
    loader: CMUDictLoader,
    word: str,
    *,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> Dict[str, List[str]]:
    """Return stored rhymes for ``word`` grouped by rhyme type.

    Perfect and near groups are ordered by syllable-count distance to
    ``word`` and then alphabetically; slant rhymes keep the loader's score
    order. ``max_candidates`` bounds the groups together, filled in
    perfect, near, slant order. Empty groups are left out.
    """

    groups: Dict[str, List[str]] = {}
    remaining = max_candidates
    for kind in RhymeType:
        if remaining <= 0:
            break
        if kind is RhymeType.PERFECT:
            ranked = _rank(loader, word, loader.get_rhyming_words(word))
        elif kind is RhymeType.NEAR:
            ranked = _rank(loader, word, loader.get_near_rhyming_words(word))
        else:
            ranked = loader.get_slant_rhyming_words(word, limit=remaining)
        ranked = ranked[:remaining]
        if ranked:
            groups[kind.value] = ranked
            remaining -= len(ranked)
    return groups


def rank_candidates(
    loader: CMUDictLoader,
    word: str,
    *,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> List[str]:
    """Flattened :func:`rank_typed_candidates`: perfect, then near, then slant."""

    groups = rank_typed_candidates(loader, word, max_candidates=max_candidates)
    return [candidate for kind in RhymeType for candidate in groups.get(kind.value, ())]


def is_weird(raw_forms: Iterable[str]) -> bool:
    """True when no spelling of a word is plain letters, apostrophes and hyphens."""

    forms = list(raw_forms)
    return bool(forms) and not any(_CLEAN_HEADWORD.match(form) for form in forms)


def build_quality_flags(
    words: Iterable[str],
    raw_forms: Optional[Mapping[str, Iterable[str]]] = None,
) -> Dict[str, str]:
    """Flag foreign tokens, known names and words only spelled oddly in the source."""

    raw_forms = raw_forms or {}
    flags: Dict[str, str] = {}
    for word in words:
        if word in FOREIGN_TOKENS:
            flags[word] = "foreign"
        elif word in KNOWN_NAMES:
            flags[word] = "proper"
        elif is_weird(raw_forms.get(word, ())):
            flags[word] = "weird"
    return flags


def build_rhyme_db(
    loader: Optional[CMUDictLoader] = None,
    *,
    version: int = CURRENT_VERSION,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    words: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Return the JSON-ready dictionary document for ``version``."""

    loader = loader or CMUDictLoader()
    vocabulary = sorted(set(words)) if words is not None else loader.words()

    rhymes: Dict[str, Dict[str, List[str]]] = {}
    for word in vocabulary:
        groups = rank_typed_candidates(loader, word, max_candidates=max_candidates)
        if groups:
            rhymes[word] = groups

    known_words = loader.words()
    flags = build_quality_flags(known_words, {word: loader.raw_forms(word) for word in known_words})

    _logger.info(
        "Rhyme DB built",
        context={
            "version": version,
            "words": len(vocabulary),
            "entries": len(rhymes),
            "flags": len(flags),
        },
    )
    return {
        "version": int(version),
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "source": {"name": "cmudict", "path": loader.source_path},
        "rhymes": rhymes,
        "flags": flags,
    }


def write_rhyme_db(payload: Dict[str, Any], output_dir: Path | str) -> Path:
    """Write ``payload`` to ``<output_dir>/rhyme-db/rhyme-db.v<version>.json``."""

    target = Path(output_dir) / "rhyme-db" / f"rhyme-db.v{int(payload['version'])}.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, separators=(",", ":"))
    return target


__all__ = [
    "DEFAULT_MAX_CANDIDATES",
    "FOREIGN_TOKENS",
    "KNOWN_NAMES",
    "build_quality_flags",
    "build_rhyme_db",
    "is_weird",
    "rank_candidates",
    "rank_typed_candidates",
    "write_rhyme_db",
]
