"""Dictionary-free rhyme candidates used while the phonetic dictionary is unavailable.

Matching is purely orthographic: shared word endings stand in for perfect
rhymes and equal vowel-group counts stand in for slant rhymes. Everything is
in memory, so generation never blocks and never raises.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .models import RhymeType
from .normalize import normalize_token

__all__ = [
    "COMMON_WORDS",
    "MAX_FALLBACK_RESULTS",
    "generate_candidates",
    "generate_typed_candidates",
    "is_valid_word",
]

MAX_FALLBACK_RESULTS = 20

_LETTERS_ONLY = re.compile(r"^[a-z]+$", re.IGNORECASE)
_VOWEL = re.compile(r"[aeiouy]", re.IGNORECASE)
_VOWEL_GROUP = re.compile(r"[aeiouy]+", re.IGNORECASE)

COMMON_WORDS: Tuple[str, ...] = (
    "the", "be", "to", "of", "and", "in", "that", "have", "it", "for",
    "not", "on", "with", "he", "as", "you", "do", "at", "this", "but",
    "his", "by", "from", "they", "we", "say", "her", "she", "or", "an",
    "will", "my", "one", "all", "would", "there", "their", "what", "so",
    "up", "out", "if", "about", "who", "get", "which", "go", "me", "when",
    "make", "can", "like", "time", "no", "just", "him", "know", "take",
    "people", "into", "year", "your", "good", "some", "could", "them",
    "see", "other", "than", "then", "now", "look", "only", "come", "its",
    "over", "think", "also", "back", "after", "use", "two", "how", "our",
    "work", "first", "well", "way", "even", "new", "want", "because",
    "any", "these", "give", "day", "most", "us", "is", "was", "are",
    "been", "has", "had", "were", "said", "each", "many", "more", "water",
    "call", "oil", "find", "long", "down", "did", "made", "may", "part",
    "night", "light", "fight", "right", "sight", "bright", "flight",
    "rhyme", "climb", "prime", "dime", "line", "mine", "fine", "shine",
    "heart", "start", "art", "apart", "love", "above", "dove", "glove",
    "fire", "desire", "higher", "wire", "rain", "pain", "again", "chain",
    "mate", "fate", "late", "gate", "date", "state", "great", "wait",
    "sky", "high", "fly", "cry", "why", "try", "free", "tree", "sea",
    "soul", "whole", "goal", "roll", "dream", "stream", "seem", "team",
)


def is_valid_word(candidate: str) -> bool:
    """Cheap shape check: non-empty, letters only, at least one vowel letter."""

    if not isinstance(candidate, str) or not candidate:
        return False
    if not _LETTERS_ONLY.match(candidate):
        return False
    return bool(_VOWEL.search(candidate))


def _count_common_letters(first: str, second: str) -> int:
    return len(set(first) & set(second))


def _score(original: str, candidate: str, kind: str) -> int:
    base = 100 if kind == "perfect" else 50
    length_bonus = max(0, 20 - abs(len(original) - len(candidate)))
    letter_bonus = _count_common_letters(original, candidate) * 5
    return min(100, base + length_bonus + letter_bonus)


def _perfect_like(word: str) -> List[Tuple[str, int]]:
    ending2 = word[-2:]
    ending3 = word[-3:]
    matches: List[Tuple[str, int]] = []
    for candidate in COMMON_WORDS:
        if candidate == word:
            continue
        if candidate.endswith(ending2) or candidate.endswith(ending3):
            matches.append((candidate, _score(word, candidate, "perfect")))
    return matches


def _slant_like(word: str) -> List[Tuple[str, int]]:
    groups = _VOWEL_GROUP.findall(word)
    if not groups:
        return []
    matches: List[Tuple[str, int]] = []
    for candidate in COMMON_WORDS:
        if candidate == word:
            continue
        if len(_VOWEL_GROUP.findall(candidate)) == len(groups):
            matches.append((candidate, _score(word, candidate, "slant")))
    return matches


_TIERS = (RhymeType.PERFECT, RhymeType.SLANT)


def generate_typed_candidates(
    target: str, *, limit: int = MAX_FALLBACK_RESULTS
) -> List[Tuple[str, RhymeType]]:
    """Return up to ``limit`` ``(candidate, rhyme type)`` pairs for ``target``.

    Perfect-like matches are listed before slant-like ones; within each group
    higher scores come first, ties broken alphabetically.
    """

    word = normalize_token(target)
    if not word or limit <= 0:
        return []

    best: Dict[str, Tuple[int, int]] = {}
    for tier, group in enumerate((_perfect_like(word), _slant_like(word))):
        for candidate, score in group:
            if not is_valid_word(candidate) or candidate in best:
                continue
            best[candidate] = (tier, score)

    ordered = sorted(best.items(), key=lambda item: (item[1][0], -item[1][1], item[0]))
    return [(candidate, _TIERS[tier]) for candidate, (tier, _) in ordered[:limit]]


def generate_candidates(target: str, *, limit: int = MAX_FALLBACK_RESULTS) -> List[str]:
    """Return up to ``limit`` plausible rhyme candidates for ``target``."""

    return [candidate for candidate, _ in generate_typed_candidates(target, limit=limit)]
