"""Utilities for working with the CMU pronouncing dictionary."""

from __future__ import annotations

import heapq
import re
from collections import defaultdict
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

import pronouncing

from .normalize import ALT_PRONUNCIATION_SUFFIX, normalize_lexeme

VOWEL_PHONEMES: FrozenSet[str] = frozenset(
    "AA AE AH AO AW AY EH ER EY IH IY OW OY UH UW".split()
)

_DIGIT_PATTERN = re.compile(r"\d")
_STRESS_PATTERN = re.compile(r"[12]")

SUFFIX_LENGTH = 3


def strip_stress(phone: str) -> str:
    return _DIGIT_PATTERN.sub("", phone)


def is_vowel(phone: str) -> bool:
    return strip_stress(phone) in VOWEL_PHONEMES


def last_stressed_vowel_index(phones: List[str]) -> Optional[int]:
    """Index of the last primary/secondary stressed vowel, else the last vowel."""

    for index in range(len(phones) - 1, -1, -1):
        if is_vowel(phones[index]) and _STRESS_PATTERN.search(phones[index]):
            return index
    for index in range(len(phones) - 1, -1, -1):
        if is_vowel(phones[index]):
            return index
    return None


class CMUDictLoader:
    """Lazy loader for the CMU pronouncing dictionary.

    Reads ``dict_path`` when given (``cmudict.7b`` format), otherwise the copy
    bundled with :mod:`pronouncing`. Headwords go through
    :func:`normalize_lexeme`, so entries such as ``ROB(1)`` fold into ``rob``
    and entries that are not usable lookup keys are skipped.
    """

    def __init__(self, dict_path: Optional[Path | str] = None) -> None:
        self.dict_path: Optional[Path] = Path(dict_path) if dict_path is not None else None
        self._pronunciations: Dict[str, Tuple[Tuple[str, ...], ...]] = {}
        self._rhyme_parts: Dict[str, frozenset[str]] = {}
        self._rhyme_index: Dict[str, frozenset[str]] = {}
        self._vowel_coda_index: Dict[Tuple[str, str], frozenset[str]] = {}
        self._vowel_index: Dict[str, frozenset[str]] = {}
        self._coda_index: Dict[str, frozenset[str]] = {}
        self._suffix_index: Dict[str, frozenset[str]] = {}
        self._raw_forms: Dict[str, frozenset[str]] = {}
        self._loaded: bool = False

    @property
    def source_path(self) -> str:
        if self.dict_path is not None:
            return str(self.dict_path)
        return "pronouncing:cmudict"

    def _iter_entries(self) -> Iterator[Tuple[str, List[str]]]:
        if self.dict_path is None:
            pronouncing.init_cmu()
            for word, phones in pronouncing.pronunciations:
                yield word, phones.split()
            return

        with self.dict_path.open("r", encoding="latin-1") as handle:
            for line in handle:
                entry = line.strip()
                if not entry or entry.startswith(";;;"):
                    continue
                parts = entry.split()
                if len(parts) < 2:
                    continue
                raw_word, *phones = parts
                yield raw_word, phones

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self.dict_path is not None and not self.dict_path.exists():
            return

        pronunciations: Dict[str, List[Tuple[str, ...]]] = {}
        rhyme_parts: Dict[str, Set[str]] = {}
        rhyme_index: Dict[str, Set[str]] = defaultdict(set)
        vowel_coda_index: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        vowel_index: Dict[str, Set[str]] = defaultdict(set)
        coda_index: Dict[str, Set[str]] = defaultdict(set)
        suffix_index: Dict[str, Set[str]] = defaultdict(set)
        raw_forms: Dict[str, Set[str]] = defaultdict(set)

        for raw_word, phones in self._iter_entries():
            word = normalize_lexeme(raw_word)
            if not word or not phones:
                continue

            raw_forms[word].add(ALT_PRONUNCIATION_SUFFIX.sub("", raw_word.strip()))
            if len(word) >= SUFFIX_LENGTH:
                suffix_index[word[-SUFFIX_LENGTH:]].add(word)

            phone_tuple = tuple(phones)
            entries = pronunciations.setdefault(word, [])
            if phone_tuple not in entries:
                entries.append(phone_tuple)

            rhyme_part = self.extract_rhyme_part(phones)
            if not rhyme_part:
                continue
            rhyme_parts.setdefault(word, set()).add(rhyme_part)
            rhyme_index[rhyme_part].add(word)

            vowel_coda = self.extract_vowel_coda(phones)
            if vowel_coda is not None:
                vowel_coda_index[vowel_coda].add(word)
                vowel, coda = vowel_coda
                vowel_index[vowel].add(word)
                if coda:
                    coda_index[coda].add(word)

        self._pronunciations = {word: tuple(entries) for word, entries in pronunciations.items()}
        self._rhyme_parts = {word: frozenset(parts) for word, parts in rhyme_parts.items()}
        self._rhyme_index = {part: frozenset(words) for part, words in rhyme_index.items()}
        self._vowel_coda_index = {key: frozenset(words) for key, words in vowel_coda_index.items()}
        self._vowel_index = {key: frozenset(words) for key, words in vowel_index.items()}
        self._coda_index = {key: frozenset(words) for key, words in coda_index.items()}
        self._suffix_index = {key: frozenset(words) for key, words in suffix_index.items()}
        self._raw_forms = {word: frozenset(forms) for word, forms in raw_forms.items()}
        self._loaded = True

    @staticmethod
    def extract_rhyme_part(phones: Iterable[str]) -> Optional[str]:
        """Return the final stressed vowel plus trailing phonemes, stress stripped."""

        phone_list = list(phones)
        index = last_stressed_vowel_index(phone_list)
        if index is None:
            return None
        return " ".join(strip_stress(phone) for phone in phone_list[index:])

    @staticmethod
    def extract_vowel_coda(phones: Iterable[str]) -> Optional[Tuple[str, str]]:
        """Return ``(stressed vowel, final phone)`` used to group near rhymes."""

        phone_list = list(phones)
        index = last_stressed_vowel_index(phone_list)
        if index is None:
            return None
        tail = [strip_stress(phone) for phone in phone_list[index + 1 :] if not is_vowel(phone)]
        return strip_stress(phone_list[index]), tail[-1] if tail else ""

    def words(self) -> List[str]:
        self._ensure_loaded()
        return sorted(self._pronunciations)

    def get_pronunciations(self, word: str) -> List[List[str]]:
        self._ensure_loaded()
        stored = self._pronunciations.get(normalize_lexeme(word), ())
        return [list(entry) for entry in stored]

    def raw_forms(self, word: str) -> Set[str]:
        """Headword spellings that normalized to ``word``, alternate markers removed."""

        self._ensure_loaded()
        return set(self._raw_forms.get(normalize_lexeme(word), ()))

    def get_rhyme_parts(self, word: str) -> Set[str]:
        self._ensure_loaded()
        stored = self._rhyme_parts.get(normalize_lexeme(word))
        return set(stored) if stored is not None else set()

    def syllable_count(self, word: str) -> int:
        pronunciations = self.get_pronunciations(word)
        if not pronunciations:
            return 0
        return min(sum(1 for phone in entry if is_vowel(phone)) for entry in pronunciations)

    def get_rhyming_words(self, word: str) -> List[str]:
        """Perfect rhymes: words sharing any rhyme part with ``word``."""

        self._ensure_loaded()
        normalized = normalize_lexeme(word)
        parts = self._rhyme_parts.get(normalized)
        if not parts:
            return []

        candidates: Set[str] = set()
        for part in parts:
            candidates.update(self._rhyme_index.get(part, frozenset()))
        candidates.discard(normalized)
        return sorted(candidates)

    def get_near_rhyming_words(self, word: str) -> List[str]:
        """Words sharing the stressed vowel and final consonant but not a rhyme part."""

        self._ensure_loaded()
        normalized = normalize_lexeme(word)
        keys = {
            self.extract_vowel_coda(list(entry))
            for entry in self._pronunciations.get(normalized, ())
        }
        keys.discard(None)
        if not keys:
            return []

        perfect = set(self.get_rhyming_words(normalized))
        candidates: Set[str] = set()
        for key in keys:
            candidates.update(self._vowel_coda_index.get(key, frozenset()))
        candidates.discard(normalized)
        return sorted(candidates - perfect)

    def get_slant_rhyming_words(self, word: str, limit: Optional[int] = None) -> List[str]:
        """Loose rhymes that are neither perfect nor near.

        A candidate shares the stressed vowel, the final consonant or the last
        three letters with ``word``. Sharing a sound scores 1 and sharing the
        spelling adds 0.5; higher scores come first, ties alphabetically.
        """

        self._ensure_loaded()
        normalized = normalize_lexeme(word)
        if not normalized:
            return []

        scores: Dict[str, float] = defaultdict(float)
        for entry in self._pronunciations.get(normalized, ()):
            vowel_coda = self.extract_vowel_coda(list(entry))
            if vowel_coda is None:
                continue
            vowel, coda = vowel_coda
            for candidate in self._vowel_index.get(vowel, frozenset()):
                scores[candidate] = max(scores[candidate], 1.0)
            if coda:
                for candidate in self._coda_index.get(coda, frozenset()):
                    scores[candidate] = max(scores[candidate], 1.0)
        if len(normalized) >= SUFFIX_LENGTH:
            for candidate in self._suffix_index.get(normalized[-SUFFIX_LENGTH:], frozenset()):
                scores[candidate] += 0.5

        excluded = {normalized}
        excluded.update(self.get_rhyming_words(normalized))
        excluded.update(self.get_near_rhyming_words(normalized))
        ranked = ((-score, candidate) for candidate, score in scores.items() if candidate not in excluded)
        if limit is None:
            ordered = sorted(ranked)
        else:
            ordered = heapq.nsmallest(max(0, limit), ranked)
        return [candidate for _, candidate in ordered]


__all__ = [
    "CMUDictLoader",
    "SUFFIX_LENGTH",
    "VOWEL_PHONEMES",
    "is_vowel",
    "last_stressed_vowel_index",
    "strip_stress",
]
