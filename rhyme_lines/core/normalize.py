"""Text cleaning that turns raw editor tokens into dictionary lookup keys."""

from __future__ import annotations

import re

__all__ = ["ALT_PRONUNCIATION_SUFFIX", "is_lexeme", "normalize_lexeme", "normalize_token"]

# CMU marks alternate pronunciations as ``WORD(1)``, ``WORD(2)``...
ALT_PRONUNCIATION_SUFFIX = re.compile(r"\(\d+\)$")

_EDGE_NON_LEXEME = re.compile(r"^[^a-z']+|[^a-z']+$")
_LEXEME_SHAPE = re.compile(r"^[a-z]+(?:'[a-z]+)*$")
_VOWEL = re.compile(r"[aeiouy]")
_EDGE_PUNCTUATION = re.compile(
    r"^[.,!?;:\"'()\[\]{}<>“”‘’]+"
    r"|[.,!?;:\"'()\[\]{}<>“”‘’]+$"
)


def normalize_lexeme(raw: str) -> str:
    """Return the lookup key for ``raw`` or ``""`` when it is not a usable word.

    A key is lowercase ASCII letter runs joined by single internal
    apostrophes, at least two characters long and containing a vowel letter.

    >>> normalize_lexeme("ROB(1)")
    'rob'
    >>> normalize_lexeme("co-op")
    ''
    """

    if not isinstance(raw, str):
        return ""

    value = raw.strip().lower()
    if not value:
        return ""

    value = ALT_PRONUNCIATION_SUFFIX.sub("", value)
    value = _EDGE_NON_LEXEME.sub("", value)

    if not _LEXEME_SHAPE.match(value):
        return ""
    if len(value) < 2:
        return ""
    if not _VOWEL.search(value):
        return ""
    return value


def normalize_token(raw: str) -> str:
    """Trim, lowercase and strip edge punctuation without rejecting anything."""

    if not isinstance(raw, str):
        return ""
    value = raw.strip().lower()
    if not value:
        return ""
    return _EDGE_PUNCTUATION.sub("", value)


def is_lexeme(value: str) -> bool:
    """Return whether ``value`` is already a normalized lookup key."""

    return bool(value) and normalize_lexeme(value) == value
