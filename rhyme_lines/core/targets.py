"""Picking the raw words an editor hands to the engine, plus debounce timing."""

from __future__ import annotations

import re
from typing import Optional

TYPING_DEBOUNCE_MS = 250
CARET_DEBOUNCE_MS = 50

_APOSTROPHE_VARIANTS = re.compile(r"[’‘`´]")
_HYPHEN_VARIANTS = re.compile(r"[‐‑–—]")
_WORD_TAIL = re.compile(r"[^\W\d_][\w'-]*$")
_WORD_HEAD = re.compile(r"^[\w'-]+")
_LAST_WORD = re.compile(r"([^\W\d_][\w'-]*)[^\w]*$")


def _fold(text: str) -> str:
    text = _APOSTROPHE_VARIANTS.sub("'", text)
    return _HYPHEN_VARIANTS.sub("-", text)


def word_at_caret(text: str, caret_index: int) -> Optional[str]:
    """Return the word touching ``caret_index`` in ``text`` or ``None``."""

    if not text or caret_index < 0 or caret_index > len(text):
        return None
    folded = _fold(text)
    before = _WORD_TAIL.search(folded[:caret_index])
    after = _WORD_HEAD.match(folded[caret_index:])
    word = (before.group(0) if before else "") + (after.group(0) if after else "")
    word = word.strip("'-")
    return word or None


def last_word_of_line(line: str) -> Optional[str]:
    """Return the final word of ``line``, ignoring trailing punctuation."""

    if not line:
        return None
    match = _LAST_WORD.search(_fold(line).rstrip())
    if not match:
        return None
    word = match.group(1).strip("'-")
    return word or None


def debounce_delay(kind: str) -> int:
    """Milliseconds an editor should wait before querying for ``kind`` events."""

    return TYPING_DEBOUNCE_MS if kind == "typing" else CARET_DEBOUNCE_MS


__all__ = [
    "CARET_DEBOUNCE_MS",
    "TYPING_DEBOUNCE_MS",
    "debounce_delay",
    "last_word_of_line",
    "word_at_caret",
]
