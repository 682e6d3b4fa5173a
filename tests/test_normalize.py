import re

import pytest

from rhyme_lines.core.normalize import is_lexeme, normalize_lexeme, normalize_token


LEXEME_PATTERN = re.compile(r"^[a-z]+('[a-z]+)*$")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("ROB(1)", "rob"),
        ("co-op", ""),
        ("don't", "don't"),
        ("b", ""),
        ("brrr", ""),
        ("  Hello!  ", "hello"),
        ("rhythm", "rhythm"),
        ("TIME(12)", "time"),
        ("...fire,", "fire"),
        ("rock'n'roll", "rock'n'roll"),
        ("don''t", ""),
        ("naïve", ""),
        ("", ""),
        ("   ", ""),
        ("42", ""),
    ],
)
def test_normalize_lexeme_edge_cases(raw, expected):
    assert normalize_lexeme(raw) == expected


def test_normalize_lexeme_rejects_non_strings():
    assert normalize_lexeme(None) == ""
    assert normalize_lexeme(12) == ""


@pytest.mark.parametrize(
    "raw",
    ["Ain't", "o'clock", "x", "ya", "'tis", "we're!", "(1)", "A(2)", "Zz", "sky", "hmm", "fly-by"],
)
def test_normalize_lexeme_output_is_empty_or_well_formed(raw):
    value = normalize_lexeme(raw)

    if value:
        assert LEXEME_PATTERN.match(value)
        assert len(value) >= 2
        assert re.search(r"[aeiouy]", value)


def test_normalize_token_only_trims_and_lowercases():
    assert normalize_token("  “Brrr!”  ") == "brrr"
    assert normalize_token("B") == "b"
    assert normalize_token("co-op") == "co-op"
    assert normalize_token(None) == ""


def test_is_lexeme_requires_normalized_form():
    assert is_lexeme("rob")
    assert not is_lexeme("ROB")
    assert not is_lexeme("")
