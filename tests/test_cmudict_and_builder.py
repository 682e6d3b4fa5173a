import json
import sys
from pathlib import Path

import pytest

from rhyme_lines.core.cmudict_loader import CMUDictLoader, last_stressed_vowel_index
from rhyme_lines.core.database import load_rhyme_db, parse_rhyme_db_payload
from rhyme_lines.core.db_builder import (
    build_quality_flags,
    build_rhyme_db,
    is_weird,
    rank_candidates,
    rank_typed_candidates,
    write_rhyme_db,
)
from rhyme_lines.core.models import Mode, QueryRequest
from rhyme_lines.core.query import RHYME_TYPE, query_rhymes

CMUDICT_SAMPLE = """\
;;; tiny sample of the CMU pronouncing dictionary
TIME  T AY1 M
TIME(1)  T AY1 M
RHYME  R AY1 M
CLIMB  K L AY1 M
DIME  D AY1 M
HAIM  HH AY1 M
SUBLIME  S AH0 B L AY1 M
TIDE  T AY1 D
CHIMED  CH AY1 M D
MIND  M AY1 N D
NIGHT  N AY1 T
LIGHT  L AY1 T
CO-OP  K OW1 AA2 P
"""


@pytest.fixture
def loader(tmp_path):
    dict_path = tmp_path / "cmudict.7b"
    dict_path.write_text(CMUDICT_SAMPLE, encoding="latin-1")
    return CMUDictLoader(dict_path=dict_path)


def test_loader_retries_after_file_creation(tmp_path):
    dict_path = tmp_path / "cmudict.7b"
    loader = CMUDictLoader(dict_path=dict_path)

    assert loader.get_pronunciations("test") == []
    assert loader._loaded is False

    dict_path.write_text("TEST  T EH1 S T\n", encoding="latin-1")

    assert loader.get_pronunciations("test") == [["T", "EH1", "S", "T"]]
    assert loader.get_rhyme_parts("test") == {"EH S T"}


def test_loader_normalizes_headwords(loader):
    words = loader.words()

    assert "time" in words
    assert "co-op" not in words
    assert loader.get_pronunciations("TIME") == [["T", "AY1", "M"]]
    assert loader.source_path.endswith("cmudict.7b")


def test_perfect_and_near_rhymes(loader):
    assert loader.get_rhyming_words("time") == ["climb", "dime", "haim", "rhyme", "sublime"]
    assert loader.get_rhyming_words("zebra") == []
    assert loader.get_near_rhyming_words("tide") == ["chimed", "mind"]
    assert loader.syllable_count("sublime") == 2


def test_last_stressed_vowel_index_prefers_stress():
    assert last_stressed_vowel_index(["S", "AH0", "B", "L", "AY1", "M"]) == 4
    assert last_stressed_vowel_index(["AH0", "B"]) == 0
    assert last_stressed_vowel_index(["S", "T"]) is None


def test_slant_rhymes_exclude_perfect_and_near(loader):
    assert loader.get_slant_rhyming_words("time") == ["chimed", "light", "mind", "night", "tide"]
    assert loader.get_slant_rhyming_words("time", limit=2) == ["chimed", "light"]
    assert "mind" not in loader.get_slant_rhyming_words("tide")


def test_slant_rhymes_favour_shared_spelling(tmp_path):
    dict_path = tmp_path / "cmudict.7b"
    dict_path.write_text(
        "TIME  T AY1 M\nLIGHT  L AY1 T\nFIRE  F AY1 ER0\nREGIME  R IH0 ZH IY1 M\nANIME  AE1 N AH0 M EY2\n",
        encoding="latin-1",
    )
    loader = CMUDictLoader(dict_path=dict_path)

    assert loader.get_slant_rhyming_words("time") == ["regime", "fire", "light", "anime"]
    assert loader.get_slant_rhyming_words("slime") == ["anime", "regime", "time"]


def test_rank_candidates_orders_by_syllable_distance(loader):
    assert rank_candidates(loader, "time") == [
        "climb", "dime", "haim", "rhyme", "sublime",
        "chimed", "light", "mind", "night", "tide",
    ]
    assert rank_candidates(loader, "time", max_candidates=2) == ["climb", "dime"]
    assert rank_candidates(loader, "tide")[:2] == ["chimed", "mind"]


def test_rank_typed_candidates_groups_by_rhyme_type(loader):
    groups = rank_typed_candidates(loader, "time", max_candidates=7)

    assert groups == {
        "perfect": ["climb", "dime", "haim", "rhyme", "sublime"],
        "slant": ["chimed", "light"],
    }
    assert rank_typed_candidates(loader, "tide", max_candidates=2) == {"near": ["chimed", "mind"]}
    assert rank_typed_candidates(loader, "time", max_candidates=0) == {}


def test_quality_flags():
    assert build_quality_flags(["haim", "beim", "time"]) == {"haim": "proper", "beim": "foreign"}


def test_oddly_spelled_headwords_are_flagged_weird(tmp_path):
    dict_path = tmp_path / "cmudict.7b"
    dict_path.write_text(
        "ZOOM!  Z UW1 M\nBLOOM  B L UW1 M\nDOOM  D UW1 M\nDOOM!  D UW1 M\nO'ER  AO1 R\n",
        encoding="latin-1",
    )
    loader = CMUDictLoader(dict_path=dict_path)

    assert loader.raw_forms("doom") == {"DOOM", "DOOM!"}
    assert is_weird(loader.raw_forms("zoom"))
    assert not is_weird(loader.raw_forms("doom"))
    assert not is_weird(loader.raw_forms("o'er"))
    assert not is_weird([])

    payload = build_rhyme_db(loader, version=2)
    assert payload["flags"] == {"zoom": "weird"}

    database = parse_rhyme_db_payload(payload)
    result = query_rhymes(database, QueryRequest.for_target("bloom"))
    assert result.words(Mode.CARET) == ["doom"]
    assert result.debug[Mode.CARET].rejections == {"weird": 1}


def test_built_asset_round_trips_through_loader(loader, tmp_path):
    payload = build_rhyme_db(loader, version=2)
    target = write_rhyme_db(payload, tmp_path / "public")

    assert target == tmp_path / "public" / "rhyme-db" / "rhyme-db.v2.json"
    stored = json.loads(target.read_text(encoding="utf-8"))
    assert stored["version"] == 2
    assert stored["source"]["name"] == "cmudict"
    assert stored["flags"] == {"haim": "proper"}
    assert "co-op" not in stored["rhymes"]
    assert stored["rhymes"]["time"]["perfect"] == ["climb", "dime", "haim", "rhyme", "sublime"]
    assert stored["rhymes"]["tide"]["near"] == ["chimed", "mind"]
    assert "near" not in stored["rhymes"]["time"]

    database = load_rhyme_db(str(tmp_path / "public"), version=2)
    perfect = query_rhymes(database, QueryRequest.for_target("time", rhyme_types=["perfect"]))
    everything = query_rhymes(database, QueryRequest.for_target("time"))

    assert perfect.words(Mode.CARET) == ["climb", "dime", "rhyme", "sublime"]
    assert perfect.debug[Mode.CARET].rejections == {"proper": 1, RHYME_TYPE: 5}
    assert everything.words(Mode.CARET) == [
        "climb", "dime", "rhyme", "sublime", "chimed", "light", "mind", "night", "tide",
    ]
    assert everything.debug[Mode.CARET].rejections == {"proper": 1}


def test_build_script_writes_asset(loader, tmp_path, capsys):
    scripts_dir = Path(__file__).resolve().parent.parent / "scripts"
    sys.path.insert(0, str(scripts_dir))
    try:
        import build_rhyme_db as script
    finally:
        sys.path.remove(str(scripts_dir))

    exit_code = script.main(
        ["--cmudict", str(loader.dict_path), "--output-dir", str(tmp_path), "--version", "3"]
    )

    assert exit_code == 0
    assert (tmp_path / "rhyme-db" / "rhyme-db.v3.json").exists()
    assert "rhyme-db.v3.json" in capsys.readouterr().out
