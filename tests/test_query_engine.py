import pytest

from rhyme_lines.core.database import parse_rhyme_db_payload
from rhyme_lines.core.errors import MalformedResponse
from rhyme_lines.core.models import ALL_MODES, ALL_RHYME_TYPES, Mode, QueryRequest, QueryResult, RhymeType
from rhyme_lines.core.query import (
    DUPLICATE,
    ENGINE_ERROR,
    INVALID_CANDIDATE,
    INVALID_INPUT,
    NOT_FOUND,
    RHYME_TYPE,
    SELF_MATCH,
    query_rhymes,
)


def _assert_counts_consistent(debug):
    assert debug.rendered_count <= debug.filtered_count <= debug.pool_count


def test_dictionary_lookup_filters_pool(sample_db):
    result = query_rhymes(sample_db, QueryRequest.for_target("Time"), clock=lambda: 1700000000.0)

    debug = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == ["rhyme", "climb", "prime", "dime", "lime"]
    assert debug.raw_target == "Time"
    assert debug.normalized_target == "time"
    assert debug.pool_count == 8
    assert debug.filtered_count == 5
    assert debug.rendered_count == 5
    assert debug.stage_counts == {
        "pool": 8,
        "normalized": 8,
        "deduped": 7,
        "self": 6,
        "type": 6,
        "quality": 5,
        "render": 5,
    }
    assert debug.rejections == {DUPLICATE: 1, SELF_MATCH: 1, "proper": 1}
    assert debug.cap.applied is False
    assert debug.cap.limit == 500
    assert debug.cap.stage == "render"
    assert debug.meta.updated_at == 1700000000.0


def test_modes_are_independent(sample_db):
    request = QueryRequest.for_targets(caret="b", line_last="night!", debounce_ms=50)

    result = query_rhymes(sample_db, request)

    caret = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == []
    assert caret.rejections == {INVALID_INPUT: 1}
    assert caret.filtered_count == 0
    assert caret.normalized_target == ""

    line = result.debug[Mode.LINE_LAST]
    assert result.words(Mode.LINE_LAST) == ["light", "fight", "right", "sight", "bright", "flight"]
    assert line.rejections == {}
    assert line.meta.debounce_ms == 50
    assert line.active_modes == [Mode.CARET, Mode.LINE_LAST]


def test_only_active_modes_are_queried(sample_db):
    request = QueryRequest(
        targets={Mode.CARET: "time", Mode.LINE_LAST: "night"},
        active_modes={Mode.LINE_LAST},
    )

    result = query_rhymes(sample_db, request)

    assert list(result.results) == [Mode.LINE_LAST]
    assert Mode.CARET not in result.debug


def test_cap_truncates_and_reports(sample_db):
    result = query_rhymes(sample_db, QueryRequest.for_target("night", cap=2))

    debug = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == ["light", "fight"]
    assert debug.filtered_count == 6
    assert debug.rendered_count == 2
    assert debug.cap.applied is True
    assert debug.cap.limit == 2
    _assert_counts_consistent(debug)


def test_default_cap_comes_from_caller(sample_db):
    result = query_rhymes(sample_db, QueryRequest.for_target("night"), default_cap=3)

    assert len(result.words(Mode.CARET)) == 3


def test_unknown_word_records_not_found(sample_db):
    result = query_rhymes(sample_db, QueryRequest.for_target("zebra"))

    debug = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == []
    assert debug.rejections == {NOT_FOUND: 1}
    assert debug.pool_count == 0
    assert debug.stage_counts["render"] == 0


def test_invalid_candidates_are_rejected():
    database = parse_rhyme_db_payload(
        {"version": 2, "rhymes": {"love": ["above", "co-op", "b", "Dove", "dove"]}}
    )

    result = query_rhymes(database, QueryRequest.for_target("love"))

    debug = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == ["above", "dove"]
    assert debug.rejections == {INVALID_CANDIDATE: 2, DUPLICATE: 1}
    _assert_counts_consistent(debug)


def test_both_modes_share_target_with_for_target(sample_db):
    result = query_rhymes(sample_db, QueryRequest.for_target("fire", ALL_MODES))

    assert result.words(Mode.CARET) == result.words(Mode.LINE_LAST) == ["desire", "higher", "wire"]


def test_fallback_generator_without_database():
    result = query_rhymes(None, QueryRequest.for_target("time"))

    words = result.words(Mode.CARET)
    assert "rhyme" in words
    assert "time" not in words
    assert len(words) == len(set(words))
    _assert_counts_consistent(result.debug[Mode.CARET])


class _ExplodingDatabase:
    def lookup(self, key):
        raise RuntimeError("index corrupted")

    def flag_for(self, word):
        return None


def test_engine_errors_degrade_to_empty_results():
    result = query_rhymes(_ExplodingDatabase(), QueryRequest.for_targets(caret="time", line_last="night"))

    for mode in ALL_MODES:
        debug = result.debug[mode]
        assert result.words(mode) == []
        assert debug.rejections == {ENGINE_ERROR: 1}
        assert debug.pool_count == debug.filtered_count == debug.rendered_count == 0


@pytest.mark.parametrize("target", ["time", "night", "love", "zebra", "", "b", "fire"])
def test_count_invariant_holds(sample_db, target):
    for cap in (None, 0, 1, 3):
        result = query_rhymes(sample_db, QueryRequest.for_target(target, ALL_MODES, cap=cap))
        for debug in result.debug.values():
            _assert_counts_consistent(debug)


def test_request_and_result_survive_wire_encoding(sample_db):
    request = QueryRequest.for_targets(caret="time", line_last="night", cap=4, debounce_ms=250)

    decoded_request = QueryRequest.from_dict(request.as_dict())
    assert decoded_request.target_for(Mode.CARET) == "time"
    assert decoded_request.active_modes == ALL_MODES
    assert decoded_request.cap == 4
    assert decoded_request.debounce_ms == 250

    result = query_rhymes(sample_db, request)
    decoded = QueryResult.from_dict(result.as_dict())
    assert decoded.results == result.results
    assert decoded.debug[Mode.LINE_LAST].as_dict() == result.debug[Mode.LINE_LAST].as_dict()


def test_query_result_rejects_malformed_payloads():
    with pytest.raises(MalformedResponse):
        QueryResult.from_dict("nope")
    with pytest.raises(MalformedResponse):
        QueryResult.from_dict({"results": {"sideways": ["x"]}})
    with pytest.raises(MalformedResponse):
        QueryResult.from_dict({"debug": {"caret": {"poolCount": 1}}})


def test_raw_target_uses_first_active_mode():
    request = QueryRequest.for_targets(caret="Time", line_last="night")

    assert request.raw_target == "Time"
    assert QueryRequest.for_targets().raw_target == ""


TYPED_DB = {
    "version": 2,
    "rhymes": {
        "time": {
            "perfect": ["rhyme", "climb", "haim"],
            "near": ["mind", "chimed"],
            "slant": ["tide", "night"],
        },
        "night": ["light", "fight"],
    },
    "flags": {"haim": "proper"},
}


def test_perfect_only_request_drops_near_and_slant():
    database = parse_rhyme_db_payload(TYPED_DB)

    result = query_rhymes(database, QueryRequest.for_target("time", rhyme_types=[RhymeType.PERFECT]))

    debug = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == ["rhyme", "climb"]
    assert debug.stage_counts["self"] == 7
    assert debug.stage_counts["type"] == 3
    assert debug.rejections == {RHYME_TYPE: 4, "proper": 1}
    _assert_counts_consistent(debug)


def test_near_only_request_keeps_near_rhymes():
    database = parse_rhyme_db_payload(TYPED_DB)

    result = query_rhymes(database, QueryRequest.for_target("time", rhyme_types=["near"]))

    debug = result.debug[Mode.CARET]
    assert result.words(Mode.CARET) == ["mind", "chimed"]
    assert debug.stage_counts["type"] == 2
    assert debug.rejections == {RHYME_TYPE: 5}


def test_all_rhyme_types_keep_document_order():
    database = parse_rhyme_db_payload(TYPED_DB)

    result = query_rhymes(database, QueryRequest.for_target("time"))

    assert result.words(Mode.CARET) == ["rhyme", "climb", "mind", "chimed", "tide", "night"]
    assert RHYME_TYPE not in result.debug[Mode.CARET].rejections


def test_untyped_entries_ignore_rhyme_type_selection():
    database = parse_rhyme_db_payload(TYPED_DB)

    result = query_rhymes(database, QueryRequest.for_target("night", rhyme_types=["slant"]))

    assert result.words(Mode.CARET) == ["light", "fight"]
    assert result.debug[Mode.CARET].rejections == {}


def test_fallback_generator_honours_rhyme_types():
    perfect = query_rhymes(None, QueryRequest.for_target("time", rhyme_types=["perfect"]))
    slant = query_rhymes(None, QueryRequest.for_target("time", rhyme_types=["slant"]))

    assert "prime" in perfect.words(Mode.CARET)
    assert "prime" not in slant.words(Mode.CARET)
    assert not set(perfect.words(Mode.CARET)) & set(slant.words(Mode.CARET))
    assert slant.debug[Mode.CARET].rejections[RHYME_TYPE] > 0


def test_rhyme_types_survive_wire_encoding():
    request = QueryRequest.for_target("time", rhyme_types=["slant", "perfect"])

    payload = request.as_dict()
    assert payload["rhymeTypes"] == ["perfect", "slant"]
    assert QueryRequest.from_dict(payload).rhyme_types == {RhymeType.PERFECT, RhymeType.SLANT}
    legacy = QueryRequest.from_dict({"targets": {"caret": "time"}, "activeModes": ["caret"]})
    assert legacy.rhyme_types == ALL_RHYME_TYPES


def test_missing_target_is_invalid_input(sample_db):
    request = QueryRequest(targets={Mode.CARET: None}, active_modes={Mode.CARET})

    result = query_rhymes(sample_db, request)

    debug = result.debug[Mode.CARET]
    assert request.target_for(Mode.CARET) == ""
    assert result.words(Mode.CARET) == []
    assert debug.normalized_target == ""
    assert debug.rejections == {INVALID_INPUT: 1}
    assert QueryRequest.for_target(None).target_for(Mode.CARET) == ""
