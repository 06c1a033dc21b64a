import pytest

from jfk_ocr.annotations import merge_annotations
from jfk_ocr.schema import WordAnnotation
from jfk_store.errors import InvalidInput


def test_first_occurrence_wins():
    merged = merge_annotations([("OSWALD", "d1"), ("OSWALD", "d2"), ("RUBY", "d3")])
    assert merged == {"OSWALD": "d1", "RUBY": "d3"}


def test_conflicting_descriptions_are_a_policy_not_an_error():
    # 같은 token, 다른 설명 → 첫 번째가 이김
    merged = merge_annotations([("AMLASH", "Rolando Cubela"), ("AMLASH", "something else")])
    assert merged["AMLASH"] == "Rolando Cubela"


def test_key_order_follows_first_appearance():
    merged = merge_annotations([("B", "1"), ("A", "2"), ("B", "3"), ("C", "4")])
    assert list(merged) == ["B", "A", "C"]


def test_wire_dicts_and_models_are_accepted():
    merged = merge_annotations([
        {"value": "ZRRIFLE", "description": "assassination capability"},
        WordAnnotation(value="GPFLOOR", description="Lee Harvey Oswald"),
        {"value": "ZRRIFLE", "description": "dup"},
    ])
    assert merged == {"ZRRIFLE": "assassination capability", "GPFLOOR": "Lee Harvey Oswald"}


def test_empty_list_gives_empty_lookup():
    assert merge_annotations([]) == {}


def test_missing_description_becomes_empty_string():
    assert merge_annotations([{"value": "KUBARK"}]) == {"KUBARK": ""}


@pytest.mark.parametrize("entries", [
    [(None, "d")],
    [{"description": "no token"}],
    [("OK", "d"), (42, "d")],
    [("TOKEN", 3)],
    ["just-a-string"],
    None,
])
def test_malformed_entries_are_rejected(entries):
    with pytest.raises(InvalidInput):
        merge_annotations(entries)


def test_wire_entries_are_validated_as_word_annotations():
    with pytest.raises(InvalidInput, match="invalid word annotation"):
        merge_annotations([{"value": 42, "description": "d"}])
    with pytest.raises(InvalidInput, match="invalid word annotation"):
        merge_annotations([{"value": "KUBARK", "description": ["not", "text"]}])
