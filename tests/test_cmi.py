from __future__ import annotations

from scormheatmap.cmi import InteractionParser, extract_interactions, write_to_keychain


def _lookup(tree: dict, keychain: list[str]):
    node = tree
    for key in keychain:
        node = node[key]
    return node


def test_write_creates_intermediate_levels() -> None:
    tree: dict = {}
    write_to_keychain(tree, ["correct_responses", "0", "pattern"], "A[,]C")
    assert tree == {"correct_responses": {"0": {"pattern": "A[,]C"}}}


def test_write_overwrites_and_keeps_siblings() -> None:
    tree = {"a": {"b": 1, "c": 2}}
    write_to_keychain(tree, ["a", "b"], 5)
    assert _lookup(tree, ["a", "b"]) == 5
    assert _lookup(tree, ["a", "c"]) == 2


def test_write_then_lookup_returns_value() -> None:
    paths = [["id"], ["x", "y", "z"], ["x", "y", "w"], ["x", "v"]]
    tree: dict = {}
    for i, keychain in enumerate(paths):
        write_to_keychain(tree, keychain, i)
    for i, keychain in enumerate(paths):
        assert _lookup(tree, keychain) == i


def test_append_collects_values_in_order() -> None:
    tree: dict = {}
    write_to_keychain(tree, ["a", "items"], "first", operation="append")
    write_to_keychain(tree, ["a", "items"], "second", operation="append")
    assert tree == {"a": {"items": ["first", "second"]}}


def test_empty_keychain_is_noop() -> None:
    tree = {"a": 1}
    write_to_keychain(tree, [], "value")
    assert tree == {"a": 1}


def test_extract_groups_records_by_ordinal() -> None:
    records = {
        "cmi.interactions.1.result": "false",
        "cmi.interactions.0.id": "q1_1_0",
        "cmi.core.lesson_status": "completed",
        "cmi.interactions.0.result": "correct",
        "cmi.interactions.1.id": "q1_1_1",
        "cmi.interactions.0.correct_responses.0.pattern": "A[,]C",
    }
    interactions = extract_interactions(records)
    assert set(interactions.keys()) == {"0", "1"}
    assert interactions["0"] == {
        "id": "q1_1_0",
        "result": "correct",
        "correct_responses": {"0": {"pattern": "A[,]C"}},
    }
    assert interactions["1"] == {"id": "q1_1_1", "result": "false"}


def test_extract_accepts_underscore_prefix_separators() -> None:
    records = {"cmi_interactions_3.id": "q7", "cmi.interactions_3.type": "choice"}
    assert extract_interactions(records) == {"3": {"id": "q7", "type": "choice"}}


def test_extract_renames_student_response() -> None:
    records = {"cmi.interactions.0.student_response": "B"}
    assert extract_interactions(records) == {"0": {"learner_response": "B"}}


def test_extract_uses_custom_substitutions() -> None:
    records = {"cmi.interactions.0.answer": "B"}
    result = extract_interactions(records, substitutions={"answer": "learner_response"})
    assert result == {"0": {"learner_response": "B"}}


def test_extract_drops_records_without_field() -> None:
    records = {
        "cmi.interactions.0": "orphan",
        "cmi.interactions._count": "2",
        "cmi.interactions.1.id": "q1",
    }
    assert extract_interactions(records) == {"1": {"id": "q1"}}


def test_parser_reads_first_correct_pattern_by_ordinal() -> None:
    interaction = {
        "correct_responses": {"1": {"pattern": "B"}, "0": {"pattern": "A[,]C"}},
    }
    assert InteractionParser.correct_pattern(interaction) == ["A", "C"]
    assert InteractionParser.correct_pattern({"correct_responses": [{"pattern": "D"}]}) == ["D"]
    assert InteractionParser.correct_pattern({}) is None


def test_parser_ignores_nested_id() -> None:
    assert InteractionParser.interaction_id({"id": {"0": "x"}}) is None
    assert InteractionParser.interaction_id({"id": 12}) == "12"
