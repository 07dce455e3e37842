import pytest

from crosslink import DetectionConfig
from crosslink.detector import analyze_column_pair, classify_cardinality
from crosslink.models.dataset import RelationshipType


def _pair(source_rows, target_rows, source_column, target_column, config=None):
    return analyze_column_pair(
        source_rows,
        target_rows,
        source_column,
        target_column,
        source_id="a",
        target_id="b",
        config=config,
    )


def _col(name, values):
    return [{name: v} for v in values]


def test_empty_source_column_yields_nothing():
    assert _pair(_col("k", [None, None]), _col("k", [1, 2]), "k", "k") is None


def test_missing_keys_are_treated_as_null():
    """Rows that lack the column entirely must not crash extraction."""
    source = [{"other": 1}, {"other": 2}]
    assert _pair(source, _col("k", [1, 2]), "k", "k") is None


def test_blank_strings_are_treated_as_null():
    assert _pair(_col("k", ["", "   "]), _col("k", ["", " "]), "k", "k") is None


def test_no_overlap_yields_nothing():
    assert _pair(_col("k", [1, 2]), _col("k", [3, 4]), "k", "k") is None


def test_values_compare_after_normalization():
    """42, 42.0, '42' and ' 42 ' are the same key; case is ignored."""
    rel = _pair(_col("code", [42, "ABC"]), _col("code", [" 42 ", "abc", 42.0]), "code", "code")
    assert rel is not None
    assert rel.matching_rows == 2
    assert rel.confidence == 1.0


def test_weak_overlap_below_floor_is_rejected():
    source = _col("left", list("abcdefghij"))
    target = _col("right", ["a"] + list("klmnopqrs"))
    assert _pair(source, target, "left", "right") is None


def test_name_similarity_boosts_confidence():
    source = _col("customer_id", [1, 2, 3, 4])
    target = _col("customer_id", [1, 2, 5, 6, 7])
    rel = _pair(source, target, "customer_id", "customer_id")
    assert rel.confidence == pytest.approx(0.4 * 1.2)


def test_dissimilar_names_get_no_boost():
    source = _col("customer_id", [1, 2, 3, 4])
    target = _col("zzz", [1, 2, 5, 6, 7])
    rel = _pair(source, target, "customer_id", "zzz")
    assert rel.confidence == pytest.approx(0.4)


def test_name_comparison_ignores_case():
    source = _col("CUSTOMER_ID", [1, 2, 3, 4])
    target = _col("customer_id", [1, 2, 5, 6, 7])
    rel = _pair(source, target, "CUSTOMER_ID", "customer_id")
    assert rel.confidence == pytest.approx(0.48)


def test_boosted_confidence_is_capped_at_one():
    rel = _pair(_col("id", [1, 2]), _col("id", [1, 2]), "id", "id")
    assert rel.confidence == 1.0


def test_user_id_uid_scenario_worked_literally():
    """
    user_id {1, 2} vs uid [1, 1, 3]: intersection {1}, overlap 1/2.
    similarity('user_id', 'uid') = 3/7 < 0.6, so there is no boost.
    Source side: 1 raw match vs 2 distinct values. Target side: 2 raw matches vs 2
    distinct values, so exactly one side is "full" and the type is one-to-many.
    """
    a = [{"user_id": 1, "name": "Al"}, {"user_id": 2, "name": "Bo"}]
    b = [{"uid": 1, "order_total": 50}, {"uid": 1, "order_total": 20}, {"uid": 3, "order_total": 10}]

    rel = _pair(a, b, "user_id", "uid")

    assert rel is not None
    assert rel.confidence == pytest.approx(0.5)
    assert rel.matching_rows == 1
    assert rel.type is RelationshipType.ONE_TO_MANY
    assert (rel.source_file, rel.target_file) == ("a", "b")
    assert (rel.source_column, rel.target_column) == ("user_id", "uid")


def test_identical_key_sets_are_one_to_one():
    rel = _pair(_col("id", [1, 2, 3]), _col("id", [3, 2, 1]), "id", "id")
    assert rel.type is RelationshipType.ONE_TO_ONE


def test_foreign_key_with_repeats_is_one_to_many():
    rel = _pair(_col("id", [1, 2]), _col("customer_id", [1, 1, 2, 2]), "id", "customer_id")
    assert rel.type is RelationshipType.ONE_TO_MANY


def test_partial_overlap_on_both_sides_is_many_to_many():
    rel = _pair(_col("k", [1, 2, 3]), _col("k", [2, 3, 4]), "k", "k")
    assert rel.type is RelationshipType.MANY_TO_MANY
    assert rel.matching_rows == 2


def test_overlap_is_symmetric():
    x = _col("region_code", ["n", "s", "e", "w", "c"])
    y = _col("region", ["n", "s", "e", "x", "y", "y"])

    forward = _pair(x, y, "region_code", "region")
    backward = _pair(y, x, "region", "region_code")

    assert forward.matching_rows == backward.matching_rows
    assert forward.confidence == pytest.approx(backward.confidence)


def test_emitted_confidence_never_below_floor():
    rel = _pair(_col("p", [1, 2, 3]), _col("q", [1, 7, 8]), "p", "q")
    assert rel is not None and rel.confidence >= 0.3


def test_floor_comes_from_config():
    config = DetectionConfig(min_confidence=0.6)
    assert _pair(_col("p", [1, 2]), _col("q", [1, 3]), "p", "q", config=config) is None


def test_classify_cardinality_directly():
    assert classify_cardinality(["1", "2"], ["1", "2"], {"1", "2"}) is RelationshipType.ONE_TO_ONE
    assert classify_cardinality(["1"], ["1", "2"], {"1"}) is RelationshipType.ONE_TO_MANY
    assert classify_cardinality(["1", "3"], ["1", "2"], {"1"}) is RelationshipType.MANY_TO_MANY
