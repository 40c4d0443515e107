import pytest

from household_dedupe.steps.similarity import (
    component_scores,
    id_score,
    jaccard,
    jaro,
    jaro_winkler,
    location_score,
    order_free,
    phone_score,
)


def test_jaro_winkler_matches_reference_values() -> None:
    assert jaro_winkler("MARTHA", "MARHTA") == pytest.approx(0.9611, abs=1e-4)
    assert jaro_winkler("DWAYNE", "DUANE") == pytest.approx(0.84, abs=1e-4)
    assert jaro_winkler("فاطمه", "فاطمه") == 1.0


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        ("dabec", "bbcddbdce", 0.47778),
        ("edeadbddb", "ecadeab", 0.69095),
        ("خالد", "عبدالرحمن", 0.52778),
    ],
)
def test_jaro_winkler_uses_half_length_match_window(left: str, right: str, expected: float) -> None:
    assert jaro_winkler(left, right) == pytest.approx(expected, abs=1e-4)
    assert jaro_winkler(right, left) == pytest.approx(expected, abs=1e-4)


def test_jaro_window_is_empty_for_single_characters() -> None:
    assert jaro("a", "a") == 0.0
    assert jaro_winkler("a", "a") == 0.0
    assert jaro("ab", "ab") == 1.0


def test_jaro_winkler_empty_side_scores_zero() -> None:
    assert jaro_winkler("", "") == 0.0
    assert jaro_winkler("احمد", "") == 0.0
    assert jaro_winkler("", "احمد") == 0.0


def test_jaro_winkler_is_symmetric() -> None:
    pairs = [("محمد", "احمد"), ("عبدالله", "عبدالرحمن"), ("CRATE", "TRACE"), ("abcdef", "fedcba")]
    for left, right in pairs:
        assert jaro_winkler(left, right) == jaro_winkler(right, left)


def test_jaccard_of_empty_sets_is_zero() -> None:
    assert jaccard([], []) == 0.0
    assert jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)


def test_order_free_ignores_token_order() -> None:
    assert order_free(["علي", "احمد"], ["احمد", "علي"]) == pytest.approx(1.0)
    assert order_free(["علي"], []) == 0.0
    assert 0.0 < order_free(["علي", "احمد"], ["علي", "صالح"]) < 1.0


def test_phone_and_id_suffix_tiers() -> None:
    assert phone_score("771234567", "771234567") == 1.0
    assert phone_score("967771234567", "771234567") == 0.85
    assert phone_score("700004567", "711114567") == 0.6
    assert phone_score("771234567", "") == 0.0
    assert id_score("1234567890", "1234567890") == 1.0
    assert id_score("9999967890", "1111167890") == 0.75
    assert id_score("123", "456") == 0.0


def test_location_score_is_capped(make_record) -> None:
    a = make_record(0, village="الحصين", subdistrict="حيفان")
    b = make_record(1, village="الحصين", subdistrict="حيفان")
    c = make_record(2, village="الضالع", subdistrict="حيفان")

    assert location_score(a, b) == 0.5
    assert location_score(a, c) == 0.25
    assert location_score(make_record(3), make_record(4)) == 0.0


def test_component_scores_cover_every_weight(make_record) -> None:
    a = make_record(0, woman="فاطمة احمد علي", husband="صالح محمد", phone="771234567")
    b = make_record(1, woman="فاطمه احمد علي", husband="صالح محمد", phone="771234567")

    components = component_scores(a, b)

    assert set(components) == {
        "firstNameScore",
        "familyNameScore",
        "advancedNameScore",
        "tokenReorderScore",
        "husbandScore",
        "idScore",
        "phoneScore",
        "childrenScore",
        "locationScore",
    }
    assert components["firstNameScore"] == 1.0
    assert components["advancedNameScore"] == 0.5
    assert components["husbandScore"] == pytest.approx(1.0)
    assert components["phoneScore"] == 1.0
    assert components["idScore"] == 0.0
