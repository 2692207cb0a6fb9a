import pytest
from force3.utils.units import (
    convert_distance,
    cm_to_feet_inches,
    feet_inches_to_cm,
    format_distance,
    goal_paces,
    height_label,
    hhmmss_to_seconds,
    parse_height_mixed,
    round_half_up,
)


def test_convert_distance_km_to_mi_rounds():
    assert convert_distance(10, "km", "mi") == 6


def test_convert_distance_same_unit_is_identity():
    assert convert_distance(10, "mi", "mi") == 10


def test_convert_distance_mi_to_km():
    assert convert_distance(35, "mi", "km") == 56


def test_convert_distance_unknown_unit():
    with pytest.raises(ValueError):
        convert_distance(10, "mi", "yd")


def test_round_half_up_is_not_bankers():
    assert round_half_up(2.5) == 3
    assert round_half_up(11.55) == 12
    assert round_half_up(4.49) == 4


def test_format_distance():
    assert format_distance(35, "mi") == "35 mi"
    assert format_distance(35, "km") == "56 km"


@pytest.mark.parametrize(
    "value, expected_cm",
    [
        (180, 180),
        ("175 cm", 175),
        ("5'11\"", 180),
        ("175 cm / 5'9\"", 175),
    ],
)
def test_parse_height_mixed(value, expected_cm):
    cm, text = parse_height_mixed(value)
    assert cm == expected_cm
    assert text


def test_parse_height_unrecognised_keeps_text():
    assert parse_height_mixed("tall") == (None, "tall")
    assert parse_height_mixed(None) == (None, None)


def test_height_helpers():
    assert cm_to_feet_inches(175) == (5, 9)
    assert feet_inches_to_cm(6, 0) == 183
    assert height_label(150) == "150 cm / 4'11\""


def test_hhmmss_to_seconds():
    assert hhmmss_to_seconds("3:00:00") == 10800
    assert hhmmss_to_seconds("20:00") == 1200
    assert hhmmss_to_seconds("abc") == 0


def test_goal_paces_marathon_in_miles():
    paces = goal_paces("3:00:00", "mi")
    assert paces == {"mp": "6:52/mi", "hmp": "6:32/mi", "k10": "6:11/mi"}


def test_goal_paces_empty_goal():
    assert goal_paces("", "km") == {"mp": "", "hmp": "", "k10": ""}


@pytest.mark.parametrize("value", [float("inf"), float("nan"), "1e400"])
def test_convert_distance_rejects_non_finite(value):
    with pytest.raises(ValueError):
        convert_distance(value, "mi", "km")
