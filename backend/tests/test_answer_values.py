from app.services.answer_values import (
    decode_checkbox_value,
    encode_checkbox_value,
    normalize_answer_value,
    parse_number,
    stored_value,
)


def test_checkbox_value_round_trip():
    assert decode_checkbox_value(encode_checkbox_value(["a", "b"])) == ["a", "b"]


def test_checkbox_keeps_non_ascii_text():
    assert encode_checkbox_value(["Café"]) == '["Café"]'


def test_decode_bad_values_yields_empty_list():
    assert decode_checkbox_value(None) == []
    assert decode_checkbox_value("") == []
    assert decode_checkbox_value("[broken") == []
    assert decode_checkbox_value('{"a": 1}') == []


def test_normalize_answer_value():
    assert normalize_answer_value(None) == ""
    assert normalize_answer_value([]) == ""
    assert normalize_answer_value(["x"]) == '["x"]'
    assert normalize_answer_value("  kept  ") == "  kept  "
    assert stored_value("") is None
    assert stored_value("v") == "v"


def test_parse_number_accepts_only_finite_values():
    assert parse_number(" -37.8 ") == -37.8
    assert parse_number(4) == 4.0
    for bad in ("nan", "inf", "-Infinity", "1_000", "", "four", None, True):
        assert parse_number(bad) is None
