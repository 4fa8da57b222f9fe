import pytest

from racebot.util import (
    float_to_string,
    join_list,
    language_name,
    random_element,
    random_int,
    split_list,
)


def test_float_to_string_drops_trailing_zero():
    assert float_to_string(12345678.0) == "12345678"


def test_float_to_string_keeps_fraction():
    assert float_to_string(2.5) == "2.5"


def test_float_to_string_never_uses_exponent():
    text = float_to_string(1e21)
    assert "e" not in text.lower()
    assert text == "1" + "0" * 21


def test_float_to_string_round_trips():
    for value in (0.1, 3.25, 123456.789, 7.0, 0.5):
        assert float(float_to_string(value)) == value


def test_float_to_string_infinity():
    assert float_to_string(float("inf")) == "+Inf"


def test_random_element_returns_matching_index():
    items = ["a", "b", "c", "d"]
    for _ in range(50):
        element, index = random_element(items)
        assert items[index] == element


def test_random_element_empty_raises():
    with pytest.raises(ValueError):
        random_element([])


def test_random_int_inclusive_bounds():
    seen = {random_int(1, 3) for _ in range(500)}
    assert seen == {1, 2, 3}


def test_random_int_single_value():
    assert random_int(2, 2) == 2


def test_random_int_bad_range():
    with pytest.raises(ValueError):
        random_int(3, 1)


def test_split_empty_string_gives_empty_list():
    assert split_list("") == []


def test_join_split_round_trip():
    items = ["Isaac", "Magdalene", "Cain"]
    assert split_list(join_list(items)) == items


def test_join_empty_list():
    assert split_list(join_list([])) == []


def test_language_name_known():
    assert language_name("fr") == "French"
    assert language_name("pl") == "Polish"


def test_language_name_unknown():
    assert language_name("zz") == ""