"""
Tests for athlete profile derivation.
"""

from datetime import date, datetime

import pytest

from clubaccess.core.errors import ValidationFailed
from clubaccess.services.athlete_profile import (
    category_for_age,
    compute_age,
    derive_profile,
    normalize_gender,
    parse_date_of_birth,
)

TODAY = date(2024, 3, 1)


@pytest.mark.parametrize(
    "age,category",
    [
        (4, "U6"),
        (5, "U6"),
        (6, "U8"),
        (9, "U10"),
        (11, "U12"),
        (12, "U14"),
        (15, "U16"),
        (17, "U18"),
        (18, "O18"),
        (60, "O18"),
        (61, None),
    ],
)
def test_category_bands(age, category):
    assert category_for_age(age) == category


def test_parse_date_of_birth_formats():
    assert parse_date_of_birth("2012-03-01") == date(2012, 3, 1)
    assert parse_date_of_birth("March 1, 2012") == date(2012, 3, 1)
    assert parse_date_of_birth(datetime(2012, 3, 1, 10, 30)) == date(2012, 3, 1)
    assert parse_date_of_birth(date(2012, 3, 1)) == date(2012, 3, 1)
    assert parse_date_of_birth(None) is None
    assert parse_date_of_birth("") is None


@pytest.mark.parametrize("value", ["not a date", "2012-13-45", 12345])
def test_parse_date_of_birth_rejects_garbage(value):
    with pytest.raises(ValidationFailed):
        parse_date_of_birth(value)


@pytest.mark.parametrize("value,expected", [("F", "F"), ("f", "F"), (" f ", "F"), ("M", "M"), ("x", "M"), (None, "M")])
def test_normalize_gender(value, expected):
    assert normalize_gender(value) == expected


def test_compute_age_counts_whole_years():
    assert compute_age(date(2012, 3, 1), TODAY) == 12
    assert compute_age(date(2012, 3, 2), TODAY) == 11


class TestDeriveProfile:
    def test_age_and_category_from_date_of_birth(self):
        profile = derive_profile(
            first_name=" Ana ", last_name="Pop", date_of_birth="2012-03-01", gender="f", today=TODAY
        )
        assert profile.first_name == "Ana"
        assert profile.age == 12
        assert profile.category == "U14"
        assert profile.gender == "F"
        assert profile.date_of_birth == date(2012, 3, 1)

    def test_explicit_values_win(self):
        profile = derive_profile(
            first_name="Ana", last_name="Pop", date_of_birth="2012-03-01",
            age=15, category="Elite", today=TODAY,
        )
        assert profile.age == 15
        assert profile.category == "Elite"

    def test_non_numeric_age_recomputed(self):
        profile = derive_profile(
            first_name="Ana", last_name="Pop", date_of_birth="2012-03-01", age="twelve", today=TODAY
        )
        assert profile.age == 12

    def test_numeric_string_age_accepted(self):
        profile = derive_profile(first_name="Ana", last_name="Pop", age="9", today=TODAY)
        assert profile.age == 9
        assert profile.category == "U10"

    @pytest.mark.parametrize("age", [3, 61])
    def test_age_out_of_range_rejected(self, age):
        with pytest.raises(ValidationFailed):
            derive_profile(first_name="Ana", last_name="Pop", age=age, today=TODAY)

    def test_missing_age_and_date_rejected(self):
        with pytest.raises(ValidationFailed):
            derive_profile(first_name="Ana", last_name="Pop", today=TODAY)
