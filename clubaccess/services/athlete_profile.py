"""
Athlete profile derivation.

Turns the loosely typed profile fields clients send (date of birth as a date
or free-form string, optional age, optional category, gender letter) into the
normalized values stored on an Athlete.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from clubaccess.core.errors import ValidationFailed

MIN_AGE = 4
MAX_AGE = 60

# (exclusive upper bound, category), checked in order
AGE_BANDS: tuple[tuple[int, str], ...] = (
    (6, "U6"),
    (8, "U8"),
    (10, "U10"),
    (12, "U12"),
    (14, "U14"),
    (16, "U16"),
    (18, "U18"),
    (MAX_AGE + 1, "O18"),
)


@dataclass(frozen=True)
class AthleteProfile:
    """Normalized athlete fields ready to persist."""
    first_name: str
    last_name: str
    date_of_birth: date | None
    age: int
    category: str
    gender: str


def parse_date_of_birth(value: Any) -> date | None:
    """
    Parse a date of birth.

    Accepts a date, a datetime, an ISO string or any string dateutil can
    read. Empty values give None; anything else unreadable is rejected.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return date_parser.parse(text).date()
        except (ValueError, OverflowError) as e:
            raise ValidationFailed(f"Invalid date of birth: {value!r}") from e
    raise ValidationFailed(f"Invalid date of birth: {value!r}")


def normalize_gender(value: Any) -> str:
    """'F' (any case) stays female; everything else is stored as 'M'."""
    if isinstance(value, str) and value.strip().upper() == "F":
        return "F"
    return "M"


def compute_age(date_of_birth: date, today: date) -> int:
    """Whole years between date_of_birth and today."""
    return relativedelta(today, date_of_birth).years


def category_for_age(age: int) -> str | None:
    """Age category band, or None when the age is outside every band."""
    for upper, category in AGE_BANDS:
        if age < upper:
            return category
    return None


def _explicit_age(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def derive_profile(
    *,
    first_name: str,
    last_name: str,
    date_of_birth: Any = None,
    age: Any = None,
    category: str | None = None,
    gender: Any = None,
    today: date,
) -> AthleteProfile:
    """
    Build a normalized profile.

    An explicit numeric age wins; otherwise the age is computed from the date
    of birth. An explicit non-empty category wins; otherwise it comes from
    the age bands.

    Raises:
        ValidationFailed: unreadable date, age undeterminable or outside
            [MIN_AGE, MAX_AGE], or no category
    """
    dob = parse_date_of_birth(date_of_birth)

    resolved_age = _explicit_age(age)
    if resolved_age is None and dob is not None:
        resolved_age = compute_age(dob, today)
    if resolved_age is None:
        raise ValidationFailed("Athlete age or date of birth is required")
    if not MIN_AGE <= resolved_age <= MAX_AGE:
        raise ValidationFailed(f"Athlete age must be between {MIN_AGE} and {MAX_AGE}")

    resolved_category = category.strip() if isinstance(category, str) and category.strip() else None
    if resolved_category is None:
        resolved_category = category_for_age(resolved_age)
    if resolved_category is None:
        raise ValidationFailed("Could not determine athlete category")

    return AthleteProfile(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        date_of_birth=dob,
        age=resolved_age,
        category=resolved_category,
        gender=normalize_gender(gender),
    )
