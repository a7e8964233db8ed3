"""Validator factories for form fields.

Every validator except :func:`required` lets empty values through, so
optional fields only get checked once the user typed something.
"""

import re
from typing import Any

from reflex_admin_grid.models import Validator

# Same shape as the browser's own ``type=email`` check.
_EMAIL_RE = re.compile(
    r"^(?=.{1,254}$)(?=.{1,64}@)[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+"
    r"(?:\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+)*@[a-zA-Z0-9]"
    r"(?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


def is_empty(value: Any) -> bool:
    """``None``, ``""`` and empty lists count as "no value"."""
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple, set)) and len(value) == 0:
        return True
    return False


def required() -> Validator:
    return Validator(
        name="required",
        check=lambda value: not is_empty(value),
        message=lambda label: f"{label} is required",
    )


def email() -> Validator:
    return Validator(
        name="email",
        check=lambda value: is_empty(value) or bool(_EMAIL_RE.match(str(value))),
        message="Please enter a valid email address",
    )


def min_length(length: int) -> Validator:
    return Validator(
        name="minlength",
        check=lambda value: is_empty(value) or len(value) >= length,
        message=f"Minimum length is {length} characters",
    )


def max_length(length: int) -> Validator:
    return Validator(
        name="maxlength",
        check=lambda value: is_empty(value) or len(value) <= length,
        message=f"Maximum length is {length} characters",
    )


def pattern(regex: str, message: str = "Invalid value") -> Validator:
    compiled = re.compile(regex)
    return Validator(
        name="pattern",
        check=lambda value: is_empty(value) or bool(compiled.fullmatch(str(value))),
        message=message,
    )


def min_value(minimum: float) -> Validator:
    return Validator(
        name="min",
        check=lambda value: is_empty(value) or _as_number(value) >= minimum,
        message=f"Minimum value is {minimum}",
    )


def max_value(maximum: float) -> Validator:
    return Validator(
        name="max",
        check=lambda value: is_empty(value) or _as_number(value) <= maximum,
        message=f"Maximum value is {maximum}",
    )


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return float("nan")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")
