"""Field validation.

Rules are small, tagged checks that can be composed per field::

    rules = {
        "title": [required(), max_length(255)],
        "status": [one_of("pending", "completed")],
    }

The pipe notation used throughout the controllers and records
(``"required|max:255"``) is parsed into the same rule objects by
:func:`parse_rules`, so both spellings are interchangeable.

A value is *present* when its key is in the data bag and it is not ``None``.
Only ``required`` looks at absent values; every other rule skips them.
"""
from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any, NamedTuple, Optional, Union

from email_validator import EmailNotValidError, validate_email


class Violation(NamedTuple):
    field: str
    kind: str
    message: str


class Rule(NamedTuple):
    kind: str
    param: Optional[str]
    # (field, value, present) -> message or None
    check: Callable[[str, Any, bool], Optional[str]]


RuleSpec = Union[str, Iterable[Rule]]


# ---- rule factories ----

def required() -> Rule:
    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if not present or str(value).strip() == "":
            return f"{field} is required"
        return None

    return Rule("required", None, check)


def min_length(n: int) -> Rule:
    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if present and len(str(value)) < n:
            return f"{field} must be at least {n} characters"
        return None

    return Rule("min", str(n), check)


def max_length(n: int) -> Rule:
    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if present and len(str(value)) > n:
            return f"{field} must be less than {n} characters"
        return None

    return Rule("max", str(n), check)


def email() -> Rule:
    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if present and not is_email(value):
            return f"{field} must be a valid email address"
        return None

    return Rule("email", None, check)


def valid_date() -> Rule:
    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if present and parse_date(value) is None:
            return f"{field} must be a valid date"
        return None

    return Rule("date", None, check)


def numeric() -> Rule:
    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if present and not is_numeric(value):
            return f"{field} must be numeric"
        return None

    return Rule("numeric", None, check)


def one_of(*allowed: str) -> Rule:
    choices = [str(a) for a in allowed]

    def check(field: str, value: Any, present: bool) -> Optional[str]:
        if present and str(value) not in choices:
            return f"{field} must be one of: " + ", ".join(choices)
        return None

    return Rule("in", ",".join(choices), check)


# ---- value predicates ----

def is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def parse_date(value: Any) -> Optional[date]:
    """Return the calendar date in ``value`` or None when it has none."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    s = value.strip()
    if not s or "_" in s:
        return False
    try:
        return math.isfinite(float(s))
    except ValueError:
        return False


# ---- notation ----

def _from_token(token: str) -> Optional[Rule]:
    name, _, param = token.partition(":")
    name = name.strip()
    if name == "required":
        return required()
    if name == "min":
        return min_length(int(param))
    if name == "max":
        return max_length(int(param))
    if name == "email":
        return email()
    if name == "date":
        return valid_date()
    if name == "numeric":
        return numeric()
    if name == "in":
        return one_of(*param.split(","))
    # unknown rule names are ignored
    return None


def parse_rules(spec: RuleSpec) -> list[Rule]:
    if not isinstance(spec, str):
        return list(spec)
    rules = []
    for token in spec.split("|"):
        if not token.strip():
            continue
        rule = _from_token(token)
        if rule is not None:
            rules.append(rule)
    return rules


# ---- entry points ----

def check(data: Mapping[str, Any], rules: Mapping[str, RuleSpec]) -> list[Violation]:
    """Run every rule of every field; violations come back in rule order."""
    violations = []
    for field, spec in rules.items():
        value = data.get(field)
        present = field in data and value is not None
        for rule in parse_rules(spec):
            message = rule.check(field, value, present)
            if message is not None:
                violations.append(Violation(field, rule.kind, message))
    return violations


def validate(data: Mapping[str, Any], rules: Mapping[str, RuleSpec]) -> dict[str, list[str]]:
    """Return ``{field: [messages]}`` for the fields that failed."""
    errors: dict[str, list[str]] = {}
    for violation in check(data, rules):
        errors.setdefault(violation.field, []).append(violation.message)
    return errors
