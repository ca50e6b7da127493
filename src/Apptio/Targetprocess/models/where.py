# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Compiler for the Targetprocess ``where`` query language.

A where clause is a list of conditions joined by ``and``. Each condition is
either ``<field> <operator> <value>`` or a null test (``<field> is null``,
``<field> is not null``). The service only accepts single-quoted string
literals, so every value is normalised on the way out.

Example::

    compile_where_clause("EntityState.Name eq \\"Open\\" and Name contains 'Alpha and Beta'")
    # "EntityState.Name eq 'Open' and Name contains 'Alpha and Beta'"
"""

from __future__ import annotations

import datetime as _dt
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

from ..common.constants import CUSTOM_FIELD_NAMESPACE, CUSTOM_FIELD_WIRE_PREFIX
from ..core._error_codes import (
    VALIDATION_INCLUDE_FIELD,
    VALIDATION_ORDER_BY_FIELD,
    VALIDATION_WHERE_CONDITION,
    VALIDATION_WHERE_EMPTY,
)
from ..core.errors import ValidationError

_CONDITION_SEPARATOR = " and "

_NULL_CHECK_RE = re.compile(r"^(?P<field>.+?)\s+is\s+(?P<negated>not\s+)?null$", re.IGNORECASE)
_CONDITION_RE = re.compile(
    r"^(?P<field>\S+)\s+(?P<operator>eq|ne|gte|gt|lte|lt|in|contains|not\s+contains)\s+(?P<value>.+)$",
    re.IGNORECASE,
)
_INCLUDE_RE = re.compile(r"^[A-Za-z.]+$")
_ORDER_DIRECTION_RE = re.compile(r"\s+(asc|desc)$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


class WhereOperator(str, Enum):
    """Closed set of comparison operators understood by the service."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not contains"
    IS_NULL = "is null"
    IS_NOT_NULL = "is not null"

    @classmethod
    def parse(cls, token: str) -> "WhereOperator":
        """Resolve an operator keyword, ignoring case and repeated whitespace."""
        normalized = " ".join(str(token).lower().split())
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(
                f"Unsupported operator: {token!r}. Supported operators are: "
                + ", ".join(op.value for op in cls),
                subcode=VALIDATION_WHERE_CONDITION,
            ) from None

    @property
    def is_null_check(self) -> bool:
        return self in (WhereOperator.IS_NULL, WhereOperator.IS_NOT_NULL)


def format_field(name: str) -> str:
    """
    Rewrite a field name into its wire form.

    ``CustomField.Risk Level`` becomes ``cf_RiskLevel``; every other name only
    has its whitespace removed.
    """
    name = str(name).strip()
    if name.startswith(CUSTOM_FIELD_NAMESPACE):
        name = CUSTOM_FIELD_WIRE_PREFIX + name[len(CUSTOM_FIELD_NAMESPACE):]
    return _WHITESPACE_RE.sub("", name)


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        quote = raw[0]
        inner = raw[1:-1].replace("\\" + quote, quote)
        if quote == "'":
            inner = inner.replace("''", "'")
        return inner
    if raw[:1] in ("'", '"'):
        raw = raw[1:]
    if raw[-1:] in ("'", '"'):
        raw = raw[:-1]
    return raw


def format_value(value: Any) -> str:
    """
    Render a value as a where-clause literal.

    - ``None`` -> ``null``
    - ``bool`` -> ``true`` / ``false``
    - ``date`` / ``datetime`` -> ``'YYYY-MM-DD'``
    - list / tuple -> ``[a,b,...]`` with each element formatted recursively
    - anything else is a string: wrapping quotes are removed, embedded single
      quotes are doubled, and the result is wrapped in single quotes.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, _dt.datetime):
        return f"'{value.date().isoformat()}'"
    if isinstance(value, _dt.date):
        return f"'{value.isoformat()}'"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(format_value(v) for v in value) + "]"
    escaped = _unquote(str(value)).replace("'", "''")
    return f"'{escaped}'"


@dataclass(frozen=True)
class Condition:
    """
    A single where-clause condition.

    :param field: Field name, e.g. ``"EntityState.Name"`` or ``"CustomField.Risk"``.
    :type field: str
    :param operator: Comparison operator; strings are parsed with :meth:`WhereOperator.parse`.
    :type operator: WhereOperator or str
    :param value: Comparison value. Ignored for null tests.
    """

    field: str
    operator: WhereOperator
    value: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.operator, WhereOperator):
            object.__setattr__(self, "operator", WhereOperator.parse(self.operator))
        if not self.field or not str(self.field).strip():
            raise ValidationError("Condition field is required", subcode=VALIDATION_WHERE_CONDITION)

    def compile(self) -> str:
        field = format_field(self.field)
        op = self.operator
        if op is WhereOperator.IS_NULL:
            return f"{field} is null"
        if op is WhereOperator.IS_NOT_NULL:
            return f"{field} is not null"
        if op in (
            WhereOperator.EQ,
            WhereOperator.NE,
            WhereOperator.GT,
            WhereOperator.GTE,
            WhereOperator.LT,
            WhereOperator.LTE,
            WhereOperator.IN,
            WhereOperator.CONTAINS,
            WhereOperator.NOT_CONTAINS,
        ):
            return f"{field} {op.value} {format_value(self.value)}"
        raise AssertionError(f"Unhandled operator: {op!r}")


def split_conditions(where: str) -> List[str]:
    """
    Split a where clause on ``" and "`` (any case) outside quoted literals.

    A quote character only opens or closes a literal when it is not preceded by
    a backslash and, when closing, matches the quote that opened the literal.
    """
    conditions: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    i = 0
    n = len(where)
    sep_len = len(_CONDITION_SEPARATOR)
    while i < n:
        ch = where[i]
        if ch in ("'", '"') and (i == 0 or where[i - 1] != "\\"):
            if quote is None:
                quote = ch
            elif ch == quote:
                quote = None
        if quote is None and where[i:i + sep_len].lower() == _CONDITION_SEPARATOR:
            conditions.append("".join(current).strip())
            current = []
            i += sep_len
            continue
        current.append(ch)
        i += 1
    conditions.append("".join(current).strip())
    return conditions


def _require_where(where: Optional[str]) -> str:
    if where is None or not str(where).strip():
        raise ValidationError("Empty where clause", subcode=VALIDATION_WHERE_EMPTY)
    return str(where).strip()


def parse_condition(condition: str) -> Condition:
    """Parse one condition; field names come back in wire form, values unquoted."""
    null_match = _NULL_CHECK_RE.match(condition)
    if null_match:
        op = WhereOperator.IS_NOT_NULL if null_match.group("negated") else WhereOperator.IS_NULL
        return Condition(format_field(null_match.group("field")), op)

    match = _CONDITION_RE.match(condition)
    if not match:
        raise ValidationError(
            f"Invalid condition format: {condition!r}. Expected '<field> <operator> <value>', "
            "'<field> is null' or '<field> is not null'.",
            subcode=VALIDATION_WHERE_CONDITION,
            details={"condition": condition},
        )
    return Condition(
        format_field(match.group("field")),
        WhereOperator.parse(match.group("operator")),
        _unquote(match.group("value").strip()),
    )


def parse_where_clause(where: str) -> List[Condition]:
    """
    Parse a where clause into conditions.

    :raises ValidationError: If the clause is blank or any condition is malformed.
        The message names the failing condition.
    """
    return [parse_condition(c) for c in split_conditions(_require_where(where))]


def compile_where_clause(where: str) -> str:
    """Validate a where clause and return its wire form."""
    return _CONDITION_SEPARATOR.join(c.compile() for c in parse_where_clause(where))


def normalize_includes(fields: Iterable[str]) -> List[str]:
    """
    Trim, reformat and validate include field names; blank entries are dropped.

    :raises ValidationError: If a name contains anything other than letters and dots.
    """
    valid = [format_field(f) for f in fields if f and str(f).strip()]
    for inc in valid:
        if not _INCLUDE_RE.match(inc):
            raise ValidationError(
                f"Invalid include parameter: {inc!r}. Include names may only contain letters and dots.",
                subcode=VALIDATION_INCLUDE_FIELD,
                details={"include": inc},
            )
    return valid


def compile_include(fields: Iterable[str]) -> str:
    """Return the bracketed include list, e.g. ``[Project,AssignedUser]``."""
    return "[" + ",".join(normalize_includes(fields)) + "]"


def strip_order_direction(field: str) -> str:
    """Drop a trailing ``asc``/``desc``; the service only accepts bare field names."""
    name = _ORDER_DIRECTION_RE.sub("", str(field).strip()).strip()
    if not name:
        raise ValidationError(f"Invalid orderBy field: {field!r}", subcode=VALIDATION_ORDER_BY_FIELD)
    return name


__all__ = [
    "WhereOperator",
    "Condition",
    "format_field",
    "format_value",
    "split_conditions",
    "parse_condition",
    "parse_where_clause",
    "compile_where_clause",
    "normalize_includes",
    "compile_include",
    "strip_order_direction",
]
