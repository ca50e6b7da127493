# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Immutable query builder for constructing Targetprocess REST queries.

Every builder method returns a new builder, so partially built queries can be
shared and extended freely. :meth:`QueryBuilder.build` validates the accumulated
options and returns a :class:`CompiledQuery` ready to be put on the wire.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

from ..common.constants import FORMAT_JSON, MAX_TAKE
from ..core._error_codes import VALIDATION_TAKE
from ..core.errors import ValidationError
from .presets import apply_preset
from .where import (
    Condition,
    WhereOperator,
    compile_where_clause,
    normalize_includes,
    strip_order_direction,
)

if TYPE_CHECKING:
    from ..core._auth import AuthConfig
    from ..operations.query import QueryOperations

# Characters encodeURIComponent leaves alone in addition to alphanumerics and "_.-~"
_URI_COMPONENT_SAFE = "!*'()"


def _validate_take(take: Any) -> Optional[int]:
    if take is None:
        return None
    if isinstance(take, bool) or not isinstance(take, int) or not 1 <= take <= MAX_TAKE:
        raise ValidationError(
            f"take must be an integer between 1 and {MAX_TAKE}, got {take!r}",
            subcode=VALIDATION_TAKE,
        )
    return take


@dataclass(frozen=True)
class CompiledQuery:
    """
    Validated, wire-ready query options.

    :param format: Response format marker, ``json`` unless overridden.
    :param where: Compiled where clause or None.
    :param include: Bracketed include list, e.g. ``[Project,AssignedUser]``, or None.
    :param take: Maximum number of items or None.
    :param order_by: Bare order-by field names.
    """

    format: str = FORMAT_JSON
    where: Optional[str] = None
    include: Optional[str] = None
    take: Optional[int] = None
    order_by: Tuple[str, ...] = ()

    def to_params(self, auth: Optional["AuthConfig"] = None) -> List[Tuple[str, str]]:
        """
        Ordered query parameters.

        A single order-by field is sent as ``orderBy``; several are sent as
        ``orderBy[0]``, ``orderBy[1]`` and so on. API-key auth contributes a
        trailing ``access_token``.
        """
        params: List[Tuple[str, str]] = [("format", self.format)]
        if self.take is not None:
            params.append(("take", str(self.take)))
        if self.where:
            params.append(("where", self.where))
        if self.include:
            params.append(("include", self.include))
        if len(self.order_by) == 1:
            params.append(("orderBy", self.order_by[0]))
        else:
            params.extend((f"orderBy[{i}]", name) for i, name in enumerate(self.order_by))
        if auth is not None:
            params.extend(auth.query_params())
        return params

    def to_query_string(self, auth: Optional["AuthConfig"] = None) -> str:
        """
        Serialise to a query string (without the leading ``?``).

        The indexed ``orderBy[i]`` names must reach the service with literal
        brackets, so queries with more than one order-by field are serialised by
        hand instead of through :func:`urllib.parse.urlencode`.
        """
        params = self.to_params(auth)
        if len(self.order_by) <= 1:
            return urlencode(params)
        parts = []
        for key, value in params:
            if key.startswith("orderBy["):
                parts.append(f"{key}={quote(value)}")
            else:
                parts.append(f"{key}={quote(value, safe=_URI_COMPONENT_SAFE)}")
        return "&".join(parts)


@dataclass(frozen=True)
class QueryOptions:
    """
    Raw, caller-supplied query options.

    :param where: Where clause in Targetprocess syntax.
    :param clauses: Where clauses already in wire form, AND-ed after ``where``.
    :param conditions: Additional structured conditions, AND-ed after ``where``.
    :param include: Related fields to embed in each item.
    :param take: Maximum number of items, 1 to 1000.
    :param order_by: Sort fields; trailing ``asc``/``desc`` is dropped.
    :param format: Response format marker.
    """

    where: Optional[str] = None
    clauses: Tuple[str, ...] = ()
    conditions: Tuple[Condition, ...] = ()
    include: Tuple[str, ...] = ()
    take: Optional[int] = None
    order_by: Tuple[str, ...] = ()
    format: str = FORMAT_JSON

    def compile(self) -> CompiledQuery:
        """
        Validate and compile the options.

        :raises ValidationError: On a malformed where clause, include name or take value.
        """
        clauses: List[str] = []
        if self.where is not None:
            clauses.append(compile_where_clause(self.where))
        clauses.extend(self.clauses)
        clauses.extend(c.compile() for c in self.conditions)
        includes = normalize_includes(self.include)
        order_by = tuple(strip_order_direction(f) for f in self.order_by if f and str(f).strip())
        return CompiledQuery(
            format=self.format or FORMAT_JSON,
            where=" and ".join(clauses) or None,
            include="[" + ",".join(includes) + "]" if includes else None,
            take=_validate_take(self.take),
            order_by=order_by,
        )


@dataclass(frozen=True)
class QueryBuilder:
    """
    Immutable fluent interface for building Targetprocess queries.

    :param auth: Authentication settings; API-key auth adds ``access_token`` to the
        serialised query.
    :type auth: AuthConfig or None

    Example:
        Build a standalone query::

            query = (QueryBuilder()
                     .where("EntityState.Name eq 'Open'")
                     .filter("Priority.Name", "eq", "High")
                     .include("Project", "AssignedUser")
                     .order_by("CreateDate desc")
                     .take(50))
            query.build_query_string()

        Build and execute a query (via client)::

            items = (client.query.builder("UserStory")
                     .preset("myOpenTasks", {"currentUser": "jane@example.com"})
                     .take(20)
                     .execute())
    """

    auth: Optional["AuthConfig"] = field(default=None, repr=False)
    options: QueryOptions = field(default_factory=QueryOptions)

    def _with(self, **changes: Any) -> "QueryBuilder":
        return replace(self, options=replace(self.options, **changes))

    def where(self, clause: str) -> "QueryBuilder":
        """
        AND a where clause onto the query.

        The clause is validated and compiled immediately, so a quote left open
        in one clause cannot absorb the clauses added after it.

        :param clause: Where clause, e.g. ``"EntityState.Name eq 'Open'"``.
        :type clause: str
        :return: New builder.
        :rtype: QueryBuilder
        :raises ValidationError: If the clause is empty or malformed.
        """
        return self._with(clauses=self.options.clauses + (compile_where_clause(clause),))

    def filter(self, field_name: str, operator: Any, value: Any = None) -> "QueryBuilder":
        """
        AND a structured condition onto the query.

        Unlike :meth:`where`, values keep their Python type, so dates, booleans,
        ``None`` and lists are formatted accordingly.

        Example::

            QueryBuilder().filter("CreateDate", "gte", datetime.date(2024, 1, 1))
            QueryBuilder().filter("AssignedUser", WhereOperator.IS_NULL)
        """
        condition = Condition(field_name, operator, value)
        return self._with(conditions=self.options.conditions + (condition,))

    def include(self, *fields: str) -> "QueryBuilder":
        """Request related fields to be embedded in each item."""
        normalize_includes(fields)
        return self._with(include=self.options.include + tuple(fields))

    def take(self, count: int) -> "QueryBuilder":
        """
        Limit the number of items returned.

        :raises ValidationError: Unless ``count`` is an integer from 1 to 1000.
        """
        return self._with(take=_validate_take(count))

    def order_by(self, *fields: str) -> "QueryBuilder":
        """Append sort fields. A trailing ``asc``/``desc`` is accepted and dropped."""
        for f in fields:
            strip_order_direction(f)
        return self._with(order_by=self.options.order_by + tuple(fields))

    def format(self, marker: str) -> "QueryBuilder":
        return self._with(format=marker)

    def preset(
        self,
        name: str,
        variables: Optional[Mapping[str, Any]] = None,
        today: Optional[_dt.date] = None,
    ) -> "QueryBuilder":
        """AND a named preset onto the query. See :func:`~Apptio.Targetprocess.models.presets.apply_preset`."""
        return self.where(apply_preset(name, variables, today))

    def reset(self) -> "QueryBuilder":
        return replace(self, options=QueryOptions())

    def clone(self) -> "QueryBuilder":
        return replace(self)

    def build(self) -> CompiledQuery:
        """
        Compile the accumulated options.

        :return: Compiled query.
        :rtype: CompiledQuery
        :raises ValidationError: If any option is invalid.
        """
        return self.options.compile()

    def build_params(self) -> List[Tuple[str, str]]:
        return self.build().to_params(self.auth)

    def build_query_string(self) -> str:
        return self.build().to_query_string(self.auth)

    def to_dict(self) -> Dict[str, Any]:
        """Compiled options as a plain dictionary, omitting unset values."""
        compiled = self.build()
        result: Dict[str, Any] = {"format": compiled.format}
        if compiled.where:
            result["where"] = compiled.where
        if compiled.include:
            result["include"] = compiled.include
        if compiled.take is not None:
            result["take"] = compiled.take
        if compiled.order_by:
            result["order_by"] = list(compiled.order_by)
        return result


@dataclass(frozen=True)
class BoundQueryBuilder(QueryBuilder):
    """
    Query builder bound to an entity type and a client, created by
    ``client.query.builder(entity_type)``.
    """

    entity_type: str = ""
    query_ops: Optional["QueryOperations"] = field(default=None, compare=False, repr=False)

    def execute(self) -> List[Dict[str, Any]]:
        """
        Validate the entity type, compile the query and run it.

        :return: Items returned by the service.
        :rtype: list[dict]
        :raises ValidationError: If the entity type or any option is invalid.
        :raises TransportError: If the request fails.
        """
        if self.query_ops is None:
            raise RuntimeError(
                "Cannot execute: query was not created via client.query.builder(). "
                "Use client.query.search() instead."
            )
        return self.query_ops.execute(self.entity_type, self)


def build_query(
    where: Optional[str] = None,
    include: Optional[Iterable[str]] = None,
    take: Optional[int] = None,
    order_by: Optional[Iterable[str]] = None,
    format: Optional[str] = None,
) -> CompiledQuery:
    """Compile a query from keyword options in one call."""
    return QueryOptions(
        where=where,
        include=tuple(include or ()),
        take=take,
        order_by=tuple(order_by or ()),
        format=format or FORMAT_JSON,
    ).compile()


__all__ = [
    "CompiledQuery",
    "QueryOptions",
    "QueryBuilder",
    "BoundQueryBuilder",
    "WhereOperator",
    "build_query",
]
