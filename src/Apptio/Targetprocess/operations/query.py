# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Entity query operations namespace."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..core.pagination import Page
from ..models.query_builder import BoundQueryBuilder, QueryBuilder, build_query
from ..utils._pandas import records_to_dataframe

if TYPE_CHECKING:
    from ..client import TargetprocessClient


class QueryOperations:
    """
    Query operations for retrieving entities.

    Accessed via ``client.query``. Every operation validates the entity type
    first, then compiles the query, then calls the service; a bad type or a
    malformed filter never reaches the network.

    Example:
        Keyword search::

            stories = client.query.search(
                "UserStory",
                where="EntityState.Name eq 'Open' and Name contains 'login'",
                include=["Project", "AssignedUser"],
                order_by=["CreateDate desc"],
                take=25,
            )

        Fluent builder::

            bugs = (client.query.builder("Bug")
                    .preset("highPriorityUnassigned")
                    .include("Project")
                    .execute())

        Large results for display::

            page = client.query.search_text("UserStory", take=1000)
            print(page.text)
            print(page.footer())
            more = client.pages.page(page.key)
    """

    def __init__(self, client: "TargetprocessClient") -> None:
        """
        Initialize QueryOperations.

        :param client: Parent TargetprocessClient instance.
        :type client: TargetprocessClient
        """
        self._client = client

    def _require_entity_type(self, entity_type: str) -> str:
        return self._client.entity_types.validate(entity_type).raise_for_invalid()

    def search(
        self,
        entity_type: str,
        where: Optional[str] = None,
        include: Optional[Sequence[str]] = None,
        take: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Search entities of one type.

        :param entity_type: Entity type, e.g. ``"UserStory"``.
        :type entity_type: str
        :param where: Where clause, e.g. ``"EntityState.Name eq 'Open'"``.
        :type where: str or None
        :param include: Related fields to embed, e.g. ``["Project", "AssignedUser"]``.
        :type include: list[str] or None
        :param take: Maximum number of items, 1 to 1000.
        :type take: int or None
        :param order_by: Sort fields; ``asc``/``desc`` suffixes are dropped.
        :type order_by: list[str] or None
        :return: Matching items as returned by the service.
        :rtype: list[dict]

        :raises ~Apptio.Targetprocess.core.errors.ValidationError: If the entity type is
            unknown or a query option is malformed.
        :raises ~Apptio.Targetprocess.core.errors.TransportError: If the request fails
            terminally or retries are exhausted.
        """
        self._require_entity_type(entity_type)
        query = build_query(where=where, include=include, take=take, order_by=order_by)
        return self._client._get_tp()._search_entities(entity_type, query)

    def execute(self, entity_type: str, query: QueryBuilder) -> List[Dict[str, Any]]:
        """Run a :class:`QueryBuilder` against ``entity_type``."""
        self._require_entity_type(entity_type)
        return self._client._get_tp()._search_entities(entity_type, query.build())

    def iter_pages(
        self,
        entity_type: str,
        where: Optional[str] = None,
        include: Optional[Sequence[str]] = None,
        take: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> Iterable[List[Dict[str, Any]]]:
        """
        Like :meth:`search`, but follows the service's ``Next`` links and yields
        one list of items per response. ``take`` sets the size of each response.

        Validation happens immediately; requests are made as the generator is consumed.

        Example::

            for items in client.query.iter_pages("Bug", where="Severity.Name eq 'Blocking'", take=100):
                for bug in items:
                    print(bug["Id"], bug["Name"])
        """
        self._require_entity_type(entity_type)
        query = build_query(where=where, include=include, take=take, order_by=order_by)
        tp = self._client._get_tp()

        def _paged() -> Iterable[List[Dict[str, Any]]]:
            yield from tp._iter_search_pages(entity_type, query)

        return _paged()

    def get(
        self,
        entity_type: str,
        entity_id: int,
        include: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Fetch one entity by id.

        :param entity_type: Entity type, e.g. ``"Task"``.
        :type entity_type: str
        :param entity_id: Positive integer id.
        :type entity_id: int
        :param include: Related fields to embed.
        :type include: list[str] or None
        :return: The entity.
        :rtype: dict

        :raises ~Apptio.Targetprocess.core.errors.ValidationError: If the type or id is invalid.
        :raises ~Apptio.Targetprocess.core.errors.TransportError: If the request fails,
            including 404 for a missing entity.
        """
        self._require_entity_type(entity_type)
        return self._client._get_tp()._get_entity(entity_type, entity_id, include)

    def builder(self, entity_type: str) -> BoundQueryBuilder:
        """
        Create an immutable query builder bound to ``entity_type``.

        :param entity_type: Entity type, e.g. ``"Feature"``.
        :type entity_type: str
        :return: Builder whose ``execute()`` runs the query through this client.
        :rtype: BoundQueryBuilder
        """
        return BoundQueryBuilder(auth=self._client.auth, entity_type=entity_type, query_ops=self)

    def search_text(
        self,
        entity_type: str,
        where: Optional[str] = None,
        include: Optional[Sequence[str]] = None,
        take: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> Page:
        """
        Search and return the pretty-printed JSON result as the first page of
        ``client.pages``. Use ``page.key`` to fetch the rest.

        :rtype: ~Apptio.Targetprocess.core.pagination.Page
        """
        items = self.search(entity_type, where=where, include=include, take=take, order_by=order_by)
        text = json.dumps(items, indent=2, ensure_ascii=False)
        return self._client.pages.store(text)

    def search_dataframe(
        self,
        entity_type: str,
        where: Optional[str] = None,
        include: Optional[Sequence[str]] = None,
        take: Optional[int] = None,
        order_by: Optional[Sequence[str]] = None,
    ) -> pd.DataFrame:
        """
        Search and return the items as a flattened DataFrame.

        Nested objects become dotted columns (``Project.Name``) and Targetprocess
        date strings become UTC timestamps.

        Example::

            df = client.query.search_dataframe("UserStory", include=["Project", "EntityState"], take=500)
            df.groupby("EntityState.Name").size()
        """
        items = self.search(entity_type, where=where, include=include, take=take, order_by=order_by)
        return records_to_dataframe(items)


__all__ = ["QueryOperations"]
