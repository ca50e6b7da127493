# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

from __future__ import annotations

from typing import Optional

import requests

from .core._auth import AuthConfig
from .core.config import TargetprocessConfig
from .core.pagination import ResultPaginator
from .data._entity_types import EntityTypeCache
from .data._targetprocess import _TargetprocessClient, _normalize_base_url
from .operations.query import QueryOperations


class TargetprocessClient:
    """
    High-level client for querying Targetprocess.

    The client delegates HTTP work to an internal
    :class:`~Apptio.Targetprocess.data._targetprocess._TargetprocessClient`, created
    lazily on first use, and exposes three namespaces:

    - ``client.query``: entity search, lookup and the fluent builder
    - ``client.entity_types``: the shared, single-flight cache of valid entity types
    - ``client.pages``: keyed pagination of large text results

    **Context Manager Support (Recommended)**:
        Using the client as a context manager enables connection pooling and
        releases the session on exit::

            with TargetprocessClient("acme.tpondemand.com", AuthConfig.apikey(token)) as client:
                stories = client.query.search("UserStory", where="EntityState.Name eq 'Open'")

    **Without Context Manager**:
        Call ``close()`` when done::

            client = TargetprocessClient("acme.tpondemand.com", AuthConfig.from_credentials(user, password))
            try:
                bug = client.query.get("Bug", 4242, include=["Project"])
            finally:
                client.close()

    :param base_url: Account URL or bare domain, e.g. ``"https://acme.tpondemand.com"``.
    :type base_url: :class:`str`
    :param auth: Basic or API-key authentication settings.
    :type auth: ~Apptio.Targetprocess.core._auth.AuthConfig
    :param config: Optional retry, timeout, pagination and telemetry settings.
    :type config: ~Apptio.Targetprocess.core.config.TargetprocessConfig or None

    :raises ValueError: If ``base_url`` is missing or empty after trimming.
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthConfig,
        config: Optional[TargetprocessConfig] = None,
    ) -> None:
        if not isinstance(auth, AuthConfig):
            raise TypeError("auth must be an AuthConfig")
        self.auth = auth
        self._base_url = _normalize_base_url(base_url)
        self._config = config or TargetprocessConfig.from_env()
        self._tp: Optional[_TargetprocessClient] = None
        self._session: Optional[requests.Session] = None
        self._owns_session: bool = False

        self.query = QueryOperations(self)
        self.entity_types = EntityTypeCache(self._fetch_entity_types)
        self.pages = ResultPaginator(
            page_size=self._config.page_size,
            ttl=self._config.pagination_ttl,
        )

    def __enter__(self) -> "TargetprocessClient":
        """
        Enter the context manager.

        Creates an HTTP session for connection pooling. All operations within
        the context reuse it.
        """
        if self._session is None:
            self._session = requests.Session()
            self._owns_session = True
            if self._tp is not None:
                # Rebuild so the pooled session is picked up
                self._tp.close()
                self._tp = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """
        Close the client and release resources.

        Safe to call multiple times. Cached entity types and pages survive.
        """
        if self._tp is not None:
            self._tp.close()
            self._tp = None
        if self._session is not None and self._owns_session:
            self._session.close()
        self._session = None
        self._owns_session = False

    def _get_tp(self) -> _TargetprocessClient:
        """
        Get or create the internal service client.

        When a session exists (from the context manager), it is passed on for
        connection pooling.
        """
        if self._tp is None:
            self._tp = _TargetprocessClient(
                self._base_url,
                self.auth,
                self._config,
                session=self._session,
            )
        return self._tp

    def _fetch_entity_types(self):
        return self._get_tp()._fetch_entity_types()

    def test_connection(self) -> bool:
        """Return True if the service accepts the configured credentials."""
        return self._get_tp()._test_connection()


__all__ = ["TargetprocessClient"]
