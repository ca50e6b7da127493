# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Targetprocess REST API v1 client: entity search, lookup and type discovery."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote

import requests

from ..common.constants import (
    ACCESS_TOKEN_PARAM,
    API_PATH,
    ENTITY_TYPES_ENDPOINT,
    ENTITY_TYPES_TAKE,
)
from ..core._auth import AuthConfig
from ..core._error_codes import (
    TRANSPORT_INVALID_RESPONSE,
    TRANSPORT_NETWORK,
    TRANSPORT_TIMEOUT,
    VALIDATION_ENTITY_ID,
    http_subcode,
)
from ..core._http import RetryPolicy, _HttpClient
from ..core.config import TargetprocessConfig
from ..core.errors import (
    RetryableTransportError,
    TerminalTransportError,
    TransportError,
    ValidationError,
)
from ..core.telemetry import create_telemetry_manager
from ..models.entity_registry import endpoint_for_entity_type
from ..models.query_builder import CompiledQuery, QueryOptions

logger = logging.getLogger(__name__)

_BODY_EXCERPT_CHARS = 200


def _normalize_base_url(base_url: str) -> str:
    """Accept ``acme.tpondemand.com``, ``https://acme.tpondemand.com/`` or a URL ending in ``/api/v1``."""
    url = (base_url or "").strip().rstrip("/")
    if not url:
        raise ValueError("base_url is required.")
    if "://" not in url:
        url = f"https://{url}"
    if url.endswith(API_PATH):
        url = url[: -len(API_PATH)]
    return url


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    # Only delta-seconds; HTTP-date values fall back to computed backoff
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isdigit() else None


def _extract_error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("Message", "ErrorMessage", "Description"):
            msg = body.get(key)
            if isinstance(msg, str) and msg:
                return msg
    return response.reason or ""


def validate_entity_id(entity_id: Any) -> int:
    if isinstance(entity_id, bool) or not isinstance(entity_id, int) or entity_id <= 0:
        raise ValidationError(
            f"Entity ID must be a positive integer, got {entity_id!r}",
            subcode=VALIDATION_ENTITY_ID,
        )
    return entity_id


class _TargetprocessClient:
    """
    Targetprocess REST API v1 client.

    Each public-facing call runs under telemetry and the retry policy. Query
    strings are produced by :class:`~Apptio.Targetprocess.models.query_builder.CompiledQuery`
    so API-key auth always contributes a trailing ``access_token``.

    :param base_url: Account URL or bare domain, e.g. ``"acme.tpondemand.com"``.
    :type base_url: str
    :param auth: Authentication settings.
    :type auth: ~Apptio.Targetprocess.core._auth.AuthConfig
    :param config: Optional client configuration.
    :type config: ~Apptio.Targetprocess.core.config.TargetprocessConfig or None
    :param session: Optional ``requests.Session`` for connection pooling.
    :type session: requests.Session or None
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthConfig,
        config: Optional[TargetprocessConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = _normalize_base_url(base_url)
        self.api = f"{self.base_url}{API_PATH}"
        self.auth = auth
        self.config = config or TargetprocessConfig.from_env()
        self._http = _HttpClient(
            policy=RetryPolicy.from_config(self.config),
            timeout=self.config.http_timeout,
            session=session,
        )
        self._telemetry = create_telemetry_manager(self.config.telemetry)

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        headers.update(self.auth.headers())
        return headers

    def _redact(self, text: str) -> str:
        if not self.auth.is_apikey:
            return text
        for form in (quote(self.auth.token, safe=""), self.auth.token):
            text = text.replace(form, "***")
        return text

    def _with_access_token(self, url: str) -> str:
        """Append ``access_token`` to a service-provided URL that lacks it."""
        if not self.auth.is_apikey or f"{ACCESS_TOKEN_PARAM}=" in url:
            return url
        sep = "&" if "?" in url else "?"
        return f"{url}{sep}{ACCESS_TOKEN_PARAM}={quote(self.auth.token, safe='')}"

    # ----------------------------- Transport -----------------------------
    def _raise_for_status(self, response: requests.Response, context: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        message = _extract_error_message(response)
        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
        error_cls = RetryableTransportError if self._http.policy.is_retryable_status(status) else TerminalTransportError
        raise error_cls(
            self._redact(f"{context} failed: {status} - {message}"),
            status,
            subcode=http_subcode(status),
            retry_after=retry_after,
            body_excerpt=self._redact((response.text or "")[:_BODY_EXCERPT_CHARS]),
        )

    def _send(self, method: str, url: str, context: str) -> Any:
        """Issue one attempt and decode the JSON body."""
        try:
            response = self._http._request(method, url, headers=self._headers())
        except requests.exceptions.Timeout as exc:
            raise RetryableTransportError(
                self._redact(f"{context} timed out: {exc}"), subcode=TRANSPORT_TIMEOUT
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise RetryableTransportError(
                self._redact(f"{context} failed: {exc}"), subcode=TRANSPORT_NETWORK
            ) from exc
        self._raise_for_status(response, context)
        try:
            return response.json()
        except ValueError as exc:
            raise TerminalTransportError(
                f"{context} returned a response that is not valid JSON",
                response.status_code,
                subcode=TRANSPORT_INVALID_RESPONSE,
                body_excerpt=self._redact((response.text or "")[:_BODY_EXCERPT_CHARS]),
            ) from exc

    def _call(
        self,
        operation: str,
        method: str,
        url: str,
        context: str,
        entity_type: Optional[str] = None,
    ) -> Any:
        """Run one logical request, retries included, under telemetry."""
        attempts = 0

        def _attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return self._send(method, url, context)

        trace_url = url.split("?", 1)[0]
        with self._telemetry.trace_request(operation, method, trace_url, str(uuid.uuid4()), entity_type) as ctx:
            try:
                data = self._http._execute_with_retry(_attempt, context)
            except TransportError as exc:
                self._telemetry.record_response(
                    ctx, exc.status_code or 0, error=exc, retry_count=max(attempts - 1, 0)
                )
                raise
            self._telemetry.record_response(ctx, 200, retry_count=attempts - 1)
        return data

    def _get(
        self,
        operation: str,
        endpoint: str,
        query: CompiledQuery,
        entity_type: Optional[str] = None,
    ) -> Any:
        url = f"{self.api}/{endpoint}?{query.to_query_string(self.auth)}"
        return self._call(operation, "GET", url, f"GET {endpoint}", entity_type)

    @staticmethod
    def _items(data: Any) -> List[Dict[str, Any]]:
        items = data.get("Items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []
        return [x for x in items if isinstance(x, dict)]

    # ----------------------------- Queries -------------------------------
    def _search_entities(self, entity_type: str, query: CompiledQuery) -> List[Dict[str, Any]]:
        """
        Run a compiled query against an entity collection.

        :param entity_type: Validated entity type, e.g. ``"UserStory"``.
        :param query: Compiled query options.
        :return: The ``Items`` of the response; empty if the service sent none.
        """
        data = self._get("query.search", endpoint_for_entity_type(entity_type), query, entity_type)
        return self._items(data)

    def _iter_search_pages(self, entity_type: str, query: CompiledQuery) -> Iterable[List[Dict[str, Any]]]:
        """
        Yield each page of a query, following the service's ``Next`` links.

        Each yielded page is the ``Items`` list of one response. Empty pages are skipped.
        """
        endpoint = endpoint_for_entity_type(entity_type)
        data = self._get("query.search", endpoint, query, entity_type)
        items = self._items(data)
        if items:
            yield items

        next_link = data.get("Next") if isinstance(data, dict) else None
        while next_link:
            data = self._call(
                "query.search",
                "GET",
                self._with_access_token(next_link),
                f"GET {endpoint}",
                entity_type,
            )
            items = self._items(data)
            if items:
                yield items
            next_link = data.get("Next") if isinstance(data, dict) else None

    def _get_entity(
        self,
        entity_type: str,
        entity_id: int,
        include: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Fetch one entity by its positive integer id."""
        validate_entity_id(entity_id)
        query = QueryOptions(include=tuple(include or ())).compile()
        endpoint = f"{endpoint_for_entity_type(entity_type)}/{entity_id}"
        data = self._get("query.get", endpoint, query, entity_type)
        if not isinstance(data, dict):
            raise TerminalTransportError(
                f"GET {endpoint} returned an unexpected payload",
                200,
                subcode=TRANSPORT_INVALID_RESPONSE,
            )
        return data

    def _fetch_entity_types(self) -> List[str]:
        """Names of the entity types the service exposes."""
        query = CompiledQuery(include="[Name]", take=ENTITY_TYPES_TAKE)
        data = self._get("entity_types.fetch", ENTITY_TYPES_ENDPOINT, query)
        return [item["Name"] for item in self._items(data) if isinstance(item.get("Name"), str) and item["Name"]]

    def _test_connection(self) -> bool:
        """Return True if the service answers an authenticated request."""
        try:
            self._get("connection.test", ENTITY_TYPES_ENDPOINT, CompiledQuery(take=1))
        except TransportError as exc:
            logger.info("Connection test failed: %s", exc)
            return False
        return True


__all__ = ["_TargetprocessClient", "validate_entity_id"]
