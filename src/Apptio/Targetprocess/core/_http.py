# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
HTTP client with retry policy, timeout handling, and optional session support.

This module provides :class:`RetryPolicy`, the immutable description of how
failed calls are retried, and :class:`~Apptio.Targetprocess.core._http._HttpClient`,
a wrapper around the requests library that issues single attempts with
per-method default timeouts and runs arbitrary request-executing callables under
the retry policy.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Optional, TypeVar

import requests

from ._error_codes import TRANSPORT_RETRY_EXHAUSTED
from .config import DEFAULT_RETRYABLE_STATUS_CODES, TargetprocessConfig
from .errors import (
    NotFoundError,
    RetryableTransportError,
    TerminalTransportError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Invalid requests and invalid credentials cannot be fixed by waiting
NEVER_RETRY_STATUS_CODES: FrozenSet[int] = frozenset({400, 401})

JITTER_LOW = 0.85
JITTER_HIGH = 1.15


@dataclass(frozen=True)
class RetryPolicy:
    """
    Immutable retry configuration.

    :param max_retries: Retries allowed after the first attempt; a call is attempted
        at most ``max_retries + 1`` times.
    :type max_retries: int
    :param initial_delay: Delay in seconds before the first retry.
    :type initial_delay: float
    :param max_delay: Upper bound in seconds for any single delay.
    :type max_delay: float
    :param factor: Exponential growth factor, strictly greater than 1.
    :type factor: float
    :param retryable_status_codes: HTTP statuses considered transient.
    :type retryable_status_codes: frozenset[int]
    :param jitter: Scale each delay by a uniform random factor in ``[0.85, 1.15]``.
    :type jitter: bool
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    factor: float = 2.0
    retryable_status_codes: FrozenSet[int] = DEFAULT_RETRYABLE_STATUS_CODES
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")
        if self.factor <= 1:
            raise ValueError("factor must be greater than 1")
        object.__setattr__(self, "retryable_status_codes", frozenset(self.retryable_status_codes))

    @classmethod
    def from_config(cls, config: TargetprocessConfig) -> "RetryPolicy":
        defaults = cls()
        return cls(
            max_retries=config.http_retries if config.http_retries is not None else defaults.max_retries,
            initial_delay=config.http_backoff if config.http_backoff is not None else defaults.initial_delay,
            max_delay=config.http_max_backoff if config.http_max_backoff is not None else defaults.max_delay,
            factor=config.http_backoff_factor if config.http_backoff_factor is not None else defaults.factor,
            retryable_status_codes=(
                config.http_retryable_status_codes
                if config.http_retryable_status_codes is not None
                else defaults.retryable_status_codes
            ),
            jitter=config.http_jitter if config.http_jitter is not None else defaults.jitter,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retryable_status(self, status_code: Optional[int]) -> bool:
        """Return True when a failure with this status may succeed on a later attempt.

        Failures without a status (network errors, timeouts) are assumed transient.
        """
        if status_code is None:
            return True
        if status_code in NEVER_RETRY_STATUS_CODES:
            return False
        return status_code in self.retryable_status_codes

    def delay_envelope(self, attempt: int) -> float:
        """Jitter-free delay before retry ``attempt`` (zero-based); monotone and capped."""
        try:
            delay = self.initial_delay * (self.factor**attempt)
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def compute_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay in seconds before retry ``attempt`` (zero-based).

        A server-provided ``Retry-After`` replaces the exponential delay. Either way
        the result never exceeds ``max_delay``.
        """
        if retry_after is not None:
            return min(max(float(retry_after), 0.0), self.max_delay)
        try:
            delay = self.initial_delay * (self.factor**attempt)
        except OverflowError:
            return self.max_delay
        if self.jitter:
            delay *= random.uniform(JITTER_LOW, JITTER_HIGH)
        return min(delay, self.max_delay)


def _status_code_of(error: BaseException) -> Optional[int]:
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


class _HttpClient:
    """
    HTTP client with a retry policy, timeout handling, and optional session support.

    :param policy: Retry policy applied by :meth:`_execute_with_retry`. Defaults to :class:`RetryPolicy`.
    :type policy: :class:`RetryPolicy` | None
    :param timeout: Default request timeout in seconds. If None, uses per-method defaults.
    :type timeout: :class:`float` | None
    :param session: Optional requests.Session for connection pooling.
    :type session: :class:`requests.Session` | None
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self.default_timeout: Optional[float] = timeout
        self._session = session

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Issue a single HTTP request with timeout management.

        Applies default timeouts based on HTTP method (120s for POST/DELETE, 10s for others).
        Retrying is the caller's concern, see :meth:`_execute_with_retry`.

        :param method: HTTP method (GET, POST, PUT, DELETE, etc.).
        :type method: :class:`str`
        :param url: Target URL for the request, query string included.
        :type url: :class:`str`
        :param kwargs: Additional arguments passed to ``requests.request()`` or
            ``session.request()``, including headers, json, etc.
        :return: HTTP response object.
        :rtype: :class:`requests.Response`
        :raises requests.exceptions.RequestException: On network failure or timeout.
        """
        if "timeout" not in kwargs:
            if self.default_timeout is not None:
                kwargs["timeout"] = self.default_timeout
            else:
                m = (method or "").lower()
                kwargs["timeout"] = 120 if m in ("post", "delete") else 10

        if self._session is not None:
            return self._session.request(method, url, **kwargs)
        return requests.request(method, url, **kwargs)

    def _execute_with_retry(self, operation: Callable[[], T], context: str) -> T:
        """
        Run ``operation`` under the retry policy.

        Failures whose status code is retryable (or absent) are retried after
        ``min(initial_delay * factor**n * jitter, max_delay)`` seconds until
        ``max_retries`` retries have been spent. 400 and 401 are never retried.

        :param operation: Zero-argument callable executing one attempt.
        :param context: Short description used in error messages, e.g. ``"search UserStorys"``.
        :return: The operation's return value.
        :raises RetryableTransportError: When all attempts failed with transient errors.
            The message carries the final error and the attempt count.
        :raises TransportError: When an attempt failed with a terminal error; ``attempts``
            records how many attempts were made.
        :raises ValidationError: Propagated unchanged from the operation.
        """
        max_attempts = self.policy.max_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                return operation()
            except (ValidationError, NotFoundError):
                raise
            except Exception as exc:
                status = _status_code_of(exc)
                if not self.policy.is_retryable_status(status):
                    if isinstance(exc, TransportError):
                        exc.attempts = attempt
                        raise
                    raise TerminalTransportError(
                        f"{context} failed: {exc}", status, attempts=attempt
                    ) from exc

                retry_after = getattr(exc, "retry_after", None)
                if attempt >= max_attempts:
                    raise RetryableTransportError(
                        f"Failed to {context} after {attempt} attempts: {exc}",
                        status,
                        attempts=attempt,
                        subcode=TRANSPORT_RETRY_EXHAUSTED,
                        retry_after=retry_after,
                    ) from exc

                delay = self.policy.compute_delay(attempt - 1, retry_after)
                logger.warning(
                    "%s failed on attempt %d of %d (status=%s): %s; retrying in %.2fs",
                    context,
                    attempt,
                    max_attempts,
                    status,
                    exc,
                    delay,
                )
                time.sleep(delay)

    def close(self) -> None:
        """
        Close the HTTP client and release resources.

        If a session was provided, this method closes it. Safe to call multiple times.
        """
        if self._session is not None:
            self._session.close()
            self._session = None
