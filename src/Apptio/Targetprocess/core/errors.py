# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Structured errors for the Targetprocess client.

Every error raised by the client derives from :class:`TargetprocessError` and
carries a machine-readable ``code``/``subcode`` pair alongside the
human-readable message:

- :class:`ValidationError`: the caller's input was rejected before any request was sent.
- :class:`TransportError`: an HTTP call failed. :class:`TerminalTransportError` marks
  failures that waiting cannot fix (400/401 and other non-retryable statuses);
  :class:`RetryableTransportError` marks throttling, 5xx, network and timeout failures.
- :class:`NotFoundError`: a pagination key is unknown or expired.

:class:`CacheUnavailableWarning` is never raised. It categorises the soft failure
reported when entity-type validation falls back to the static registry.
"""

from __future__ import annotations

import datetime as _dt
from typing import Any, Dict, Optional

from ._error_codes import PAGINATION_KEY_NOT_FOUND


class TargetprocessError(Exception):
    """Base structured error for the Targetprocess client."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        subcode: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
        is_transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.subcode = subcode
        self.status_code = status_code
        self.details = details or {}
        self.source = source or "client"
        self.is_transient = is_transient
        self.timestamp = _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "subcode": self.subcode,
            "status_code": self.status_code,
            "details": self.details,
            "source": self.source,
            "is_transient": self.is_transient,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}(code={self.code!r}, subcode={self.subcode!r}, message={self.message!r})"


class ValidationError(TargetprocessError):
    def __init__(self, message: str, *, subcode: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="validation_error", subcode=subcode, details=details, source="client")


class NotFoundError(TargetprocessError):
    def __init__(self, message: str, *, subcode: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            code="not_found",
            subcode=subcode or PAGINATION_KEY_NOT_FOUND,
            details=details,
            source="client",
        )


class TransportError(TargetprocessError):
    """
    An HTTP call to the Targetprocess service failed.

    :param message: Human-readable description including the underlying failure.
    :type message: :class:`str`
    :param status_code: HTTP status of the failed response, or ``None`` for network-level failures.
    :type status_code: :class:`int` | None
    :param attempts: Number of attempts made before giving up.
    :type attempts: :class:`int`
    :param retry_after: Server-provided ``Retry-After`` value in seconds, if any.
    :type retry_after: :class:`int` | None
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        *,
        attempts: int = 1,
        is_transient: bool = False,
        subcode: Optional[str] = None,
        retry_after: Optional[int] = None,
        body_excerpt: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        d = details or {}
        if retry_after is not None:
            d["retry_after"] = retry_after
        if body_excerpt is not None:
            d["body_excerpt"] = body_excerpt
        super().__init__(
            message,
            code="transport_error",
            subcode=subcode,
            status_code=status_code,
            details=d,
            source="server" if status_code is not None else "client",
            is_transient=is_transient,
        )
        self.attempts = attempts
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["attempts"] = self.attempts
        return data


class TerminalTransportError(TransportError):
    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs: Any) -> None:
        kwargs["is_transient"] = False
        super().__init__(message, status_code, **kwargs)


class RetryableTransportError(TransportError):
    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs: Any) -> None:
        kwargs["is_transient"] = True
        super().__init__(message, status_code, **kwargs)


class CacheUnavailableWarning(UserWarning):
    """Entity-type metadata could not be fetched; validation used the static registry."""


__all__ = [
    "TargetprocessError",
    "ValidationError",
    "NotFoundError",
    "TransportError",
    "TerminalTransportError",
    "RetryableTransportError",
    "CacheUnavailableWarning",
]
