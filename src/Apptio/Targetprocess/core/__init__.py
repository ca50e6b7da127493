# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Core infrastructure components for the Targetprocess client.

This module contains the foundational components including authentication,
configuration, the retrying HTTP transport, result pagination, and error handling.
"""

from ._auth import AuthConfig, AuthType
from .config import TargetprocessConfig
from .errors import (
    TargetprocessError,
    ValidationError,
    NotFoundError,
    TransportError,
    TerminalTransportError,
    RetryableTransportError,
    CacheUnavailableWarning,
)
from .pagination import Page, ResultPaginator

__all__ = [
    "AuthConfig",
    "AuthType",
    "TargetprocessConfig",
    "TargetprocessError",
    "ValidationError",
    "NotFoundError",
    "TransportError",
    "TerminalTransportError",
    "RetryableTransportError",
    "CacheUnavailableWarning",
    "Page",
    "ResultPaginator",
]
