# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Optional

from .telemetry import TelemetryConfig

DEFAULT_RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class TargetprocessConfig:
    """
    Configuration settings for Targetprocess client operations.

    :param http_retries: Maximum number of retries after the first attempt (default: 3).
    :type http_retries: int or None
    :param http_backoff: Initial delay in seconds before the first retry (default: 1.0).
    :type http_backoff: float or None
    :param http_backoff_factor: Multiplier applied to the delay after each attempt (default: 2.0).
    :type http_backoff_factor: float or None
    :param http_max_backoff: Maximum delay between retry attempts in seconds (default: 30.0).
    :type http_max_backoff: float or None
    :param http_timeout: Per-attempt request timeout in seconds (default: method-dependent).
    :type http_timeout: float or None
    :param http_jitter: Whether to scale retry delays by a random factor in ``[0.85, 1.15]`` (default: True).
    :type http_jitter: bool or None
    :param http_retryable_status_codes: HTTP statuses treated as transient (default: 429, 500, 502, 503, 504).
        400 and 401 are never retried, even if listed here.
    :type http_retryable_status_codes: frozenset[int] or None
    :param page_size: Maximum characters per page served by the result paginator (default: 4000).
    :type page_size: int or None
    :param pagination_ttl: Seconds a paginated result stays available (default: 1800).
    :type pagination_ttl: float or None
    :param telemetry: Optional telemetry settings. Telemetry is disabled when ``None``.
    :type telemetry: ~Apptio.Targetprocess.core.telemetry.TelemetryConfig or None
    """

    # HTTP retry and resilience configuration
    http_retries: Optional[int] = None
    http_backoff: Optional[float] = None
    http_backoff_factor: Optional[float] = None
    http_max_backoff: Optional[float] = None
    http_timeout: Optional[float] = None
    http_jitter: Optional[bool] = None
    http_retryable_status_codes: Optional[FrozenSet[int]] = None

    # Result pagination
    page_size: Optional[int] = None
    pagination_ttl: Optional[float] = None

    telemetry: Optional[TelemetryConfig] = None

    @classmethod
    def from_env(cls) -> "TargetprocessConfig":
        """
        Create a configuration instance with default settings.

        :return: Configuration instance with default values.
        :rtype: ~Apptio.Targetprocess.core.config.TargetprocessConfig
        """
        # Environment-free defaults
        return cls(
            http_retries=None,  # Will default to 3 in RetryPolicy
            http_backoff=None,  # Will default to 1.0 in RetryPolicy
            http_backoff_factor=None,  # Will default to 2.0 in RetryPolicy
            http_max_backoff=None,  # Will default to 30.0 in RetryPolicy
            http_timeout=None,  # Will use method-dependent defaults in _HttpClient
            http_jitter=None,  # Will default to True in RetryPolicy
            http_retryable_status_codes=None,  # Will default to 429/500/502/503/504
            page_size=None,  # Will default to 4000 in ResultPaginator
            pagination_ttl=None,  # Will default to 30 minutes in ResultPaginator
            telemetry=None,
        )
