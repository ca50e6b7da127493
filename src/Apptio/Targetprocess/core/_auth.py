# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Authentication settings for the Targetprocess REST API.

The service accepts either HTTP Basic credentials, carried in the
``Authorization`` header, or an API access token, carried as a trailing
``access_token`` query parameter. Credentials never travel in a request body.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from ..common.constants import ACCESS_TOKEN_PARAM


class AuthType(str, Enum):
    BASIC = "basic"
    APIKEY = "apikey"


@dataclass(frozen=True)
class AuthConfig:
    """
    Discriminated authentication settings.

    :param type: ``AuthType.BASIC`` or ``AuthType.APIKEY``.
    :type type: AuthType
    :param token: Opaque token. For basic auth this is the base64-encoded
        ``user:password`` pair; for API-key auth it is the access token.
    :type token: str

    Example::

        auth = AuthConfig.from_credentials("jane", "s3cret")
        auth = AuthConfig.apikey("MjM6NjQ3...")
    """

    type: AuthType
    token: str = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.type, AuthType):
            object.__setattr__(self, "type", AuthType(self.type))
        if not self.token:
            raise ValueError("token is required.")

    @classmethod
    def basic(cls, token: str) -> "AuthConfig":
        return cls(AuthType.BASIC, token)

    @classmethod
    def apikey(cls, token: str) -> "AuthConfig":
        return cls(AuthType.APIKEY, token)

    @classmethod
    def from_credentials(cls, username: str, password: str) -> "AuthConfig":
        """Build basic auth from a username/password pair."""
        raw = f"{username}:{password}".encode("utf-8")
        return cls(AuthType.BASIC, base64.b64encode(raw).decode("ascii"))

    @property
    def is_apikey(self) -> bool:
        return self.type is AuthType.APIKEY

    def headers(self) -> Dict[str, str]:
        """Transport-level headers contributed by this auth mode."""
        if self.type is AuthType.BASIC:
            return {"Authorization": f"Basic {self.token}"}
        return {}

    def query_params(self) -> List[Tuple[str, str]]:
        """Query parameters contributed by this auth mode, appended after all others."""
        if self.type is AuthType.APIKEY:
            return [(ACCESS_TOKEN_PARAM, self.token)]
        return []


__all__ = ["AuthType", "AuthConfig"]
