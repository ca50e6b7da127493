# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

import base64

import pytest

from Apptio.Targetprocess.core._auth import AuthConfig, AuthType
from Apptio.Targetprocess.core.config import DEFAULT_RETRYABLE_STATUS_CODES, TargetprocessConfig


class TestAuthConfig:
    def test_basic_header(self):
        auth = AuthConfig.basic("dXNlcjpwYXNz")
        assert auth.type is AuthType.BASIC
        assert auth.headers() == {"Authorization": "Basic dXNlcjpwYXNz"}
        assert auth.query_params() == []
        assert auth.is_apikey is False

    def test_from_credentials_encodes_pair(self):
        auth = AuthConfig.from_credentials("jane", "s3cret")
        assert base64.b64decode(auth.token).decode() == "jane:s3cret"

    def test_apikey_query_param(self):
        auth = AuthConfig.apikey("tok")
        assert auth.headers() == {}
        assert auth.query_params() == [("access_token", "tok")]
        assert auth.is_apikey is True

    def test_type_coerced_from_string(self):
        assert AuthConfig("apikey", "tok").type is AuthType.APIKEY

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            AuthConfig("bearer", "tok")

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            AuthConfig.apikey("")

    def test_token_hidden_from_repr(self):
        assert "secret-token" not in repr(AuthConfig.apikey("secret-token"))


class TestTargetprocessConfig:
    def test_from_env_defaults_are_unset(self):
        config = TargetprocessConfig.from_env()
        assert config.http_retries is None
        assert config.http_timeout is None
        assert config.page_size is None
        assert config.telemetry is None

    def test_immutability(self):
        config = TargetprocessConfig(http_retries=1)
        with pytest.raises(AttributeError):
            config.http_retries = 2

    def test_default_retryable_statuses(self):
        assert DEFAULT_RETRYABLE_STATUS_CODES == frozenset({429, 500, 502, 503, 504})
