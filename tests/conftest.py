# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Shared pytest fixtures and configuration for Targetprocess client tests.

This module provides common test fixtures, response doubles, and configuration
that can be used across all test modules.
"""

import json

import pytest

from Apptio.Targetprocess.core._auth import AuthConfig
from Apptio.Targetprocess.core.config import TargetprocessConfig


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, body=None, headers=None, reason="OK"):
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = reason
        self._body = body
        if isinstance(body, (dict, list)):
            self.text = json.dumps(body)
        else:
            self.text = body or ""

    def json(self):
        if isinstance(self._body, (dict, list)):
            return self._body
        raise ValueError("non-json")


@pytest.fixture
def make_response():
    """Factory for FakeResponse objects."""
    return FakeResponse


@pytest.fixture
def basic_auth():
    """Basic auth for user:pass."""
    return AuthConfig.from_credentials("user", "pass")


@pytest.fixture
def apikey_auth():
    """API-key auth with a token that needs percent-encoding."""
    return AuthConfig.apikey("MjM6NjQ3=")


@pytest.fixture
def test_config():
    """Test configuration with fast, deterministic retries."""
    return TargetprocessConfig(
        http_retries=2,
        http_backoff=0.01,
        http_jitter=False,
        http_timeout=5,
    )


@pytest.fixture
def sample_base_url():
    """Standard test account URL."""
    return "https://acme.tpondemand.com"


@pytest.fixture
def sample_items():
    """Sample search items as returned by the service."""
    return [
        {
            "ResourceType": "UserStory",
            "Id": 101,
            "Name": "Login page",
            "CreateDate": "/Date(1700000000000+0100)/",
            "Project": {"ResourceType": "Project", "Id": 7, "Name": "Portal"},
        },
        {
            "ResourceType": "UserStory",
            "Id": 102,
            "Name": "O'Brien's report",
            "CreateDate": "/Date(1700086400000-0500)/",
            "Project": {"ResourceType": "Project", "Id": 7, "Name": "Portal"},
        },
    ]
