# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Unit tests for TargetprocessClient context manager support."""

import unittest
from unittest.mock import MagicMock

import requests

from Apptio.Targetprocess import AuthConfig, TargetprocessClient


class TestContextManager(unittest.TestCase):
    """Test context manager support on TargetprocessClient."""

    def setUp(self):
        """Set up test fixtures."""
        self.auth = AuthConfig.apikey("token")
        self.base_url = "https://acme.tpondemand.com"

    def test_enter_creates_session(self):
        """Test that __enter__ creates a session."""
        client = TargetprocessClient(self.base_url, self.auth)
        self.assertIsNone(client._session)

        result = client.__enter__()

        self.assertIsInstance(client._session, requests.Session)
        self.assertTrue(client._owns_session)
        self.assertIs(result, client)
        client.close()

    def test_exit_closes_session(self):
        """Test that __exit__ closes the session."""
        client = TargetprocessClient(self.base_url, self.auth)
        client.__enter__()

        mock_session = MagicMock(spec=requests.Session)
        client._session = mock_session
        client._owns_session = True

        client.__exit__(None, None, None)

        mock_session.close.assert_called_once()
        self.assertIsNone(client._session)
        self.assertFalse(client._owns_session)

    def test_context_manager_protocol(self):
        """Test full context manager protocol."""
        with TargetprocessClient(self.base_url, self.auth) as client:
            self.assertIsInstance(client, TargetprocessClient)
            self.assertIsInstance(client._session, requests.Session)

        self.assertIsNone(client._session)

    def test_service_client_uses_pooled_session(self):
        """The internal client created inside the context shares the session."""
        with TargetprocessClient(self.base_url, self.auth) as client:
            tp = client._get_tp()
            self.assertIs(tp._http._session, client._session)

    def test_enter_rebuilds_existing_service_client(self):
        """A service client built before __enter__ is replaced by a pooled one."""
        client = TargetprocessClient(self.base_url, self.auth)
        before = client._get_tp()
        self.assertIsNone(before._http._session)

        with client:
            after = client._get_tp()
            self.assertIsNot(after, before)
            self.assertIs(after._http._session, client._session)

    def test_close_method(self):
        """Test explicit close() method."""
        client = TargetprocessClient(self.base_url, self.auth)
        client.__enter__()
        client._get_tp()

        client.close()

        self.assertIsNone(client._session)
        self.assertIsNone(client._tp)
        self.assertFalse(client._owns_session)

    def test_close_idempotent(self):
        """Test that close() can be called multiple times safely."""
        client = TargetprocessClient(self.base_url, self.auth)
        client.__enter__()

        client.close()
        client.close()
        client.close()

    def test_close_without_enter(self):
        """Test that close() works without entering the context."""
        client = TargetprocessClient(self.base_url, self.auth)
        client.close()
        self.assertIsNone(client._session)

    def test_exception_inside_context_still_closes(self):
        """The session is released even when the block raises."""
        client = TargetprocessClient(self.base_url, self.auth)
        with self.assertRaises(RuntimeError):
            with client:
                raise RuntimeError("boom")
        self.assertIsNone(client._session)

    def test_cached_state_survives_close(self):
        """Entity types and stored pages outlive the session."""
        client = TargetprocessClient(self.base_url, self.auth)
        page = client.pages.store("result")
        client.close()
        self.assertEqual(client.pages.all(page.key), "result")

    def test_reentry_after_close(self):
        """A closed client can be entered again."""
        client = TargetprocessClient(self.base_url, self.auth)
        with client:
            pass
        with client:
            self.assertIsInstance(client._session, requests.Session)
        self.assertIsNone(client._session)


if __name__ == "__main__":
    unittest.main()
