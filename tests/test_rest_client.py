# tests/test_rest_client.py

"""Tests for the hosted REST data client and its change poller."""

import unittest
from typing import Any
from unittest.mock import MagicMock, patch

from price_tracker.data.client import (
    DELETE,
    INSERT,
    PRODUCTS,
    UPDATE,
    AuthError,
    AuthRequiredError,
    DataClientError,
    Order,
)
from price_tracker.data.rest_client import ChangePoller, RestDataClient


def _response(status: int = 200, body: Any = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.content = b"" if body is None else b"x"
    resp.json.return_value = body
    resp.text = "" if body is None else str(body)
    return resp


class TestRestDataClient(unittest.TestCase):
    """HTTP wire format of the REST client."""

    def setUp(self) -> None:
        patcher = patch("price_tracker.data.rest_client.curl_requests.Session")
        self.mock_session_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.session = self.mock_session_cls.return_value
        self.client = RestDataClient(
            base_url="https://demo.supabase.co/", anon_key="anon-key",
        )

    def _call(self, index: int = -1) -> tuple[str, str, dict[str, Any]]:
        call = self.session.request.call_args_list[index]
        method, url = call.args
        return method, url, call.kwargs

    def test_requires_configuration(self) -> None:
        """Missing URL or key is a configuration error."""
        with patch("price_tracker.data.rest_client.Settings") as mock_settings:
            mock_settings.SUPABASE_URL = ""
            mock_settings.SUPABASE_ANON_KEY = ""
            with self.assertRaises(DataClientError):
                RestDataClient()

    def test_sign_in_stores_token(self) -> None:
        """A password grant starts a session used on later calls."""
        self.session.request.return_value = _response(200, {
            "access_token": "jwt-123",
            "user": {"id": "u1", "email": "ana@example.com"},
        })
        user = self.client.sign_in("ana@example.com", "secret123")
        self.assertEqual(user.id, "u1")

        method, url, kwargs = self._call()
        self.assertEqual(method, "POST")
        self.assertEqual(url, "https://demo.supabase.co/auth/v1/token")
        self.assertEqual(kwargs["params"], {"grant_type": "password"})

        self.session.request.return_value = _response(200, [])
        self.client.query(PRODUCTS)
        _, _, kwargs = self._call()
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer jwt-123")
        self.assertEqual(kwargs["headers"]["apikey"], "anon-key")

    def test_sign_in_error_message_surfaces(self) -> None:
        """The platform's message becomes the AuthError text."""
        self.session.request.return_value = _response(
            400, {"error_description": "Invalid login credentials"},
        )
        with self.assertRaises(AuthError) as ctx:
            self.client.sign_in("ana@example.com", "nope")
        self.assertEqual(str(ctx.exception), "Invalid login credentials")

    def test_sign_up_without_session_returns_none(self) -> None:
        """Email confirmation flows return no user."""
        self.session.request.return_value = _response(
            200, {"id": "u1", "email": "ana@example.com"},
        )
        self.assertIsNone(self.client.sign_up("ana@example.com", "secret123"))
        self.assertIsNone(self.client.get_current_user())

    def test_query_builds_postgrest_params(self) -> None:
        """Filters become eq. operators and ordering col.dir."""
        self.session.request.return_value = _response(200, [{"id": "p1"}])
        rows = self.client.query(
            PRODUCTS,
            filters={"user_id": "u1", "is_in_wishlist": True},
            order=Order("created_at", ascending=False),
        )
        self.assertEqual(rows, [{"id": "p1"}])
        method, url, kwargs = self._call()
        self.assertEqual(method, "GET")
        self.assertEqual(url, "https://demo.supabase.co/rest/v1/products")
        self.assertEqual(kwargs["params"], {
            "select": "*",
            "user_id": "eq.u1",
            "is_in_wishlist": "eq.true",
            "order": "created_at.desc",
        })

    def test_insert_asks_for_representation(self) -> None:
        """Inserts return the stored row."""
        self.session.request.return_value = _response(
            201, [{"id": "p1", "name": "Lamp"}],
        )
        row = self.client.insert(PRODUCTS, {"name": "Lamp"})
        self.assertEqual(row["id"], "p1")
        _, _, kwargs = self._call()
        self.assertEqual(kwargs["headers"]["Prefer"], "return=representation")
        self.assertEqual(kwargs["json"], {"name": "Lamp"})

    def test_update_patches_by_id(self) -> None:
        """Partial updates target one row."""
        self.session.request.return_value = _response(204)
        self.client.update(PRODUCTS, "p1", {"is_in_wishlist": True})
        method, _, kwargs = self._call()
        self.assertEqual(method, "PATCH")
        self.assertEqual(kwargs["params"], {"id": "eq.p1"})
        self.assertEqual(kwargs["json"], {"is_in_wishlist": True})

    def test_unauthorized_raises_auth_required(self) -> None:
        """HTTP 401 maps to AuthRequiredError."""
        self.session.request.return_value = _response(
            401, {"message": "JWT expired"},
        )
        with self.assertRaises(AuthRequiredError) as ctx:
            self.client.query(PRODUCTS)
        self.assertEqual(str(ctx.exception), "JWT expired")

    def test_server_error_message(self) -> None:
        """Error bodies are surfaced verbatim."""
        self.session.request.return_value = _response(
            409, {"message": "duplicate key value"},
        )
        with self.assertRaises(DataClientError) as ctx:
            self.client.insert(PRODUCTS, {"name": "Lamp"})
        self.assertEqual(str(ctx.exception), "duplicate key value")

    def test_transport_error_wrapped(self) -> None:
        """Network failures become DataClientError."""
        self.session.request.side_effect = ConnectionError("connection reset")
        with self.assertRaises(DataClientError) as ctx:
            self.client.query(PRODUCTS)
        self.assertIn("connection reset", str(ctx.exception))

    def test_sign_out_clears_session(self) -> None:
        """Signing out forgets the token even if logout fails."""
        self.session.request.return_value = _response(200, {
            "access_token": "jwt-123",
            "user": {"id": "u1", "email": "ana@example.com"},
        })
        self.client.sign_in("ana@example.com", "secret123")
        self.session.request.return_value = _response(500, {"message": "down"})
        self.client.sign_out()
        self.assertIsNone(self.client.get_current_user())

    def test_expired_session_is_dropped(self) -> None:
        """get_current_user returns None when the token is rejected."""
        self.session.request.return_value = _response(200, {
            "access_token": "jwt-123",
            "user": {"id": "u1", "email": "ana@example.com"},
        })
        self.client.sign_in("ana@example.com", "secret123")
        self.session.request.return_value = _response(401, {"message": "expired"})
        self.assertIsNone(self.client.get_current_user())

    def test_subscribe_starts_one_poller_per_collection(self) -> None:
        """Pollers are shared per collection and stopped on last unsubscribe."""
        with patch.object(ChangePoller, "start") as mock_start:
            first = self.client.subscribe(PRODUCTS, lambda e: None)
            second = self.client.subscribe(PRODUCTS, lambda e: None)
        self.assertEqual(mock_start.call_count, 1)
        poller = self.client._pollers[PRODUCTS]

        self.client.unsubscribe(first)
        self.assertIn(PRODUCTS, self.client._pollers)
        self.client.unsubscribe(second)
        self.assertNotIn(PRODUCTS, self.client._pollers)
        self.assertTrue(poller._stop.is_set())


class TestChangePoller(unittest.TestCase):
    """Snapshot diffing."""

    def setUp(self) -> None:
        self.client = MagicMock()
        self.poller = ChangePoller(self.client, PRODUCTS, interval=60)

    def test_first_poll_is_baseline(self) -> None:
        """The first snapshot produces no events."""
        self.client.query.return_value = [{"id": "p1", "name": "A"}]
        self.assertEqual(self.poller.poll_once(), [])

    def test_diff_produces_events(self) -> None:
        """Added, changed and removed rows map to the three event types."""
        self.client.query.return_value = [
            {"id": "p1", "is_in_wishlist": False},
            {"id": "p2", "is_in_wishlist": False},
        ]
        self.poller.poll_once()
        self.client.query.return_value = [
            {"id": "p1", "is_in_wishlist": True},
            {"id": "p3", "is_in_wishlist": False},
        ]
        events = self.poller.poll_once()
        by_type = {e.event_type: e for e in events}
        self.assertEqual(set(by_type), {INSERT, UPDATE, DELETE})
        self.assertEqual(by_type[INSERT].record["id"], "p3")
        self.assertIs(by_type[UPDATE].record["is_in_wishlist"], True)
        self.assertIs(by_type[UPDATE].old_record["is_in_wishlist"], False)
        self.assertEqual(by_type[DELETE].old_record["id"], "p2")

    def test_unchanged_snapshot_is_quiet(self) -> None:
        """Identical snapshots produce nothing."""
        self.client.query.return_value = [{"id": "p1"}]
        self.poller.poll_once()
        self.assertEqual(self.poller.poll_once(), [])


if __name__ == "__main__":
    unittest.main()
