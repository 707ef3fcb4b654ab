# price_tracker/data/rest_client.py

"""Client for a hosted Supabase-compatible REST data platform.

Auth goes through ``/auth/v1`` and table access through the PostgREST
endpoints under ``/rest/v1``.  Row scoping is enforced server-side by
the platform's row-level security; this client only attaches the
session token.

Realtime change events are produced by a :class:`ChangePoller` per
watched collection, which re-reads the collection on an interval and
diffs consecutive snapshots into INSERT / UPDATE / DELETE events.
"""

import logging
import threading
from typing import Any

from curl_cffi import requests as curl_requests

from price_tracker.config.settings import Settings
from price_tracker.data.client import (
    ALL_EVENTS,
    DELETE,
    INSERT,
    UPDATE,
    AuthError,
    AuthRequiredError,
    ChangeCallback,
    ChangeEvent,
    DataClient,
    DataClientError,
    Order,
    Record,
    Subscription,
)
from price_tracker.models.user import User

logger = logging.getLogger("price_tracker.rest_client")


def _error_message(resp: curl_requests.Response) -> str:
    """Pull the human-readable message out of an error response."""
    try:
        body: Any = resp.json()
    except Exception:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            value = body.get(key)
            if value:
                return str(value)
    text = resp.text.strip()
    return text[:200] if text else f"HTTP {resp.status_code}"


def _eq_filters(filters: Record) -> dict[str, str]:
    params: dict[str, str] = {}
    for column, value in filters.items():
        if isinstance(value, bool):
            value = str(value).lower()
        params[column] = f"eq.{value}"
    return params


class ChangePoller:
    """Background thread turning snapshot diffs into change events."""

    def __init__(
        self,
        client: "RestDataClient",
        collection: str,
        interval: float,
    ) -> None:
        self._client = client
        self.collection = collection
        self.interval = interval
        self._snapshot: dict[str, Record] | None = None
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"poller-{collection}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def poll_once(self) -> list[ChangeEvent]:
        """Fetch the collection once and return the detected changes.

        The first successful poll only records a baseline.
        """
        rows = self._client.query(self.collection)
        current = {str(r.get("id")): r for r in rows}
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return []

        events: list[ChangeEvent] = []
        for row_id, row in current.items():
            old = previous.get(row_id)
            if old is None:
                events.append(ChangeEvent(self.collection, INSERT, row))
            elif old != row:
                events.append(
                    ChangeEvent(self.collection, UPDATE, row, old)
                )
        for row_id, old in previous.items():
            if row_id not in current:
                events.append(
                    ChangeEvent(self.collection, DELETE, {}, old)
                )
        return events

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                for event in self.poll_once():
                    self._client._dispatch(event)
            except DataClientError as exc:
                logger.warning(
                    "Change poll for %s failed: %s", self.collection, exc,
                )
            self._stop.wait(self.interval)


class RestDataClient(DataClient):
    """Data client talking HTTP to a hosted platform."""

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        poll_interval: float | None = None,
    ) -> None:
        super().__init__()
        self.base_url = (base_url or Settings.SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key or Settings.SUPABASE_ANON_KEY
        if not self.base_url or not self.anon_key:
            raise DataClientError(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be configured"
            )
        self.poll_interval = (
            poll_interval
            if poll_interval is not None
            else Settings.REALTIME_POLL_INTERVAL
        )
        self.session = curl_requests.Session(
            impersonate=Settings.IMPERSONATE_BROWSER
        )
        self._access_token: str | None = None
        self._user: User | None = None
        self._pollers: dict[str, ChangePoller] = {}

    # ── HTTP ─────────────────────────────────────────────

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        token = self._access_token or self.anon_key
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        payload: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send one request; raise :class:`DataClientError` on failure."""
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(headers),
                timeout=Settings.REQUEST_TIMEOUT,
            )
        except Exception as exc:
            logger.error(
                "%s %s failed: %s", method, path, exc, exc_info=True,
            )
            raise DataClientError(str(exc)) from exc

        if resp.status_code == 401:
            raise AuthRequiredError(_error_message(resp))
        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning(
                "%s %s -> HTTP %d: %s",
                method, path, resp.status_code, message,
            )
            raise DataClientError(message)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ── Auth ─────────────────────────────────────────────

    def _start_session(self, body: Any) -> User | None:
        if not isinstance(body, dict) or not body.get("access_token"):
            return None
        self._access_token = str(body["access_token"])
        user = body.get("user") or {}
        self._user = User(
            id=str(user.get("id", "")), email=str(user.get("email", "")),
        )
        logger.info("Session started for %s", self._user.email)
        return self._user

    def get_current_user(self) -> User | None:
        if self._access_token is None:
            return None
        try:
            body = self._request("GET", "/auth/v1/user")
        except AuthRequiredError:
            logger.info("Stored session rejected, signing out locally")
            self._access_token = None
            self._user = None
            return None
        if isinstance(body, dict) and body.get("id"):
            self._user = User(
                id=str(body["id"]), email=str(body.get("email", "")),
            )
        return self._user

    def sign_in(self, email: str, password: str) -> User:
        try:
            body = self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                payload={"email": email, "password": password},
            )
        except DataClientError as exc:
            raise AuthError(str(exc)) from exc
        user = self._start_session(body)
        if user is None:
            raise AuthError("Sign-in returned no session")
        return user

    def sign_up(self, email: str, password: str) -> User | None:
        try:
            body = self._request(
                "POST",
                "/auth/v1/signup",
                payload={"email": email, "password": password},
            )
        except DataClientError as exc:
            raise AuthError(str(exc)) from exc
        return self._start_session(body)

    def sign_out(self) -> None:
        if self._access_token is not None:
            try:
                self._request("POST", "/auth/v1/logout")
            except DataClientError as exc:
                logger.warning("Remote sign-out failed: %s", exc)
        self._access_token = None
        self._user = None

    # ── Data ─────────────────────────────────────────────

    def query(
        self,
        collection: str,
        filters: Record | None = None,
        order: Order | None = None,
    ) -> list[Record]:
        params: dict[str, str] = {"select": "*"}
        params.update(_eq_filters(filters or {}))
        if order is not None:
            direction = "asc" if order.ascending else "desc"
            params["order"] = f"{order.column}.{direction}"
        body = self._request("GET", f"/rest/v1/{collection}", params=params)
        return list(body or [])

    def insert(self, collection: str, record: Record) -> Record:
        body = self._request(
            "POST",
            f"/rest/v1/{collection}",
            payload=record,
            headers={"Prefer": "return=representation"},
        )
        rows = list(body or [])
        logger.info("Inserted into %s", collection)
        return rows[0] if rows else dict(record)

    def update(
        self, collection: str, record_id: str, changes: Record,
    ) -> None:
        self._request(
            "PATCH",
            f"/rest/v1/{collection}",
            params={"id": f"eq.{record_id}"},
            payload=changes,
        )
        logger.info("Updated %s %s: %s", collection, record_id, sorted(changes))

    # ── Realtime ─────────────────────────────────────────

    def subscribe(
        self,
        collection: str,
        callback: ChangeCallback,
        events: frozenset[str] = ALL_EVENTS,
    ) -> Subscription:
        sub = super().subscribe(collection, callback, events)
        if collection not in self._pollers:
            poller = ChangePoller(self, collection, self.poll_interval)
            self._pollers[collection] = poller
            poller.start()
            logger.debug("Started change poller for %s", collection)
        return sub

    def unsubscribe(self, handle: Subscription) -> None:
        super().unsubscribe(handle)
        if not self._subscribers(handle.collection):
            poller = self._pollers.pop(handle.collection, None)
            if poller is not None:
                poller.stop()
                logger.debug(
                    "Stopped change poller for %s", handle.collection,
                )

    def close(self) -> None:
        for poller in self._pollers.values():
            poller.stop()
        self._pollers.clear()
        super().close()
        self.session.close()
