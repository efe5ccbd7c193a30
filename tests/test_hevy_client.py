"""
Tests for the Hevy HTTP client.

A scripted session replaces requests.Session: each call pops the next
response (or raises the next exception) and records what was sent.
"""

import json
import threading

import pytest
import requests

from gzclp_sync.io.hevy_client import (
    MAX_RETRY_AFTER,
    HevyAuthError,
    HevyCancelledError,
    HevyClient,
    HevyConnectionError,
    HevyHTTPError,
    HevyNotFoundError,
    HevyRateLimitError,
    HevyTimeoutError,
)

# ---------------------------------------------------------------------------
# Scripted session
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None, headers=None, url: str = "https://api.test/x"):
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        self.content = json.dumps(body).encode() if body is not None else b""
        self._body = body
        self.headers = headers or {}
        self.url = url

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeSession:
    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _client(*script, max_retries: int = 3, cancel_event=None) -> tuple[HevyClient, FakeSession]:
    session = FakeSession(*script)
    client = HevyClient(
        "secret",
        base_url="https://api.test/v1/",
        max_retries=max_retries,
        retry_base_delay=0,
        session=session,
        cancel_event=cancel_event,
    )
    return client, session


def _workout(workout_id: str) -> dict:
    return {"id": workout_id, "title": "GZCLP A1", "start_time": "2026-01-05T10:00:00Z", "exercises": []}


# ===========================================================================
# Requests
# ===========================================================================


class TestRequests:
    def test_api_key_header_and_url(self):
        client, session = _client(FakeResponse(body={"workout_count": 42}))
        assert client.get_workout_count() == 42
        call = session.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://api.test/v1/workouts/count"
        assert call["headers"]["api-key"] == "secret"

    def test_empty_api_key_rejected(self):
        with pytest.raises(ValueError):
            HevyClient("")

    def test_workouts_are_paginated(self):
        client, session = _client(
            FakeResponse(body={"page": 1, "page_count": 2, "workouts": [_workout("w1")]}),
            FakeResponse(body={"page": 2, "page_count": 2, "workouts": [_workout("w2")]}),
        )
        workouts = client.list_workouts()
        assert [w.id for w in workouts] == ["w1", "w2"]
        assert [c["params"]["page"] for c in session.calls] == [1, 2]

    def test_max_pages(self):
        client, session = _client(
            FakeResponse(body={"page_count": 5, "workouts": [_workout("w1")]}),
        )
        assert len(client.list_workouts(max_pages=1)) == 1
        assert len(session.calls) == 1

    def test_routines_are_paginated(self):
        client, session = _client(
            FakeResponse(body={"page_count": 2, "routines": [{"id": "r1", "title": "GZCLP A1"}]}),
            FakeResponse(body={"page_count": 2, "routines": [{"id": "r2", "title": "GZCLP B1"}]}),
        )
        assert [r.id for r in client.list_routines()] == ["r1", "r2"]
        assert session.calls[1]["url"] == "https://api.test/v1/routines"

    def test_update_routine_list_response(self):
        routine = {"id": "r1", "title": "GZCLP A1", "exercises": []}
        client, session = _client(FakeResponse(body={"routine": [routine]}))
        result = client.update_routine("r1", {"routine": {"title": "GZCLP A1"}})
        assert result.id == "r1"
        assert session.calls[0]["method"] == "PUT"
        assert session.calls[0]["json"] == {"routine": {"title": "GZCLP A1"}}

    def test_create_routine(self):
        routine = {"id": "r9", "title": "GZCLP B1", "folder_id": None, "exercises": []}
        client, _ = _client(FakeResponse(201, body={"routine": routine}))
        assert client.create_routine({"routine": {"title": "GZCLP B1"}}).id == "r9"


# ===========================================================================
# Errors and retries
# ===========================================================================


class TestErrors:
    def test_auth_error(self):
        client, _ = _client(FakeResponse(401))
        with pytest.raises(HevyAuthError):
            client.test_connection()

    def test_not_found(self):
        client, _ = _client(FakeResponse(404))
        with pytest.raises(HevyNotFoundError):
            client.get_routine("missing")

    def test_http_error_message_from_body(self):
        client, _ = _client(FakeResponse(400, body={"error": "bad payload"}))
        with pytest.raises(HevyHTTPError, match="bad payload") as info:
            client.create_routine({})
        assert info.value.status == 400

    def test_timeout_and_connection_errors(self):
        client, _ = _client(requests.Timeout())
        with pytest.raises(HevyTimeoutError):
            client.get_workout_count()
        client, _ = _client(requests.ConnectionError("refused"))
        with pytest.raises(HevyConnectionError):
            client.get_workout_count()

    def test_server_errors_are_retried(self):
        client, session = _client(
            FakeResponse(502),
            FakeResponse(503),
            FakeResponse(body={"workout_count": 1}),
        )
        assert client.get_workout_count() == 1
        assert len(session.calls) == 3

    def test_retries_are_bounded(self):
        client, session = _client(FakeResponse(500), FakeResponse(500), max_retries=1)
        with pytest.raises(HevyHTTPError):
            client.get_workout_count()
        assert len(session.calls) == 2

    def test_rate_limit_after_retries(self):
        client, _ = _client(FakeResponse(429, headers={"Retry-After": "0"}), max_retries=0)
        with pytest.raises(HevyRateLimitError):
            client.get_workout_count()

    def test_client_errors_are_not_retried(self):
        client, session = _client(FakeResponse(400), FakeResponse(body={}))
        with pytest.raises(HevyHTTPError):
            client.get_workout_count()
        assert len(session.calls) == 1


class TestRetryDelay:
    def test_exponential_backoff(self):
        client = HevyClient("k", retry_base_delay=1.0, session=FakeSession())
        assert [client.retry_delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_retry_after_is_honoured_and_capped(self):
        client = HevyClient("k", session=FakeSession())
        assert client.retry_delay(0, 5.0) == 5.0
        assert client.retry_delay(0, 600.0) == MAX_RETRY_AFTER


class TestCancellation:
    def test_cancelled_before_request(self):
        event = threading.Event()
        client, session = _client(FakeResponse(body={}), cancel_event=event)
        client.cancel()
        with pytest.raises(HevyCancelledError):
            client.get_workout_count()
        assert session.calls == []

    def test_cancel_interrupts_backoff(self):
        event = threading.Event()

        class CancellingSession(FakeSession):
            def request(self, method, url, **kwargs):
                response = super().request(method, url, **kwargs)
                event.set()
                return response

        session = CancellingSession(FakeResponse(503), FakeResponse(body={}))
        client = HevyClient("k", retry_base_delay=30.0, session=session, cancel_event=event)
        with pytest.raises(HevyCancelledError):
            client.get_workout_count()
        assert len(session.calls) == 1
