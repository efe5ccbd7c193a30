"""
HTTP client for the Hevy public API.

Handles authentication, pagination, retries with exponential backoff and
maps failures onto a small exception hierarchy. All weights are in kg.
"""

import logging
import threading
from typing import Any

import requests

from ..core.models import Routine, Workout
from .serializers import dict_to_routine, dict_to_workout

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.hevyapp.com/v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0
MAX_RETRY_AFTER = 60.0
PAGE_SIZE = 10

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


# =============================================================================
# ERRORS
# =============================================================================


class HevyClientError(Exception):
    """Base class for every Hevy client failure."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class HevyAuthError(HevyClientError):
    """The API key was rejected (401)."""

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message, 401)


class HevyRateLimitError(HevyClientError):
    """Too many requests (429); retry_after is in seconds when Hevy sent it."""

    def __init__(self, retry_after: float | None = None):
        super().__init__("Rate limit exceeded", 429)
        self.retry_after = retry_after


class HevyNotFoundError(HevyClientError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, 404)


class HevyHTTPError(HevyClientError):
    """Any other non-2xx response."""


class HevyTimeoutError(HevyClientError):
    def __init__(self, message: str = "Request timeout"):
        super().__init__(message)


class HevyConnectionError(HevyClientError):
    """The request never got a response (DNS, refused connection, ...)."""


class HevyCancelledError(HevyClientError):
    """The caller cancelled; not a failure of the remote side."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message)


# =============================================================================
# CLIENT
# =============================================================================


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds > 0 else None


class HevyClient:
    """
    Synchronous Hevy API client.

    Cancellation is cooperative: set cancel_event and the client stops
    before the next attempt or while waiting out a backoff delay. A request
    already on the wire is not interrupted.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        session: requests.Session | None = None,
        cancel_event: threading.Event | None = None,
    ):
        if not api_key:
            raise ValueError("api_key must be non-empty")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.session = session or requests.Session()
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def retry_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait before retry number attempt (0-based)."""
        if retry_after is not None and retry_after > 0:
            return min(retry_after, MAX_RETRY_AFTER)
        return self.retry_base_delay * (2**attempt)

    def _sleep(self, seconds: float) -> None:
        if self.cancel_event.wait(seconds):
            raise HevyCancelledError()

    def _raise_for_response(self, resp: requests.Response) -> None:
        if resp.status_code == 429:
            raise HevyRateLimitError(_parse_retry_after(resp.headers.get("Retry-After")))
        if resp.status_code == 401:
            raise HevyAuthError()
        if resp.status_code == 404:
            raise HevyNotFoundError(f"Not found: {resp.url}")

        message = f"HTTP {resp.status_code}"
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            message = body["error"]
        raise HevyHTTPError(message, resp.status_code)

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a request, retrying 429 and 5xx responses with backoff."""
        url = self._url(path)

        for attempt in range(self.max_retries + 1):
            if self.cancel_event.is_set():
                raise HevyCancelledError()

            try:
                resp = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
            except requests.Timeout as e:
                raise HevyTimeoutError() from e
            except requests.RequestException as e:
                raise HevyConnectionError(str(e)) from e

            if resp.ok:
                if not resp.content:
                    return {}
                return resp.json()

            if resp.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                retry_after = None
                if resp.status_code == 429:
                    retry_after = _parse_retry_after(resp.headers.get("Retry-After"))
                delay = self.retry_delay(attempt, retry_after)
                logger.debug(
                    "%s %s returned %d, retrying in %.1fs (attempt %d/%d)",
                    method,
                    path,
                    resp.status_code,
                    delay,
                    attempt + 1,
                    self.max_retries,
                )
                self._sleep(delay)
                continue

            self._raise_for_response(resp)

        # The last attempt either returned or raised above.
        raise HevyHTTPError("Request failed after retries")

    @staticmethod
    def _routine_from_response(data: dict[str, Any]) -> Routine:
        routine = data.get("routine", data)
        # PUT answers with a one-element list
        if isinstance(routine, list):
            routine = routine[0]
        return dict_to_routine(routine)

    # -------------------------------------------------------------------------
    # Workouts
    # -------------------------------------------------------------------------

    def get_workouts(self, page: int = 1, page_size: int = PAGE_SIZE) -> tuple[list[Workout], int]:
        """One page of workouts, most recent first. Returns (workouts, page_count)."""
        data = self._request("GET", "/workouts", params={"page": page, "pageSize": page_size})
        workouts = [dict_to_workout(w) for w in data.get("workouts", [])]
        return workouts, int(data.get("page_count", 1))

    def list_workouts(self, max_pages: int | None = None) -> list[Workout]:
        """All workouts across pages (or the first max_pages pages)."""
        workouts: list[Workout] = []
        page = 1
        while True:
            batch, page_count = self.get_workouts(page)
            workouts.extend(batch)
            if page >= page_count or (max_pages is not None and page >= max_pages):
                break
            page += 1
        return workouts

    def get_workout_count(self) -> int:
        data = self._request("GET", "/workouts/count")
        return int(data.get("workout_count", 0))

    # -------------------------------------------------------------------------
    # Routines
    # -------------------------------------------------------------------------

    def list_routines(self) -> list[Routine]:
        routines: list[Routine] = []
        page = 1
        while True:
            data = self._request("GET", "/routines", params={"page": page, "pageSize": PAGE_SIZE})
            routines.extend(dict_to_routine(r) for r in data.get("routines", []))
            if page >= int(data.get("page_count", 1)):
                break
            page += 1
        return routines

    def get_routine(self, routine_id: str) -> Routine:
        return self._routine_from_response(self._request("GET", f"/routines/{routine_id}"))

    def create_routine(self, payload: dict[str, Any]) -> Routine:
        return self._routine_from_response(self._request("POST", "/routines", json_body=payload))

    def update_routine(self, routine_id: str, payload: dict[str, Any]) -> Routine:
        return self._routine_from_response(
            self._request("PUT", f"/routines/{routine_id}", json_body=payload)
        )

    def test_connection(self) -> bool:
        """Cheap authenticated call; raises HevyAuthError for a bad key."""
        self.get_workout_count()
        return True
