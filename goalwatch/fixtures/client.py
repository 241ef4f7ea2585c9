"""API-Football HTTP client returning typed fixture snapshots."""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import requests

from goalwatch.fixtures.errors import (
    ExternalTimeout,
    SnapshotMalformed,
    SnapshotNotFound,
    SnapshotUnavailable,
)
from goalwatch.fixtures.parser import parse_fixture
from goalwatch.fixtures.schema import FixtureSnapshot
from goalwatch.settings import resolve_fixtures_api_key

logger = logging.getLogger(__name__)
API_FOOTBALL_BASE_URL = os.getenv(
    "API_FOOTBALL_BASE_URL", "https://v3.football.api-sports.io"
).rstrip("/")
FIXTURES_PATH = "/fixtures"
DEFAULT_TIMEOUT_SECONDS = 5.0
FIXTURE_MAX_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 0.5
MAX_ERROR_SNIPPET = 300


def _truncate(value: str, limit: int = MAX_ERROR_SNIPPET) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + "...<truncated>"


def _provider_errors(payload: dict[str, Any]) -> Any:
    # API-Football reports auth/rate-limit problems in a 200 body.
    errors = payload.get("errors")
    if isinstance(errors, (list, dict)) and errors:
        return errors
    return None


class FixtureClient:
    """Fixture snapshot gateway. ``fetch_snapshot`` is an idempotent read."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = API_FOOTBALL_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = FIXTURE_MAX_ATTEMPTS,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)

    @property
    def deadline_seconds(self) -> float:
        """Upper bound for one fetch including retries and backoff."""
        backoff = sum(DEFAULT_BACKOFF_SECONDS * n for n in range(1, self.max_attempts))
        return self.timeout_seconds * self.max_attempts + backoff + 1.0

    def fetch_snapshot(self, match_id: str) -> FixtureSnapshot:
        match_id = str(match_id).strip()
        if not match_id:
            raise SnapshotNotFound("Empty match_id")

        url = f"{self.base_url}{FIXTURES_PATH}"
        headers = {
            "x-apisports-key": self.api_key,
            "Accept": "application/json",
        }
        response = None
        last_exception: requests.RequestException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = requests.get(
                    url,
                    params={"id": match_id},
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
                break
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_exception = exc
                logger.debug(
                    "Fixture fetch attempt %d/%d failed for match_id=%s: %s",
                    attempt,
                    self.max_attempts,
                    match_id,
                    exc,
                )
                if attempt == self.max_attempts:
                    break
                time.sleep(DEFAULT_BACKOFF_SECONDS * attempt)
            except requests.RequestException as exc:
                raise SnapshotUnavailable(f"Fixture request failed: {exc}") from exc

        if response is None:
            assert last_exception is not None
            if isinstance(last_exception, requests.Timeout):
                raise ExternalTimeout(
                    f"Fixture request for match_id={match_id} timed out after "
                    f"{self.max_attempts} attempt(s): {last_exception}"
                ) from last_exception
            raise SnapshotUnavailable(
                f"Fixture request for match_id={match_id} failed after retries: {last_exception}"
            ) from last_exception

        if response.status_code >= 400:
            raise SnapshotUnavailable(
                f"API-Football error {response.status_code}: {_truncate(response.text)}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise SnapshotMalformed(
                "API-Football returned non-JSON response: " + _truncate(response.text)
            ) from exc

        if isinstance(payload, dict):
            errors = _provider_errors(payload)
            if errors:
                raise SnapshotUnavailable(f"API-Football rejected request: {errors}")
        return parse_fixture(payload, match_id)


def build_fixture_client(settings) -> FixtureClient | None:
    api_key = resolve_fixtures_api_key(settings)
    if not api_key:
        return None
    return FixtureClient(api_key, timeout_seconds=settings.fetch_timeout_seconds)
