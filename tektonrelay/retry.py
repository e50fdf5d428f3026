"""Sending HTTP requests with exponential backoff on transient failures."""

from __future__ import annotations

import time

import requests

from tektonrelay.http_client import HttpClient


class RetryError(Exception):
    """Raised when every attempt failed with a transient error."""

    def __init__(self, attempts: int, reason: str) -> None:
        super().__init__(f"after {attempts} attempts: {reason}")
        self.attempts = attempts
        self.reason = reason


def is_transient(code: int) -> bool:
    """True for 408, 429 and every 5xx status."""
    return code in (408, 429) or 500 <= code < 600


def do_with_retry(
    client: HttpClient | None,
    request: requests.Request | requests.PreparedRequest,
    max_attempts: int,
    base_delay: float,
) -> requests.Response:
    """Send ``request``, retrying network errors and transient statuses.

    The delay starts at ``base_delay`` seconds and doubles after each
    failed attempt. Raises RetryError once all attempts are used.
    """
    if client is None:
        client = HttpClient()
    if isinstance(request, requests.PreparedRequest) and hasattr(request.body, "read"):
        request.body = request.body.read()

    reason = "no attempts made"
    last_exc: BaseException | None = None
    delay = base_delay
    for attempt in range(1, max_attempts + 1):
        try:
            response = client.send(request)
        except requests.RequestException as exc:
            reason, last_exc = str(exc), exc
        else:
            if not is_transient(response.status_code):
                return response
            response.close()
            reason, last_exc = f"transient status {response.status_code}", None
        if attempt < max_attempts:
            time.sleep(delay)
            delay *= 2
    raise RetryError(max_attempts, reason) from last_exc