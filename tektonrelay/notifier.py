"""Shared HTTP send flow for notifiers, with retry and error reporting."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import requests

from tektonrelay.domain import Event, State
from tektonrelay.http_client import HttpClient
from tektonrelay.retry import do_with_retry

USER_AGENT = "tekton-events-relay"

_MAX_ERROR_BODY = 4096

PayloadBuilder = Callable[[Event], Any]
URLBuilder = Callable[[Event], str]
AuthApplier = Callable[[requests.Request], None]
MethodSelector = Callable[[Event], str]


class NotifyError(Exception):
    """Raised when a notification cannot be built or is rejected by the remote end."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Base:
    """Builds a JSON request from an event and sends it with retry.

    ``build_url`` and ``build_payload`` are required; ``auth`` may add
    credentials to the request and ``method`` may pick the HTTP verb
    (POST when absent).
    """

    http: HttpClient | None
    build_payload: PayloadBuilder
    build_url: URLBuilder
    auth: AuthApplier | None = None
    method: MethodSelector | None = None
    user_agent: str = ""

    def send(self, event: Event) -> None:
        """Deliver ``event``; raises NotifyError or RetryError on failure."""
        try:
            url = self.build_url(event)
        except Exception as exc:
            raise NotifyError(f"build url: {exc}") from exc
        try:
            payload = self.build_payload(event)
        except Exception as exc:
            raise NotifyError(f"build payload: {exc}") from exc
        try:
            body = json.dumps(payload).encode()
        except (TypeError, ValueError) as exc:
            raise NotifyError(f"marshal payload: {exc}") from exc

        method = self.method(event) if self.method is not None else "POST"
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        request = requests.Request(method, url, data=body, headers=headers)
        if self.auth is not None:
            self.auth(request)

        response = do_with_retry(self.http, request, 3, 0.5)
        try:
            if response.status_code >= 300:
                text = response.content[:_MAX_ERROR_BODY].decode("utf-8", errors="replace")
                raise NotifyError(
                    f"responded {response.status_code}: {text}",
                    status_code=response.status_code,
                )
        finally:
            response.close()


def default_http_client() -> HttpClient:
    """A client with a 10 second timeout."""
    return HttpClient(timeout=10.0)


def new_base(
    client: HttpClient | None, build_payload: PayloadBuilder, build_url: URLBuilder
) -> Base:
    """A Base that posts with the standard User-Agent and no authentication."""
    return Base(
        http=client,
        build_payload=build_payload,
        build_url=build_url,
        auth=lambda _request: None,
        method=lambda _event: "POST",
        user_agent=USER_AGENT,
    )


def should_notify(notify_on: Iterable[str] | None, state: State | str) -> bool:
    """True when ``notify_on`` is empty or lists ``state``."""
    wanted = list(notify_on or ())
    if not wanted:
        return True
    return str(state) in (str(item) for item in wanted)