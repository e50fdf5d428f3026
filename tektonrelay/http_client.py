"""HTTP client construction with optional debug logging of each exchange."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import requests
from requests.adapters import HTTPAdapter

_MAX_BODY_LOG_SIZE = 4 * 1024


@dataclass
class ClientConfig:
    """Settings for an HTTP client. A timeout of 0 means no timeout."""

    timeout: float = 0.0
    max_retries: int = 0
    base_delay: float = 0.0
    debug: bool = False
    logger: logging.Logger | None = None
    name: str = ""
    insecure_skip_verify: bool = False


def _truncated(body: Any) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        body = body.encode()
    if isinstance(body, (bytes, bytearray)):
        return bytes(body[:_MAX_BODY_LOG_SIZE])
    return b""


class DebugAdapter(HTTPAdapter):
    """Transport adapter that logs every request and response at debug level."""

    def __init__(self, logger: logging.Logger, name: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.logger = logger
        self.provider = name

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        start = time.monotonic()
        self.logger.debug(
            "http request",
            extra={
                "provider": self.provider,
                "method": request.method,
                "url": request.url,
                "headers": dict(request.headers),
                "body": _truncated(request.body),
            },
        )
        try:
            response = super().send(request, **kwargs)
        except Exception as exc:
            self.logger.debug(
                "http request failed",
                extra={
                    "method": request.method,
                    "url": request.url,
                    "latency": time.monotonic() - start,
                    "error": str(exc),
                },
            )
            raise
        self.logger.debug(
            "http response",
            extra={
                "provider": self.provider,
                "method": request.method,
                "url": request.url,
                "status": response.status_code,
                "latency": time.monotonic() - start,
                "headers": dict(response.headers),
                "body": _truncated(response.content),
            },
        )
        return response


class HttpClient:
    """A requests session paired with a default timeout."""

    def __init__(
        self, session: requests.Session | None = None, timeout: float | None = None
    ) -> None:
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def send(
        self, request: requests.Request | requests.PreparedRequest
    ) -> requests.Response:
        """Send a request; network failures raise requests exceptions."""
        if isinstance(request, requests.Request):
            request = self.session.prepare_request(request)
        return self.session.send(request, timeout=self.timeout)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def new_client(config: ClientConfig) -> HttpClient:
    """Build a client from ``config``, adding debug logging when asked."""
    session = requests.Session()
    if config.insecure_skip_verify:
        session.verify = False
    if config.debug and config.logger is not None:
        adapter = DebugAdapter(config.logger, config.name)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
    return HttpClient(session, config.timeout or None)


def default_client_config() -> ClientConfig:
    """Sensible defaults: 10 s timeout, 3 retries, 100 ms base delay."""
    return ClientConfig(timeout=10.0, max_retries=3, base_delay=0.1, debug=False)