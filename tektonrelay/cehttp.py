"""Minimal CloudEvents parser for HTTP binary mode.

In binary mode the event attributes arrive as ``Ce-*`` headers and the
payload is the request body.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import IO


class CloudEventError(ValueError):
    """Raised when a request is not a valid binary-mode CloudEvent."""


@dataclass(frozen=True)
class CloudEvent:
    """The attributes and payload of a received CloudEvent."""

    id: str
    type: str
    source: str
    spec_version: str = ""
    subject: str = ""
    time: str = ""
    data: bytes = b""


def _read_body(body: bytes | str | IO[bytes] | None) -> bytes:
    if body is None:
        return b""
    if isinstance(body, bytes):
        return body
    if isinstance(body, bytearray):
        return bytes(body)
    if isinstance(body, str):
        return body.encode()
    return body.read()


def from_request(
    headers: Mapping[str, str], body: bytes | str | IO[bytes] | None = None
) -> CloudEvent:
    """Build a CloudEvent from HTTP headers and body.

    Header names are matched case-insensitively. Raises CloudEventError
    when Ce-Id, Ce-Type or Ce-Source is missing or empty.
    """
    lowered = {key.lower(): value for key, value in headers.items()}

    def header(name: str) -> str:
        return lowered.get(name.lower(), "") or ""

    event_id = header("Ce-Id")
    if not event_id:
        raise CloudEventError("missing Ce-Id header")
    event_type = header("Ce-Type")
    if not event_type:
        raise CloudEventError("missing Ce-Type header")
    source = header("Ce-Source")
    if not source:
        raise CloudEventError("missing Ce-Source header")

    return CloudEvent(
        id=event_id,
        type=event_type,
        source=source,
        spec_version=header("Ce-Specversion"),
        subject=header("Ce-Subject"),
        time=header("Ce-Time"),
        data=_read_body(body),
    )