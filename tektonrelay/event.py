"""Decoder protocol and the registry that picks a decoder per CloudEvent type."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from tektonrelay.domain import Event

LABEL_PROVIDER = "scm.provider"

ANNO_REPO_OWNER = "scm.repo-owner"
ANNO_REPO_NAME = "scm.repo-name"
ANNO_REPO_ID = "scm.repo-id"
ANNO_REPO_WORKSPACE = "scm.repo-workspace"
ANNO_REPO_PROJECT = "scm.repo-project"
ANNO_REPO_ORG = "scm.repo-org"
ANNO_COMMIT_SHA = "scm.commit-sha"
ANNO_API_BASE_URL = "scm.api-base-url"
ANNO_CONTEXT = "scm.context"

ANNO_ISSUE_NUMBER = "tekton-events-relay.dev/issue-number"
ANNO_PR_NUMBER = "tekton-events-relay.dev/pr-number"


@dataclass(frozen=True)
class RawEvent:
    """Decoder input, independent of any CloudEvents library."""

    id: str
    type: str
    source: str = ""
    data: bytes = b""


@dataclass
class Envelope:
    """Decoded report plus the CloudEvent metadata kept for later handlers."""

    cloud_event_id: str
    cloud_event_type: str
    source: str
    report: Event


@runtime_checkable
class Decoder(Protocol):
    """A decoder for one pipeline engine's events."""

    def name(self) -> str:
        """Identify the decoder in logs."""
        ...

    def can_handle(self, event_type: str) -> bool:
        """Tell whether this decoder understands the CloudEvent type."""
        ...

    def decode(self, raw: RawEvent) -> Envelope:
        """Turn a raw event into an envelope, raising when it cannot."""
        ...


class NoDecoderError(LookupError):
    """Raised when no registered decoder accepts an event type."""

    def __init__(self, event_type: str) -> None:
        super().__init__(f'no decoder registered for event type "{event_type}"')
        self.event_type = event_type


class DecoderRegistry:
    """Ordered, thread-safe list of decoders; the first match wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._decoders: list[Decoder] = []

    def register(self, decoder: Decoder) -> None:
        """Append a decoder; registration order is lookup order."""
        with self._lock:
            self._decoders.append(decoder)

    def find(self, event_type: str) -> Decoder:
        """Return the first decoder that accepts ``event_type``."""
        with self._lock:
            decoders = list(self._decoders)
        for decoder in decoders:
            if decoder.can_handle(event_type):
                return decoder
        raise NoDecoderError(event_type)

    def names(self) -> list[str]:
        """Names of the registered decoders, in order."""
        with self._lock:
            return [decoder.name() for decoder in self._decoders]