"""Notifier that posts events to the Datadog Events API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from tektonrelay.domain import Event, State
from tektonrelay.http_client import HttpClient
from tektonrelay.notifier import USER_AGENT, Base, default_http_client, should_notify

DEFAULT_SITE = "datadoghq.com"
NOTIFIER_NAME = "datadog"
ALERT_SUCCESS = "success"
ALERT_ERROR = "error"
ALERT_INFO = "info"


@dataclass
class DatadogOptions:
    """Datadog settings; an empty site means datadoghq.com, empty notify_on means all."""

    api_key: str = ""
    site: str = ""
    tags: list[str] = field(default_factory=list)
    notify_on: list[str] = field(default_factory=list)


def alert_type_for(state: State | str) -> str:
    """Datadog alert type for an execution state."""
    match str(state):
        case State.SUCCESS:
            return ALERT_SUCCESS
        case State.FAILURE | State.ERROR:
            return ALERT_ERROR
    return ALERT_INFO


def sanitize_tag(text: str) -> str:
    """Replace characters that Datadog treats specially in tags."""
    return text.replace("/", "_").replace(":", "_")


class DatadogNotifier:
    """Creates a Datadog event for each pipeline event."""

    def __init__(self, options: DatadogOptions, client: HttpClient | None = None) -> None:
        if not options.site:
            options = DatadogOptions(
                api_key=options.api_key,
                site=DEFAULT_SITE,
                tags=list(options.tags),
                notify_on=list(options.notify_on),
            )
        self.options = options
        self._base = Base(
            http=client if client is not None else default_http_client(),
            build_payload=self.build_payload,
            build_url=self.build_url,
            auth=self.apply_auth,
            user_agent=USER_AGENT,
        )

    def name(self) -> str:
        return NOTIFIER_NAME

    def notify(self, event: Event) -> None:
        """Send ``event`` unless its state is filtered out."""
        if not should_notify(self.options.notify_on, event.state):
            return
        self._base.send(event)

    def build_url(self, event: Event) -> str:
        return f"https://api.{self.options.site}/api/v2/events"

    def apply_auth(self, request: requests.Request) -> None:
        request.headers["DD-API-KEY"] = self.options.api_key

    def build_payload(self, event: Event) -> dict[str, Any]:
        state = str(event.state)
        tags = [
            f"state:{state}",
            f"context:{sanitize_tag(event.context)}",
            f"namespace:{event.namespace}",
            f"run_id:{event.run_name}",
            f"resource:{event.resource}",
        ]
        if event.commit_sha:
            tags.append(f"commit_sha:{event.commit_sha[:7]}")
        tags.extend(self.options.tags)
        return {
            "title": f"[tekton-events-relay] {event.context} — {state}",
            "text": f"{event.description}\n\nRun: {event.namespace}/{event.run_name}",
            "alert_type": alert_type_for(event.state),
            "tags": tags,
            "source_type_name": USER_AGENT,
        }