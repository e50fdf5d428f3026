"""Decoder for CloudEvents emitted by the Tekton events controller.

Handled types look like
``dev.tekton.event.{taskrun,pipelinerun}.{queued,started,running,unknown,successful,failed}.v1``
with a payload of ``{"taskRun": {...}}`` or ``{"pipelineRun": {...}}``.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from tektonrelay.domain import Event, Repo, Resource, State
from tektonrelay.event import (
    ANNO_API_BASE_URL,
    ANNO_COMMIT_SHA,
    ANNO_CONTEXT,
    ANNO_ISSUE_NUMBER,
    ANNO_PR_NUMBER,
    ANNO_REPO_ID,
    ANNO_REPO_NAME,
    ANNO_REPO_ORG,
    ANNO_REPO_OWNER,
    ANNO_REPO_PROJECT,
    ANNO_REPO_WORKSPACE,
    LABEL_PROVIDER,
    Envelope,
    RawEvent,
)

TYPE_PREFIX = "dev.tekton.event."
_MAX_DESCRIPTION = 140
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

_STATE_SUFFIXES = (
    ((".queued.v1", ".started.v1"), State.PENDING),
    ((".running.v1", ".unknown.v1"), State.RUNNING),
    ((".successful.v1",), State.SUCCESS),
    ((".failed.v1",), State.FAILURE),
)

_DESCRIPTIONS = (
    (".queued.v1", "Queued"),
    (".started.v1", "Started"),
    (".running.v1", "Running"),
    (".successful.v1", "Succeeded"),
    (".failed.v1", "Failed"),
)


class DecodeError(ValueError):
    """Raised when a CloudEvent cannot be turned into an envelope."""


def map_state(event_type: str) -> State:
    """Translate a Tekton event type into a neutral state (pending when unknown)."""
    for suffixes, state in _STATE_SUFFIXES:
        if event_type.endswith(suffixes):
            return state
    return State.PENDING


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def _table(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DecodeError(f"unmarshal payload: {where} must be an object")
    return value


def _text(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"unmarshal payload: {where} must be a string")
    return value


def _strings(value: Any, where: str) -> dict[str, str]:
    return {key: _text(item, f"{where}.{key}") for key, item in _table(value, where).items()}


def _timestamp(value: Any, where: str) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(_text(value, where))
    except ValueError as exc:
        raise DecodeError(f"unmarshal payload: {where}: {exc}") from exc


def _number(value: str) -> int | None:
    return int(value) if _INTEGER_RE.fullmatch(value) else None


def _context(name: str, annotations: dict[str, str], event_type: str) -> str:
    if context := annotations.get(ANNO_CONTEXT, ""):
        return context
    if ".pipelinerun." in event_type:
        return f"tekton/{name}"
    return f"tekton/task/{name}"


def _description(conditions: list[dict[str, Any]], event_type: str) -> str:
    for condition in conditions:
        message = _text(condition.get("message"), "condition.message")
        if _text(condition.get("type"), "condition.type") == "Succeeded" and message:
            return _truncate(message, _MAX_DESCRIPTION)
    for suffix, text in _DESCRIPTIONS:
        if event_type.endswith(suffix):
            return text
    return ""


class TektonDecoder:
    """Decodes Tekton TaskRun and PipelineRun CloudEvents."""

    def name(self) -> str:
        return "tekton"

    def can_handle(self, event_type: str) -> bool:
        return event_type.startswith(TYPE_PREFIX)

    def decode(self, raw: RawEvent) -> Envelope:
        """Decode ``raw``; raises DecodeError when it is not a usable Tekton event."""
        if not self.can_handle(raw.type):
            raise DecodeError(f"not a tekton event: {raw.type}")
        try:
            document = json.loads(raw.data)
        except (ValueError, UnicodeDecodeError) as exc:
            raise DecodeError(f"unmarshal payload: {exc}") from exc
        if not isinstance(document, dict):
            raise DecodeError("unmarshal payload: payload must be an object")

        if document.get("pipelineRun") is not None:
            run, resource = _table(document["pipelineRun"], "pipelineRun"), Resource.PIPELINE_RUN
        elif document.get("taskRun") is not None:
            run, resource = _table(document["taskRun"], "taskRun"), Resource.TASK_RUN
        else:
            raise DecodeError("payload has neither taskRun nor pipelineRun")

        metadata = _table(run.get("metadata"), "metadata")
        status = _table(run.get("status"), "status")
        name = _text(metadata.get("name"), "metadata.name")
        namespace = _text(metadata.get("namespace"), "metadata.namespace")
        uid = _text(metadata.get("uid"), "metadata.uid")
        labels = _strings(metadata.get("labels"), "metadata.labels")
        annotations = _strings(metadata.get("annotations"), "metadata.annotations")
        raw_conditions = status.get("conditions") or []
        if not isinstance(raw_conditions, list):
            raise DecodeError("unmarshal payload: status.conditions must be an array")
        conditions = [_table(item, "condition") for item in raw_conditions]
        started_at = _timestamp(status.get("startTime"), "status.startTime")
        finished_at = _timestamp(status.get("completionTime"), "status.completionTime")

        provider = labels.get(LABEL_PROVIDER, "")
        if not provider:
            raise DecodeError(f"missing label {LABEL_PROVIDER} on {namespace}/{name}")
        sha = annotations.get(ANNO_COMMIT_SHA, "")
        if not sha:
            raise DecodeError(f"missing annotation {ANNO_COMMIT_SHA}")

        report = Event(
            provider=provider,
            resource=resource,
            api_base_url=annotations.get(ANNO_API_BASE_URL, ""),
            repo=Repo(
                owner=annotations.get(ANNO_REPO_OWNER, ""),
                name=annotations.get(ANNO_REPO_NAME, ""),
                id=annotations.get(ANNO_REPO_ID, ""),
                workspace=annotations.get(ANNO_REPO_WORKSPACE, ""),
                project=annotations.get(ANNO_REPO_PROJECT, ""),
                org=annotations.get(ANNO_REPO_ORG, ""),
            ),
            commit_sha=sha,
            state=map_state(raw.type),
            context=_context(name, annotations, raw.type),
            description=_description(conditions, raw.type),
            run_name=name,
            run_id=uid,
            namespace=namespace,
            issue_number=_number(annotations.get(ANNO_ISSUE_NUMBER, "")),
            pr_number=_number(annotations.get(ANNO_PR_NUMBER, "")),
            started_at=started_at,
            finished_at=finished_at,
        )
        return Envelope(
            cloud_event_id=raw.id,
            cloud_event_type=raw.type,
            source=raw.source,
            report=report,
        )