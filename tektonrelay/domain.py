"""Neutral event model shared by decoders and notifiers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class State(StrEnum):
    """Logical state of an execution."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"
    CANCELED = "canceled"


class Resource(StrEnum):
    """Kind of resource that produced an event."""

    TASK_RUN = "taskrun"
    PIPELINE_RUN = "pipelinerun"


@dataclass
class Repo:
    """Every repository identifier a notifier may need; each uses a subset."""

    owner: str = ""  # GitHub, Gitea, SourceHut
    name: str = ""  # all providers
    id: str = ""  # GitLab numeric project id
    workspace: str = ""  # Bitbucket Cloud
    project: str = ""  # Bitbucket Server, Azure DevOps
    org: str = ""  # Azure DevOps organisation


@dataclass
class Event:
    """Neutral payload routed to every notifier."""

    # Routing
    provider: str = ""
    resource: Resource | str = ""
    api_base_url: str = ""

    # Pipeline identity
    run_name: str = ""
    run_id: str = ""
    namespace: str = ""

    # State
    state: State | str = ""
    context: str = ""
    description: str = ""
    target_url: str = ""

    # SCM
    commit_sha: str = ""
    repo: Repo = field(default_factory=Repo)

    # Issue/PR linking, absent when unknown
    issue_number: int | None = None
    pr_number: int | None = None

    # Timing
    started_at: datetime | None = None
    finished_at: datetime | None = None