"""Service configuration loaded from TOML, with ``${VAR}`` expansion and defaults."""

import dataclasses
import os
import re
import tomllib
import types
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union, get_args, get_origin

from tektonrelay.domain import State


class ConfigError(Exception):
    """Raised when the configuration cannot be read or parsed."""


@dataclass
class ServerConfig:
    """HTTP server settings."""

    addr: str = ""
    read_timeout_sec: int = 0
    write_timeout_sec: int = 0


@dataclass
class FilterConfig:
    """Which event kinds are processed."""

    allow_taskrun: bool = False
    allow_pipelinerun: bool = False
    ignore_unknown: bool = False


@dataclass
class ActionCommentConfig:
    """A PR or issue comment action."""

    enabled: bool = False
    template: str = ""
    on_states: list[State | str] = field(default_factory=list)
    when: str = ""


@dataclass
class ActionLabelConfig:
    """A label action."""

    enabled: bool = False
    success_label: str = ""
    failure_label: str = ""
    when: str = ""


@dataclass
class GitHubActionsConfig:
    """GitHub action handlers."""

    pr_comment: ActionCommentConfig | None = None
    issue_comment: ActionCommentConfig | None = None
    label: ActionLabelConfig | None = None


@dataclass
class GiteaActionsConfig:
    """Gitea action handlers."""

    pr_comment: ActionCommentConfig | None = None
    issue_comment: ActionCommentConfig | None = None
    label: ActionLabelConfig | None = None


@dataclass
class GitLabActionsConfig:
    """GitLab action handlers."""

    label: ActionLabelConfig | None = None


@dataclass
class AzureActionsConfig:
    """Azure DevOps action handlers."""

    label: ActionLabelConfig | None = None


@dataclass
class GitHubConfig:
    """GitHub notifier settings."""

    enabled: bool = False
    token: str = ""
    base_url: str = ""
    insecure_skip_verify: bool = False
    actions: GitHubActionsConfig | None = None


@dataclass
class GitLabConfig:
    """GitLab notifier settings."""

    enabled: bool = False
    token: str = ""
    base_url: str = ""
    insecure_skip_verify: bool = False
    actions: GitLabActionsConfig | None = None


@dataclass
class BitbucketCloudConfig:
    """Bitbucket Cloud notifier settings."""

    enabled: bool = False
    username: str = ""
    app_password: str = ""
    base_url: str = ""
    insecure_skip_verify: bool = False


@dataclass
class BitbucketServerConfig:
    """Bitbucket Server notifier settings."""

    enabled: bool = False
    token: str = ""
    base_url: str = ""
    insecure_skip_verify: bool = False


@dataclass
class AzureConfig:
    """Azure DevOps notifier settings."""

    enabled: bool = False
    token: str = ""
    base_url: str = ""
    genre: str = ""
    insecure_skip_verify: bool = False
    actions: AzureActionsConfig | None = None


@dataclass
class GiteaConfig:
    """Gitea notifier settings."""

    enabled: bool = False
    token: str = ""
    base_url: str = ""
    insecure_skip_verify: bool = False
    actions: GiteaActionsConfig | None = None


@dataclass
class SourceHutConfig:
    """SourceHut notifier settings."""

    enabled: bool = False
    token: str = ""
    base_url: str = ""
    insecure_skip_verify: bool = False


@dataclass
class SlackConfig:
    """Slack notifier settings."""

    enabled: bool = False
    webhook_url: str = ""
    channel: str = ""
    username: str = ""
    icon_emoji: str = ""
    notify_on: list[str] = field(default_factory=list)


@dataclass
class TeamsConfig:
    """Microsoft Teams notifier settings."""

    enabled: bool = False
    webhook_url: str = ""
    notify_on: list[str] = field(default_factory=list)


@dataclass
class DiscordConfig:
    """Discord notifier settings."""

    enabled: bool = False
    webhook_url: str = ""
    username: str = ""
    notify_on: list[str] = field(default_factory=list)


@dataclass
class PagerDutyConfig:
    """PagerDuty notifier settings."""

    enabled: bool = False
    integration_key: str = ""
    severity: str = ""


@dataclass
class DatadogConfig:
    """Datadog notifier settings."""

    enabled: bool = False
    api_key: str = ""
    site: str = ""
    tags: list[str] = field(default_factory=list)
    notify_on: list[str] = field(default_factory=list)


@dataclass
class WebhookConfig:
    """Generic webhook notifier settings."""

    enabled: bool = False
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    notify_on: list[str] = field(default_factory=list)


@dataclass
class Notifiers:
    """Every notifier that can be configured; absent ones are None."""

    # SCM commit status
    github: GitHubConfig | None = None
    gitlab_cloud: GitLabConfig | None = None
    gitlab_server: GitLabConfig | None = None
    bitbucket_cloud: BitbucketCloudConfig | None = None
    bitbucket_server: BitbucketServerConfig | None = None
    azure_devops: AzureConfig | None = None
    gitea: GiteaConfig | None = None
    sourcehut: SourceHutConfig | None = None
    # Chat
    slack: SlackConfig | None = None
    teams: TeamsConfig | None = None
    discord: DiscordConfig | None = None
    # Alerting / observability
    pagerduty: PagerDutyConfig | None = None
    datadog: DatadogConfig | None = None
    # Generic
    webhook: WebhookConfig | None = None


@dataclass
class LoggingConfig:
    """Logging level: debug, info, warn or error."""

    level: str = ""


@dataclass
class DebugConfig:
    """Debug mode switches."""

    enabled: bool = False
    log_payloads: bool = False
    log_http_calls: bool = False


@dataclass
class Config:
    """The whole application configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    dashboard_url: str = ""
    filter: FilterConfig = field(default_factory=FilterConfig)
    dedupe_size: int = 0
    notifiers: Notifiers = field(default_factory=Notifiers)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a configuration from parsed TOML data; unknown keys are ignored."""
        return _build(cls, data, "")


def _join(where: str, key: str) -> str:
    return f"{where}.{key}" if where else key


def _mismatch(where: str, expected: str, value: Any) -> ConfigError:
    return ConfigError(f"{where or 'config'}: expected {expected}, got {type(value).__name__}")


def _convert(hint: Any, value: Any, where: str) -> Any:
    origin = get_origin(hint)
    if origin in (Union, types.UnionType):
        candidates = [arg for arg in get_args(hint) if arg is not type(None)]
        return _convert(candidates[0], value, where)
    if dataclasses.is_dataclass(hint):
        if not isinstance(value, dict):
            raise _mismatch(where, "a table", value)
        return _build(hint, value, where)
    if origin is list:
        if not isinstance(value, list):
            raise _mismatch(where, "an array", value)
        (item_hint,) = get_args(hint)
        return [
            _convert(item_hint, item, f"{where}[{position}]")
            for position, item in enumerate(value)
        ]
    if origin is dict:
        if not isinstance(value, dict):
            raise _mismatch(where, "a table", value)
        _, value_hint = get_args(hint)
        return {
            str(key): _convert(value_hint, item, _join(where, str(key)))
            for key, item in value.items()
        }
    if isinstance(hint, type) and issubclass(hint, Enum):
        if not isinstance(value, str):
            raise _mismatch(where, "a string", value)
        try:
            return hint(value)
        except ValueError:
            return value
    if hint is bool:
        if not isinstance(value, bool):
            raise _mismatch(where, "a boolean", value)
        return value
    if hint is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _mismatch(where, "an integer", value)
        return value
    if hint is str:
        if not isinstance(value, str):
            raise _mismatch(where, "a string", value)
        return value
    raise ConfigError(f"{where}: unsupported field type {hint!r}")


def _build(cls: Any, data: dict[str, Any], where: str) -> Any:
    values = {
        item.name: _convert(item.type, data[item.name], _join(where, item.name))
        for item in dataclasses.fields(cls)
        if item.name in data
    }
    return cls(**values)


_ENV_RE = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def expand_env(text: str) -> str:
    """Replace each ``${NAME}`` with the environment value, or nothing when unset."""
    return _ENV_RE.sub(lambda match: os.environ.get(match.group(1), ""), text)


def apply_defaults(config: Config) -> None:
    """Fill unset settings with their defaults, in place."""
    if not config.server.addr:
        config.server.addr = ":8080"
    if config.server.read_timeout_sec == 0:
        config.server.read_timeout_sec = 10
    if config.server.write_timeout_sec == 0:
        config.server.write_timeout_sec = 10
    if config.dedupe_size == 0:
        config.dedupe_size = 10000
    if not config.filter.allow_taskrun and not config.filter.allow_pipelinerun:
        config.filter.allow_pipelinerun = True
        config.filter.ignore_unknown = True
    if not config.logging.level:
        config.logging.level = "info"


def loads(text: str) -> Config:
    """Parse configuration text, expanding environment references first."""
    try:
        data = tomllib.loads(expand_env(text))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"parse toml: {exc}") from exc
    try:
        config = Config.from_dict(data)
    except ConfigError as exc:
        raise ConfigError(f"parse toml: {exc}") from exc
    apply_defaults(config)
    return config


def load(path: str | os.PathLike[str]) -> Config:
    """Read and parse the configuration file at ``path``."""
    try:
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        raise ConfigError(f"read config: {exc}") from exc
    return loads(text)