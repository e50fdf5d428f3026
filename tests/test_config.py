import pytest

from tektonrelay.cel import compile_expression
from tektonrelay.config import (
    ActionCommentConfig,
    Config,
    ConfigError,
    FilterConfig,
    GitHubConfig,
    ServerConfig,
    apply_defaults,
    expand_env,
    load,
    loads,
)
from tektonrelay.domain import State

EXAMPLE = """
dashboard_url = "https://dashboard.example.com"
dedupe_size = 500

[server]
addr = ":9090"
read_timeout_sec = 5

[filter]
allow_taskrun = true
allow_pipelinerun = true

[logging]
level = "debug"

[notifiers.github]
enabled = true
token = "${RELAY_TEST_GITHUB_TOKEN}"
base_url = "https://api.github.com"

[notifiers.github.actions.pr_comment]
enabled = true
template = "Pipeline {{ .State }}"
on_states = ["failure", "success"]
when = 'event.Resource == "taskrun" && event.State == "failure"'

[notifiers.github.actions.issue_comment]
enabled = true
when = 'event.Namespace == "production"'

[notifiers.github.actions.label]
enabled = true
success_label = "ci:passed"
failure_label = "ci:failed"

[notifiers.gitlab_cloud]
enabled = true
token = "token"

[notifiers.azure_devops]
enabled = true
token = "token"
genre = "tekton"

[notifiers.azure_devops.actions.label]
enabled = true
when = 'event.Resource == "pipelinerun" && event.Repo.Owner == "myorg"'

[notifiers.gitea]
enabled = true
token = "token"

[notifiers.gitea.actions.pr_comment]
enabled = true
when = 'event.RunName.startsWith("nightly-")'

[notifiers.slack]
enabled = true
webhook_url = "https://hooks.example.com/slack"
channel = "#ci"
notify_on = ["failure"]

[notifiers.datadog]
enabled = false
api_key = "placeholder"
tags = ["team:ci"]

[notifiers.webhook]
enabled = true
url = "https://hooks.example.com/relay"

[notifiers.webhook.headers]
X-Relay = "yes"
"""


@pytest.fixture
def example_path(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAY_TEST_GITHUB_TOKEN", "token")
    path = tmp_path / "config.toml"
    path.write_text(EXAMPLE, encoding="utf-8")
    return path


def test_example_config_has_notifiers(example_path):
    cfg = load(example_path)
    present = [
        cfg.notifiers.github,
        cfg.notifiers.gitlab_cloud,
        cfg.notifiers.gitea,
        cfg.notifiers.slack,
        cfg.notifiers.webhook,
    ]
    assert sum(item is not None for item in present) == 5
    assert cfg.notifiers.teams is None
    assert cfg.notifiers.gitlab_server is None


@pytest.mark.parametrize(
    ("pick", "expected"),
    [
        (
            lambda c: c.notifiers.github.actions.pr_comment.when,
            'event.Resource == "taskrun" && event.State == "failure"',
        ),
        (
            lambda c: c.notifiers.github.actions.issue_comment.when,
            'event.Namespace == "production"',
        ),
        (
            lambda c: c.notifiers.azure_devops.actions.label.when,
            'event.Resource == "pipelinerun" && event.Repo.Owner == "myorg"',
        ),
        (
            lambda c: c.notifiers.gitea.actions.pr_comment.when,
            'event.RunName.startsWith("nightly-")',
        ),
    ],
)
def test_example_when_fields(example_path, pick, expected):
    cfg = load(example_path)
    assert pick(cfg) == expected
    assert compile_expression(pick(cfg)).expr == expected


def test_example_values(example_path):
    cfg = load(example_path)
    assert cfg.server.addr == ":9090"
    assert cfg.server.read_timeout_sec == 5
    assert cfg.server.write_timeout_sec == 10
    assert cfg.dashboard_url == "https://dashboard.example.com"
    assert cfg.dedupe_size == 500
    assert cfg.logging.level == "debug"
    github = cfg.notifiers.github
    assert github.enabled is True
    assert github.token == "token"
    assert github.actions.pr_comment.on_states == [State.FAILURE, State.SUCCESS]
    assert github.actions.label.success_label == "ci:passed"
    assert cfg.notifiers.azure_devops.genre == "tekton"
    assert cfg.notifiers.azure_devops.actions.label.enabled is True
    assert cfg.notifiers.slack.notify_on == ["failure"]
    assert cfg.notifiers.datadog.enabled is False
    assert cfg.notifiers.datadog.tags == ["team:ci"]
    assert cfg.notifiers.webhook.headers == {"X-Relay": "yes"}
    assert cfg.notifiers.gitea.actions.issue_comment is None


def test_filter_kept_when_set(example_path):
    cfg = load(example_path)
    assert cfg.filter == FilterConfig(
        allow_taskrun=True, allow_pipelinerun=True, ignore_unknown=False
    )


def test_defaults_on_empty_text():
    cfg = loads("")
    assert cfg.server == ServerConfig(addr=":8080", read_timeout_sec=10, write_timeout_sec=10)
    assert cfg.dedupe_size == 10000
    assert cfg.filter == FilterConfig(
        allow_taskrun=False, allow_pipelinerun=True, ignore_unknown=True
    )
    assert cfg.logging.level == "info"
    assert cfg.notifiers.github is None


def test_apply_defaults_keeps_explicit_values():
    cfg = Config()
    cfg.dedupe_size = 5
    cfg.filter.allow_taskrun = True
    cfg.server.addr = ":1234"
    apply_defaults(cfg)
    assert cfg.dedupe_size == 5
    assert cfg.server.addr == ":1234"
    assert cfg.filter.allow_pipelinerun is False
    assert cfg.filter.ignore_unknown is False


def test_expand_env_replaces_and_blanks(monkeypatch):
    monkeypatch.setenv("RELAY_TEST_VALUE", "abc")
    monkeypatch.delenv("RELAY_TEST_MISSING", raising=False)
    text = "a=${RELAY_TEST_VALUE} b=${RELAY_TEST_MISSING} c=${lower} d=$RELAY_TEST_VALUE"
    assert expand_env(text) == "a=abc b= c=${lower} d=$RELAY_TEST_VALUE"


def test_unknown_keys_ignored():
    cfg = loads('[unknown]\nfoo = 1\n[server]\naddr = ":1"\nextra = "x"\n')
    assert cfg.server.addr == ":1"


def test_unknown_state_kept_as_text():
    cfg = loads(
        "[notifiers.github]\nenabled = true\n"
        '[notifiers.github.actions.pr_comment]\non_states = ["weird", "error"]\n'
    )
    assert cfg.notifiers.github.actions.pr_comment.on_states == ["weird", State.ERROR]


def test_from_dict_builds_nested():
    cfg = Config.from_dict(
        {"notifiers": {"github": {"enabled": True, "actions": {"pr_comment": {"template": "t"}}}}}
    )
    assert cfg.notifiers.github == GitHubConfig(
        enabled=True,
        actions=cfg.notifiers.github.actions,
    )
    assert cfg.notifiers.github.actions.pr_comment == ActionCommentConfig(template="t")
    assert cfg.server.addr == ""


@pytest.mark.parametrize(
    "text",
    [
        'dedupe_size = "big"',
        "dedupe_size = true",
        "[server]\naddr = 8080",
        "[notifiers.slack]\nnotify_on = \"failure\"",
        "notifiers = 3",
    ],
)
def test_type_mismatch_raises(text):
    with pytest.raises(ConfigError, match="parse toml"):
        loads(text)


def test_invalid_toml_raises():
    with pytest.raises(ConfigError, match="parse toml"):
        loads("[server\naddr =")


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError, match="read config"):
        load(tmp_path / "absent.toml")