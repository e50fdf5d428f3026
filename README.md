# tektonrelay

Building blocks for relaying Tekton CloudEvents to notifiers. A Tekton run is
labelled and annotated with where its source lives (`scm.provider`,
`scm.repo-owner`, `scm.repo-name`, `scm.commit-sha`, ...). When the Tekton
events controller emits a CloudEvent for that run, this package reads the HTTP
request, decodes the payload into a neutral `Event`, can filter it with a
CEL-style guard expression, and can post it to Datadog.

Install with `pip install .` (add `.[test]` for the test tools).

## Modules

| Module | Purpose |
| --- | --- |
| `tektonrelay.domain` | The neutral model: `State`, `Resource`, `Repo`, `Event`. |
| `tektonrelay.cehttp` | `from_request(headers, body)` reads a binary-mode CloudEvent into a `CloudEvent`. |
| `tektonrelay.event` | `RawEvent`, `Envelope`, the `Decoder` protocol and `DecoderRegistry`. |
| `tektonrelay.tekton` | `TektonDecoder` for `dev.tekton.event.*` types, and `map_state`. |
| `tektonrelay.cel` | `compile_expression(expr)` builds a `CelProgram`; `eval(event)` returns a bool. |
| `tektonrelay.conditional` | `ConditionalHandler` runs an inner handler only when its guard holds. |
| `tektonrelay.config` | `load(path)` / `loads(text)` read the TOML configuration into `Config`. |
| `tektonrelay.http_client` | `ClientConfig`, `new_client(config)`, `default_client_config()`, `HttpClient`, `DebugAdapter`. |
| `tektonrelay.retry` | `do_with_retry(client, request, max_attempts, base_delay)` and `is_transient(code)`. |
| `tektonrelay.notifier` | `Base`, the shared JSON-over-HTTP send flow, `new_base`, `default_http_client`, `should_notify`. |
| `tektonrelay.datadog` | `DatadogNotifier` and `DatadogOptions` for the Datadog Events API. |
| `tektonrelay.logsetup` | `new_logger(level, debug)` and `JsonFormatter`. |

## Decoding an incoming event

```python
import json

from tektonrelay.cehttp import from_request
from tektonrelay.event import DecoderRegistry, RawEvent
from tektonrelay.tekton import TektonDecoder

decoders = DecoderRegistry()
decoders.register(TektonDecoder())

headers = {
    "Ce-Id": "evt-1",
    "Ce-Type": "dev.tekton.event.pipelinerun.failed.v1",
    "Ce-Source": "tekton",
}
body = json.dumps({
    "pipelineRun": {
        "metadata": {
            "name": "build-1",
            "namespace": "ci",
            "labels": {"scm.provider": "github"},
            "annotations": {"scm.commit-sha": "abc123", "scm.repo-owner": "myorg"},
        },
        "status": {},
    }
}).encode()

ce = from_request(headers, body)   # CloudEventError if Ce-Id, Ce-Type or Ce-Source is missing
decoder = decoders.find(ce.type)   # NoDecoderError if no decoder accepts the type
envelope = decoder.decode(RawEvent(id=ce.id, type=ce.type, source=ce.source, data=ce.data))

report = envelope.report
print(report.provider, report.state, report.context, report.description)
# github failure tekton/build-1 Failed
```

Header names are matched without regard to case; the body may be bytes, a
string, a binary file object or `None`.

Event types map to states by suffix:

| Suffix | State |
| --- | --- |
| `.queued.v1`, `.started.v1` | `pending` |
| `.running.v1`, `.unknown.v1` | `running` |
| `.successful.v1` | `success` |
| `.failed.v1` | `failure` |
| anything else | `pending` |

The context is the `scm.context` annotation, or `tekton/<name>` for pipeline
runs and `tekton/task/<name>` for task runs. The description is the message of
the `Succeeded` condition (cut to 140 characters ending in `...`), or a word
for the event kind (`Queued`, `Started`, `Running`, `Succeeded`, `Failed`).
Issue and PR numbers come from the `tekton-events-relay.dev/issue-number` and
`tekton-events-relay.dev/pr-number` annotations when they are integers.

`DecodeError` is raised for a non-Tekton type, invalid JSON, a payload with
neither `taskRun` nor `pipelineRun`, or a run missing the `scm.provider` label
or the `scm.commit-sha` annotation.

## Guard expressions

```python
from tektonrelay.cel import compile_expression

program = compile_expression('event.Resource == "pipelinerun" && event.State == "failure"')
program.eval(report)   # True
```

The expression sees one variable, `event`, with the fields `Resource`, `State`,
`RunName`, `RunID`, `Namespace`, `Context`, `Description`, `CommitSHA`,
`Provider`, `IssueNumber`, `PRNumber` (0 when unknown) and `Repo` (`Owner`,
`Name`, `ID`, `Workspace`, `Project`, `Org`).

This is a core subset of the Common Expression Language: string, integer,
double, boolean and `null` literals; field selection; `!`, unary `-`, `&&`,
`||`; `==`, `!=`, `<`, `<=`, `>`, `>=`; the string methods `startsWith`,
`endsWith`, `contains` and `matches`; and `size`. An empty expression, a syntax
or type error, or an expression that does not yield a bool raises `CelError`
at compile time; a failure during evaluation raises `CelError` from `eval`.

`ConditionalHandler(inner, program, logger)` wraps any object with `name()`,
`type()` and `handle(event)`. With no program it always delegates. When the
guard is false it logs a debug record and returns `None`; when evaluation fails
it logs an error and raises, so the inner handler never runs by accident.

## Configuration

```toml
dashboard_url = "https://dashboard.example.com"

[server]
addr = ":8080"

[filter]
allow_pipelinerun = true

[notifiers.datadog]
enabled = true
api_key = "placeholder"
site = "datadoghq.eu"
notify_on = ["failure", "success"]

[notifiers.github]
enabled = true
token = "${GITHUB_TOKEN}"

[notifiers.github.actions.pr_comment]
enabled = true
when = 'event.Resource == "taskrun" && event.State == "failure"'
```

```python
from tektonrelay.config import load

config = load("/etc/tekton-events-relay/config.toml")
config.notifiers.datadog.site   # "datadoghq.eu"
```

`${NAME}` references (upper-case names only) are replaced with the environment
variable's value, or an empty string when it is unset. Unknown keys are
ignored; a value of the wrong type, unreadable file or invalid TOML raises
`ConfigError`. Defaults: `server.addr` is `:8080`, both server timeouts are 10
seconds, `dedupe_size` is 10000, the logging level is `info`, and when neither
task runs nor pipeline runs are allowed the filter allows pipeline runs and
ignores unknown events.

## HTTP, retry and Datadog

`do_with_retry` retries network errors and the statuses 408, 429 and 5xx,
sleeping `base_delay` seconds and doubling the delay after each attempt, and
raises `RetryError` once all attempts fail. `new_client` builds an
`HttpClient` (a `requests` session with a timeout); with `debug=True` and a
logger it logs each request and response, bodies cut to 4 KiB.

```python
from tektonrelay.datadog import DatadogNotifier, DatadogOptions

notifier = DatadogNotifier(DatadogOptions(api_key="placeholder", tags=["team:ci"]))
notifier.notify(report)
```

The notifier posts to `https://api.<site>/api/v2/events` (site defaults to
`datadoghq.com`) with the `DD-API-KEY` header, tags for state, context,
namespace, run, resource and the short commit SHA, plus the configured tags.
States not listed in `notify_on` are skipped (an empty list means every state).
Sending goes through `Base.send`, which makes three attempts and raises
`NotifyError` when the response status is 300 or above.

## Logging

`new_logger(level, debug)` returns the `tektonrelay` logger writing one JSON
object per line to stderr, with `level`, `time`, `caller`, `msg` and any extra
fields. Unknown levels fall back to `info`; `debug=True` forces debug.

## What this package does not do

There is no command and no HTTP server: receiving requests, choosing a
decoder and dispatching to handlers is left to the caller. There is no
de-duplication, enrichment or dispatch chain. Datadog is the only notifier that
sends anything; the configuration accepts sections for GitHub, GitLab,
Bitbucket, Azure DevOps, Gitea, SourceHut, Slack, Teams, Discord, PagerDuty and
generic webhooks, but the package has no senders for them.