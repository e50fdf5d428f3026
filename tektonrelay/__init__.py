"""Decode Tekton CloudEvents, guard them with expressions and send them to Datadog."""

__version__ = "0.1.0"