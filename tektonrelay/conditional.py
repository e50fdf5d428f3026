"""Action handler wrapper guarded by a CEL expression."""

from __future__ import annotations

import logging
from typing import Any

from tektonrelay.cel import CelError, CelProgram
from tektonrelay.domain import Event


class ConditionalHandler:
    """Run the inner handler only when the guard expression holds.

    Without a program the inner handler always runs. An evaluation error
    is logged and raised, so the handler fails closed.
    """

    def __init__(
        self,
        inner: Any,
        program: CelProgram | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._inner = inner
        self._program = program
        self._log = logger if logger is not None else logging.getLogger("tektonrelay.conditional")

    def name(self) -> str:
        """The inner handler's name."""
        return self._inner.name()

    def type(self) -> Any:
        """The inner handler's action type."""
        return self._inner.type()

    def handle(self, event: Event) -> Any:
        """Evaluate the guard, then delegate or skip."""
        if self._program is None:
            return self._inner.handle(event)

        try:
            matched = self._program.eval(event)
        except CelError as exc:
            self._log.error(
                "CEL evaluation failed",
                extra={"handler": self._inner.name(), "error": str(exc)},
            )
            raise

        if not matched:
            self._log.debug(
                "handler skipped by CEL condition",
                extra={
                    "handler": self._inner.name(),
                    "event_resource": str(event.resource),
                    "event_state": str(event.state),
                    "event_run_name": event.run_name,
                },
            )
            return None

        return self._inner.handle(event)