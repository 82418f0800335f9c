"""Reporter protocol: the push channel between the engine and any front end.

A reporter receives progress events, user-facing errors and two lifecycle
signals. Console output, an event bus or a test double all satisfy it; the
engine never knows which one it is talking to.
"""

from typing import Protocol

from cpstress.logging import get_logger
from cpstress.models.events import ProgressEvent

log = get_logger("reporting")


class Reporter(Protocol):
    """Minimal contract for a reporting sink."""

    async def report_progress(self, event: ProgressEvent) -> None: ...

    async def report_error(self, message: str) -> None: ...

    async def report_history_cleared(self) -> None: ...

    async def report_test_running(self) -> None: ...


class NullReporter:
    """Discards everything."""

    async def report_progress(self, event: ProgressEvent) -> None:
        return None

    async def report_error(self, message: str) -> None:
        return None

    async def report_history_cleared(self) -> None:
        return None

    async def report_test_running(self) -> None:
        return None


async def emit_progress(reporter: Reporter | None, event: ProgressEvent) -> None:
    """
    Best-effort progress emission. Never raises into the session.
    """
    if reporter is None:
        return
    try:
        await reporter.report_progress(event)
    except Exception:
        log.warning("reporter failed on progress event %r", event, exc_info=True)


async def emit_error(reporter: Reporter | None, message: str) -> None:
    """Best-effort error emission."""
    if reporter is None:
        return
    try:
        await reporter.report_error(message)
    except Exception:
        log.warning("reporter failed on error message %r", message, exc_info=True)


async def emit_lifecycle(reporter: Reporter | None, *, cleared: bool = False) -> None:
    """Signal 'history cleared' (optionally) followed by 'run started'."""
    if reporter is None:
        return
    try:
        if cleared:
            await reporter.report_history_cleared()
        await reporter.report_test_running()
    except Exception:
        log.warning("reporter failed on lifecycle signal", exc_info=True)


__all__ = ["Reporter", "NullReporter", "emit_progress", "emit_error", "emit_lifecycle"]
