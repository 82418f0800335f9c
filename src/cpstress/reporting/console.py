import json

import typer

from cpstress.models.events import CaseEvent, ProgressEvent, RunningEvent, SummaryEvent
from cpstress.models.verdict import CaseStatus

_PREVIEW = 60


def _preview(text: str | None) -> str:
    if not text:
        return ""
    first = text.strip().splitlines()[0] if text.strip() else ""
    return first[:_PREVIEW] + ("…" if len(first) > _PREVIEW or "\n" in text.strip() else "")


class ConsoleReporter:
    """Renders progress on the terminal with `typer.echo`.

    `verbose` also prints the 'Running' line before each case; `as_json`
    emits one JSON payload per event instead of human readable lines.
    """

    def __init__(self, *, verbose: bool = False, as_json: bool = False) -> None:
        self.verbose = verbose
        self.as_json = as_json

    async def report_progress(self, event: ProgressEvent) -> None:
        if self.as_json:
            typer.echo(json.dumps(event.payload(), ensure_ascii=False))
            return
        if isinstance(event, RunningEvent):
            if self.verbose:
                where = f"{event.run_id}/" if event.run_id else ""
                typer.echo(f"[{where}{event.test_case}] running…")
        elif isinstance(event, CaseEvent):
            typer.echo(self._case_line(event))
        elif isinstance(event, SummaryEvent):
            typer.echo(self._summary_block(event))

    async def report_error(self, message: str) -> None:
        typer.echo(f"Error: {message}", err=True)

    async def report_history_cleared(self) -> None:
        if self.verbose and not self.as_json:
            typer.echo("History cleared.")

    async def report_test_running(self) -> None:
        if not self.as_json:
            typer.echo("Stress test running…")

    @staticmethod
    def _case_line(event: CaseEvent) -> str:
        where = f"{event.run_id}/" if event.run_id else ""
        mark = "✅" if event.status == CaseStatus.OK else "❌"
        line = f"[{where}{event.test_case}] {event.status.value} {mark}"
        if event.time is not None:
            line += f"  time={event.time:.0f}ms"
        detail = event.message or event.reason
        if detail:
            line += f"  {_preview(detail)}"
        return line

    @staticmethod
    def _summary_block(event: SummaryEvent) -> str:
        total = sum(event.summary.values())
        lines = [f"\nSummary ({total} cases):"]
        for status, count in sorted(event.summary.items()):
            lines.append(f"  {status:<14} {count}")
        return "\n".join(lines)
