"""Drives full stress-test sessions and re-runs of stored cases."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

from cpstress.compiler import Compiler
from cpstress.errors import ValidationError
from cpstress.logging import get_logger
from cpstress.models.events import CaseEvent, RunningEvent, SummaryEvent
from cpstress.models.paths import RunId
from cpstress.models.verdict import CaseRecord, CaseVerdict, RunSummary
from cpstress.reporting.protocol import Reporter, emit_error, emit_lifecycle, emit_progress
from cpstress.runner.case import CaseRunner
from cpstress.store.results import ResultStore

log = get_logger("orchestrator")

Selection = Mapping[RunId, Sequence[CaseRecord]]


class Orchestrator:
    """
    Sequential session driver.

    Case i+1 starts only after case i has been generated, run, checked,
    persisted and reported. A failing case never stops the loop; only a
    compilation failure ends a session early.
    """

    def __init__(
        self,
        *,
        store: ResultStore,
        compiler: Compiler,
        case_runner: CaseRunner,
        reporter: Reporter,
    ) -> None:
        self.store = store
        self.compiler = compiler
        self.case_runner = case_runner
        self.reporter = reporter

    async def run(
        self,
        solution_path: str | Path,
        generator_path: str | Path,
        checker_path: str | Path,
        num_tests: int,
    ) -> RunSummary | None:
        """Generate and check `num_tests` fresh cases in a new run.

        Returns the status histogram, or None when compilation failed.
        """
        if num_tests < 0:
            raise ValidationError(f"num_tests must be >= 0, got {num_tests}")
        await emit_lifecycle(self.reporter, cleared=True)

        paths = self.store.setup(solution_path)
        solution_name = self.store.solution_name(solution_path)
        run_id = RunId(paths.run_id)
        self.store.initialize_run(solution_name, run_id)
        log.info("run %s for %s: %d cases", run_id, solution_name, num_tests)

        try:
            exes = await self.compiler.compile_all(
                paths.temp_dir, solution_path, generator_path, checker_path
            )
            if exes is None or exes.generator is None:
                await emit_error(self.reporter, "Compilation failed.")
                return None

            summary = RunSummary(run_id=run_id)
            for i in range(1, num_tests + 1):
                await emit_progress(self.reporter, RunningEvent(test_case=i))
                verdict = await self.case_runner.run(
                    paths.temp_dir, exes.solution, exes.generator, exes.checker
                )
                self._record(summary, verdict)
                self.store.save_result(paths.run_dir, CaseRecord.from_verdict(i, verdict))
                await emit_progress(self.reporter, CaseEvent.from_verdict(i, verdict))

            await emit_progress(self.reporter, SummaryEvent.from_summary(summary))
            log.info("run %s finished: %s", run_id, summary.counts)
            return summary
        finally:
            self.store.cleanup([paths.temp_dir])

    async def rerun(
        self,
        solution_path: str | Path,
        checker_path: str | Path,
        selection: Selection,
    ) -> RunSummary | None:
        """Replay stored inputs of the selected cases and overwrite their records."""
        await emit_lifecycle(self.reporter)
        temp_dir = self.store.ensure_temp_dir()
        try:
            exes = await self.compiler.compile_for_rerun(temp_dir, solution_path, checker_path)
            if exes is None:
                await emit_error(self.reporter, "Compilation failed.")
                return None

            summary = RunSummary()
            for run_id, cases in selection.items():
                for case in cases:
                    n = case.test_case
                    await emit_progress(self.reporter, RunningEvent(test_case=n, run_id=run_id))
                    verdict = await self.case_runner.run_with_input(
                        temp_dir, exes.solution, exes.checker, case.input or ""
                    )
                    self._record(summary, verdict)
                    self.store.update_result(run_id, CaseRecord.from_verdict(n, verdict))
                    await emit_progress(
                        self.reporter, CaseEvent.from_verdict(n, verdict, run_id=run_id)
                    )

            await emit_progress(self.reporter, SummaryEvent.from_summary(summary))
            log.info("re-run finished: %s", summary.counts)
            return summary
        finally:
            self.store.cleanup([temp_dir])

    @staticmethod
    def _record(summary: RunSummary, verdict: CaseVerdict) -> None:
        summary.tally(verdict.status)
        log.debug("case verdict %s", verdict)
