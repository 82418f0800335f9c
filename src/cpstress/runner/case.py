# src/cpstress/runner/case.py

from pathlib import Path
from typing import Protocol, Sequence

from cpstress.models.execution import ExecutionResult, Limits, RawExecutionResult
from cpstress.models.verdict import CaseStatus, CaseVerdict

INPUT_FILE = "input.txt"
OUTPUT_FILE = "output.txt"

CHECKER_ACCEPT = 0
CHECKER_REJECT = 1


class Executor(Protocol):
    """What the case runner needs from a process executor."""

    async def run(
        self, command: str | Path, stdin_text: str = "", limits: Limits | None = None
    ) -> ExecutionResult: ...

    async def run_raw(
        self, command: str | Path, args: Sequence[str | Path] = ()
    ) -> RawExecutionResult: ...


class CaseRunner:
    """
    Executes one test case end to end and returns a verdict.

    Pipeline:
        - generator (empty stdin); any stderr is fatal to the case
        - solution fed the generated input, under limits
        - checker invoked as ``checker <input file> <output file>``;
          exit 0 accepts, 1 rejects, anything else is a checker malfunction
    """

    def __init__(self, executor: Executor, limits: Limits | None = None) -> None:
        self._executor = executor
        self._limits = limits

    async def run(
        self,
        temp_dir: Path,
        solution_exec: str | Path,
        generator_exec: str | Path,
        checker_exec: str | Path,
    ) -> CaseVerdict:
        gen = await self._executor.run(generator_exec, "", self._limits)
        if gen.stderr:
            return CaseVerdict(status=CaseStatus.ERROR, message=f"Generator error: {gen.stderr}")
        return await self.run_with_input(temp_dir, solution_exec, checker_exec, gen.stdout)

    async def run_with_input(
        self,
        temp_dir: Path,
        solution_exec: str | Path,
        checker_exec: str | Path,
        input: str,
    ) -> CaseVerdict:
        sol = await self._executor.run(solution_exec, input, self._limits)
        if sol.status != CaseStatus.OK:
            return CaseVerdict(
                status=sol.status,
                input=input,
                duration_ms=sol.duration_ms,
                memory_kb=sol.memory_kb,
            )
        if sol.stderr:
            return CaseVerdict(
                status=CaseStatus.RUNTIME_ERROR,
                input=input,
                duration_ms=sol.duration_ms,
                memory_kb=sol.memory_kb,
                message=f"Solution runtime error: {sol.stderr}",
            )

        input_file = Path(temp_dir) / INPUT_FILE
        output_file = Path(temp_dir) / OUTPUT_FILE
        input_file.write_text(input, encoding="utf-8")
        output_file.write_text(sol.stdout, encoding="utf-8")

        chk = await self._executor.run_raw(checker_exec, [input_file, output_file])
        common = {
            "input": input,
            "output": sol.stdout,
            "duration_ms": sol.duration_ms,
            "memory_kb": sol.memory_kb,
        }
        if chk.exit_code == CHECKER_ACCEPT:
            return CaseVerdict(status=CaseStatus.OK, **common)
        if chk.exit_code == CHECKER_REJECT:
            return CaseVerdict(status=CaseStatus.WA, reason=chk.stderr, **common)
        detail = chk.stderr or chk.spawn_error or _describe_exit(chk)
        return CaseVerdict(status=CaseStatus.ERROR, message=f"Checker error: {detail}", **common)


def _describe_exit(chk: RawExecutionResult) -> str:
    if chk.signal:
        return f"terminated by {chk.signal}"
    return f"exit code {chk.exit_code}"
