"""Compilation of the solution, generator and checker sources."""

from __future__ import annotations

from pathlib import Path

from cpstress.errors import CompileError
from cpstress.logging import get_logger
from cpstress.models.paths import ExecutableSet
from cpstress.reporting.protocol import Reporter, emit_error
from cpstress.toolchain import Toolchain

SOLUTION_EXEC = "solution_exec"
GENERATOR_EXEC = "generator_exec"
CHECKER_EXEC = "checker_exec"

log = get_logger("compiler")


class Compiler:
    """Wraps a toolchain so callers only ever see a boolean."""

    def __init__(self, toolchain: Toolchain, reporter: Reporter) -> None:
        self._toolchain = toolchain
        self._reporter = reporter

    async def compile(self, source_path: str | Path, output_path: str | Path) -> bool:
        source = Path(source_path)
        output = Path(output_path)
        try:
            await self._toolchain.build(source, output)
        except CompileError as ex:
            log.info("compilation of %s failed", source.name)
            await emit_error(
                self._reporter, f"Compilation failed for {source.name}: {ex.diagnostic}"
            )
            return False
        log.debug("compiled %s -> %s", source, output)
        return True

    async def compile_all(
        self,
        temp_dir: Path,
        solution_path: str | Path,
        generator_path: str | Path,
        checker_path: str | Path,
    ) -> ExecutableSet | None:
        """Compile all three programs, stopping at the first failure."""
        solution = temp_dir / SOLUTION_EXEC
        generator = temp_dir / GENERATOR_EXEC
        checker = temp_dir / CHECKER_EXEC
        if not await self.compile(solution_path, solution):
            return None
        if not await self.compile(generator_path, generator):
            return None
        if not await self.compile(checker_path, checker):
            return None
        return ExecutableSet(solution=solution, generator=generator, checker=checker)

    async def compile_for_rerun(
        self, temp_dir: Path, solution_path: str | Path, checker_path: str | Path
    ) -> ExecutableSet | None:
        """Compile solution and checker only; replays never regenerate inputs."""
        solution = temp_dir / SOLUTION_EXEC
        checker = temp_dir / CHECKER_EXEC
        if not await self.compile(solution_path, solution):
            return None
        if not await self.compile(checker_path, checker):
            return None
        return ExecutableSet(solution=solution, checker=checker)
