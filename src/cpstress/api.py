import asyncio
from pathlib import Path
from typing import Any, Coroutine, Iterable, Mapping

import yaml

from cpstress.compiler import Compiler
from cpstress.errors import ValidationError
from cpstress.executor import ProcessExecutor
from cpstress.models.paths import RunId
from cpstress.models.verdict import CaseRecord, RunSummary
from cpstress.orchestrator import Orchestrator, Selection
from cpstress.reporting.protocol import NullReporter, Reporter
from cpstress.runner.case import CaseRunner
from cpstress.settings import CpstressSettings, get_settings, limits_from_settings
from cpstress.store.results import ResultStore
from cpstress.toolchain import SuffixToolchain, Toolchain

ALL_CASES = "all"


def build_orchestrator(
    settings: CpstressSettings | None = None,
    *,
    reporter: Reporter | None = None,
    toolchain: Toolchain | None = None,
    store: ResultStore | None = None,
) -> Orchestrator:
    """Wire the default components from settings; any piece can be swapped in."""
    s = settings or get_settings()
    rep: Reporter = reporter or NullReporter()
    limits = limits_from_settings(s)
    return Orchestrator(
        store=store or ResultStore(s.home),
        compiler=Compiler(toolchain or SuffixToolchain.from_settings(s), rep),
        case_runner=CaseRunner(ProcessExecutor(limits), limits),
        reporter=rep,
    )


async def stress_test_async(
    solution_path: str | Path,
    generator_path: str | Path,
    checker_path: str | Path,
    *,
    num_tests: int | None = None,
    settings: CpstressSettings | None = None,
    reporter: Reporter | None = None,
    toolchain: Toolchain | None = None,
) -> RunSummary | None:
    """Run a fresh stress-test session; None means compilation failed."""
    s = settings or get_settings()
    orchestrator = build_orchestrator(s, reporter=reporter, toolchain=toolchain)
    n = s.num_tests if num_tests is None else num_tests
    return await orchestrator.run(solution_path, generator_path, checker_path, n)


async def rerun_async(
    solution_path: str | Path,
    checker_path: str | Path,
    selection: Selection,
    *,
    settings: CpstressSettings | None = None,
    reporter: Reporter | None = None,
    toolchain: Toolchain | None = None,
) -> RunSummary | None:
    """Replay the selected stored cases against a (possibly fixed) solution."""
    orchestrator = build_orchestrator(settings, reporter=reporter, toolchain=toolchain)
    return await orchestrator.rerun(solution_path, checker_path, selection)


def resolve_selection(
    store: ResultStore, wanted: Mapping[str, Iterable[int] | str]
) -> dict[RunId, list[CaseRecord]]:
    """Turn ``{run id: [case numbers] | "all"}`` into stored records.

    Unknown runs or case numbers raise ValidationError; nothing is replayed
    half-way.
    """
    out: dict[RunId, list[CaseRecord]] = {}
    for raw_run, cases in wanted.items():
        run_id = RunId(str(raw_run))
        if not store.run_dir(run_id).is_dir():
            raise ValidationError(f"unknown run id {run_id!r}")
        if isinstance(cases, str):
            if cases != ALL_CASES:
                raise ValidationError(
                    f"run {run_id!r}: expected a list of case numbers or '{ALL_CASES}'"
                )
            out[run_id] = store.list_results(run_id)
            continue
        records: list[CaseRecord] = []
        for case_no in cases:
            if isinstance(case_no, bool) or not isinstance(case_no, int):
                raise ValidationError(f"run {run_id!r}: case numbers must be integers")
            record = store.read_result(run_id, case_no)
            if record is None:
                raise ValidationError(f"run {run_id!r} has no readable case {case_no}")
            records.append(record)
        out[run_id] = records
    return out


def load_selection(store: ResultStore, path: str | Path) -> dict[RunId, list[CaseRecord]]:
    """Load a YAML selection file and resolve it against the store.

    Format::

        2024-05-01T10-00-00-000Z: [3, 7]
        2024-05-02T09-30-00-000Z: all
    """
    p = Path(path)
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as ex:
        raise ValidationError(f"Cannot read selection '{path}': {ex}") from ex
    if not isinstance(data, dict) or not data:
        raise ValidationError(f"Selection '{path}' must map run ids to case lists")
    return resolve_selection(store, data)


def _run_sync(coro: Coroutine[Any, Any, RunSummary | None]) -> RunSummary | None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop and loop.is_running():
        coro.close()
        raise RuntimeError(
            "An asyncio event loop is running. Use the `*_async` variants in async contexts."
        )
    return asyncio.run(coro)


def stress_test(
    solution_path: str | Path,
    generator_path: str | Path,
    checker_path: str | Path,
    *,
    num_tests: int | None = None,
    settings: CpstressSettings | None = None,
    reporter: Reporter | None = None,
    toolchain: Toolchain | None = None,
) -> RunSummary | None:
    """Synchronous wrapper around `stress_test_async`."""
    return _run_sync(
        stress_test_async(
            solution_path,
            generator_path,
            checker_path,
            num_tests=num_tests,
            settings=settings,
            reporter=reporter,
            toolchain=toolchain,
        )
    )


def rerun(
    solution_path: str | Path,
    checker_path: str | Path,
    selection: Selection,
    *,
    settings: CpstressSettings | None = None,
    reporter: Reporter | None = None,
    toolchain: Toolchain | None = None,
) -> RunSummary | None:
    """Synchronous wrapper around `rerun_async`."""
    return _run_sync(
        rerun_async(
            solution_path,
            checker_path,
            selection,
            settings=settings,
            reporter=reporter,
            toolchain=toolchain,
        )
    )
