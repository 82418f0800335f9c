# src/cpstress/cli.py

import asyncio
import json
from pathlib import Path
from typing import Mapping

import typer

from cpstress.api import load_selection, rerun_async, resolve_selection, stress_test_async
from cpstress.errors import ValidationError
from cpstress.logging import configure_logging
from cpstress.models.paths import RunId, SolutionName
from cpstress.models.verdict import RunSummary
from cpstress.reporting.console import ConsoleReporter
from cpstress.scaffold import (
    TestFileScaffold,
    checker_path_for,
    generator_path_for,
    solution_path_for,
)
from cpstress.settings import get_settings
from cpstress.store.results import ResultStore

app = typer.Typer(help="cpstress: stress-test competitive programming solutions.")

EXIT_FAILED_CASES = 1
EXIT_ABORTED = 2


@app.callback()
def _main(
    log_level: str | None = typer.Option(None, "--log-level", help="Override CPSTRESS_LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


def _store() -> ResultStore:
    return ResultStore(get_settings().home)


def _finish(summary: RunSummary | None) -> None:
    if summary is None:
        raise typer.Exit(code=EXIT_ABORTED)
    raise typer.Exit(code=0 if summary.all_ok else EXIT_FAILED_CASES)


def _existing(path: Path, what: str) -> Path:
    if not path.is_file():
        typer.echo(f"{what} not found: {path}. Run `cpstress init` to create it.", err=True)
        raise typer.Exit(code=EXIT_ABORTED)
    return path


def _solution(path: Path) -> Path:
    """Accept a generator or checker path where the solution is expected."""
    solution = solution_path_for(path)
    if solution != path:
        typer.echo(f"Using solution {solution}", err=True)
    return solution


def _warn_foreign_runs(
    store: ResultStore, solution: Path, chosen: Mapping[RunId, object]
) -> None:
    name = store.solution_name(solution)
    for run_id in chosen:
        owner = store.find_owner(run_id)
        if owner is not None and owner != name:
            typer.echo(f"Note: run {run_id} was recorded for {owner}, replaying with {name}", err=True)


@app.command("init")
def init(
    solution: Path = typer.Argument(..., help="Solution source file."),
    force: bool = typer.Option(False, "--force", help="Overwrite existing generator/checker."),
) -> None:
    """
    Create generator and checker stubs next to <solution>.
    """
    gen, chk = TestFileScaffold().create_test_files(_solution(solution), overwrite=force)
    typer.echo(f"generator: {gen}")
    typer.echo(f"checker:   {chk}")


@app.command("run")
def run(
    solution: Path = typer.Argument(
        ..., exists=True, dir_okay=False, resolve_path=True, help="Solution source file."
    ),
    generator: Path | None = typer.Option(
        None, "--generator", "-g", help="Generator source (default: <solution>.genval.<ext>)."
    ),
    checker: Path | None = typer.Option(
        None, "--checker", "-c", help="Checker source (default: <solution>.check.<ext>)."
    ),
    num_tests: int | None = typer.Option(
        None, "--num-tests", "-n", min=0, help="Number of cases (default from settings)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print a line per started case."),
    as_json: bool = typer.Option(False, "--json", help="Emit progress events as JSON lines."),
) -> None:
    """
    Run a fresh stress-test session for <solution>.
    """
    solution = _existing(_solution(solution), "Solution")
    gen = _existing(generator or generator_path_for(solution), "Generator")
    chk = _existing(checker or checker_path_for(solution), "Checker")
    reporter = ConsoleReporter(verbose=verbose, as_json=as_json)
    summary = asyncio.run(
        stress_test_async(solution, gen, chk, num_tests=num_tests, reporter=reporter)
    )
    _finish(summary)


@app.command("rerun")
def rerun_cases(
    solution: Path = typer.Argument(
        ..., exists=True, dir_okay=False, resolve_path=True, help="Solution source file."
    ),
    checker: Path | None = typer.Option(
        None, "--checker", "-c", help="Checker source (default: <solution>.check.<ext>)."
    ),
    selection: Path | None = typer.Option(
        None, "--selection", "-s", help="YAML file mapping run ids to case numbers."
    ),
    run_id: str | None = typer.Option(None, "--run", "-r", help="Run id to replay from."),
    cases: list[int] | None = typer.Option(
        None, "--case", help="Case number to replay (repeatable; default: all cases of --run)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print a line per started case."),
    as_json: bool = typer.Option(False, "--json", help="Emit progress events as JSON lines."),
) -> None:
    """
    Replay stored inputs against <solution> and overwrite the stored results.
    """
    chk = _existing(checker or checker_path_for(solution), "Checker")
    store = _store()
    try:
        if cases and run_id is None:
            raise ValidationError("--case needs --run RUN_ID")
        if selection is not None and run_id is not None:
            raise ValidationError("Pass either --selection or --run, not both")
        if selection is not None:
            chosen = load_selection(store, selection)
        elif run_id is not None:
            chosen = resolve_selection(store, {run_id: cases or "all"})
        else:
            raise ValidationError("Pass --selection FILE or --run RUN_ID [--case N ...]")
    except ValidationError as ex:
        typer.echo(f"Error: {ex}", err=True)
        raise typer.Exit(code=EXIT_ABORTED)
    _warn_foreign_runs(store, solution, chosen)

    reporter = ConsoleReporter(verbose=verbose, as_json=as_json)
    summary = asyncio.run(rerun_async(solution, chk, chosen, reporter=reporter))
    _finish(summary)


@app.command("solutions")
def solutions() -> None:
    """List solutions with stored runs."""
    for name in _store().list_solutions():
        typer.echo(name)


@app.command("runs")
def runs(name: str = typer.Argument(..., help="Solution name (file base name).")) -> None:
    """List run ids of a solution, oldest first."""
    for run_id in _store().list_runs(SolutionName(name)):
        typer.echo(run_id)


@app.command("results")
def results(
    run_id: str = typer.Argument(..., help="Run id."),
    as_json: bool = typer.Option(False, "--json", help="Print full records as JSON."),
) -> None:
    """Show the stored cases of a run."""
    records = _store().list_results(RunId(run_id))
    if as_json:
        typer.echo(
            json.dumps([r.model_dump(mode="json") for r in records], indent=2, ensure_ascii=False)
        )
        return
    if not records:
        typer.echo(f"No results for run {run_id}", err=True)
        return
    for r in records:
        time = f"{r.exec_time:.0f}ms" if r.exec_time is not None else "-"
        detail = r.message or r.reason or ""
        typer.echo(f"{r.test_case:>5}  {r.last_result.value:<14} {time:>8}  {detail.strip()[:60]}")


@app.command("delete-solution")
def delete_solution(name: str = typer.Argument(..., help="Solution name.")) -> None:
    """Delete a solution and all of its runs."""
    _store().delete_solution(SolutionName(name))
    typer.echo(f"Deleted {name}")


@app.command("delete-run")
def delete_run(run_id: str = typer.Argument(..., help="Run id.")) -> None:
    """Delete one run and its case files."""
    _store().delete_run(RunId(run_id))
    typer.echo(f"Deleted run {run_id}")


@app.command("delete-result")
def delete_result(
    run_id: str = typer.Argument(..., help="Run id."),
    case_no: int = typer.Argument(..., min=1, help="Case number."),
) -> None:
    """Delete one stored case."""
    _store().delete_result(RunId(run_id), case_no)
    typer.echo(f"Deleted case {case_no} of run {run_id}")
