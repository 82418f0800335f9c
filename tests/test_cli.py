"""Tests for cpstress.cli module."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from cpstress import logging as cp_logging
from cpstress.cli import app
from cpstress.models.paths import RunId, SolutionName
from cpstress.models.verdict import CaseStatus
from cpstress.settings import get_settings, reload_settings
from cpstress.store.results import ResultStore

runner = CliRunner()


@pytest.fixture
def home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[Path]:
    """Point the CLI at a throwaway store and reset cached settings and logging."""
    home = tmp_path / "home"
    monkeypatch.setenv("CPSTRESS_HOME", str(home))
    monkeypatch.setenv("CPSTRESS_NUM_TESTS", "2")
    monkeypatch.setenv("CPSTRESS_LOG_LEVEL", "WARNING")
    monkeypatch.chdir(tmp_path)
    reload_settings()
    logger = logging.getLogger(cp_logging.LOGGER_NAME)
    saved = list(logger.handlers)
    yield home
    get_settings.cache_clear()
    logger.handlers[:] = saved
    cp_logging._configured = False


def _only_run(home: Path, solution: str = "sol.py") -> RunId:
    (run_id,) = ResultStore(home).list_runs(SolutionName(solution))
    return run_id


class TestInit:
    def test_creates_stubs(self, home: Path, tmp_path: Path) -> None:
        sol = tmp_path / "a.cpp"
        sol.write_text("int main() {}\n", encoding="utf-8")
        result = runner.invoke(app, ["init", str(sol)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "a.genval.cpp").is_file()
        assert (tmp_path / "a.check.cpp").is_file()

    def test_keeps_existing_without_force(self, home: Path, tmp_path: Path) -> None:
        sol = tmp_path / "a.cpp"
        gen = tmp_path / "a.genval.cpp"
        gen.write_text("// mine\n", encoding="utf-8")
        runner.invoke(app, ["init", str(sol)])
        assert gen.read_text(encoding="utf-8") == "// mine\n"
        runner.invoke(app, ["init", str(sol), "--force"])
        assert gen.read_text(encoding="utf-8") != "// mine\n"

    def test_init_from_checker_path(self, home: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["init", str(tmp_path / "b.check.cpp")])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "b.genval.cpp").is_file()
        assert (tmp_path / "b.check.cpp").is_file()
        assert not (tmp_path / "b.check.genval.cpp").exists()


class TestRun:
    def test_passing_session(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["run", str(programs["solution"])])
        assert result.exit_code == 0, result.output
        assert "Stress test running" in result.output
        assert "Summary (2 cases)" in result.output
        run_id = _only_run(home)
        assert len(ResultStore(home).list_results(run_id)) == 2

    def test_num_tests_option(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["run", str(programs["solution"]), "-n", "1"])
        assert result.exit_code == 0, result.output
        assert len(ResultStore(home).list_results(_only_run(home))) == 1

    def test_failing_session_exit_code(
        self, home: Path, programs: dict[str, Path], make_script: Any
    ) -> None:
        wrong = make_script("wrong.py", "n = int(input())\nprint(-n)\n")
        args = ["run", str(wrong), "-g", str(programs["generator"]), "-c", str(programs["checker"])]
        result = runner.invoke(app, args)
        assert result.exit_code == 1, result.output
        assert "WA" in result.output

    def test_json_output(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["run", str(programs["solution"]), "--json"])
        assert result.exit_code == 0, result.output
        payloads = [json.loads(line) for line in result.output.splitlines() if line.strip()]
        assert [p.get("status") for p in payloads[:-1]] == ["Running", "OK", "Running", "OK"]
        assert payloads[-1]["summary"] == {"OK": 2}
        assert payloads[-1]["runId"] == _only_run(home)

    def test_missing_generator(self, home: Path, make_script: Any) -> None:
        sol = make_script("lonely.py", "print(1)\n")
        result = runner.invoke(app, ["run", str(sol)])
        assert result.exit_code == 2
        assert "Generator not found" in result.output

    def test_companion_path_maps_to_solution(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["run", str(programs["checker"]), "-n", "1"])
        assert result.exit_code == 0, result.output
        assert "Using solution " in result.output
        assert ResultStore(home).list_solutions() == ["sol.py"]

    def test_compile_failure(self, home: Path, programs: dict[str, Path], tmp_path: Path) -> None:
        bad = tmp_path / "bad.check.py"
        bad.write_text("print(1)\n", encoding="utf-8")
        result = runner.invoke(app, ["run", str(programs["solution"]), "-c", str(bad)])
        assert result.exit_code == 2
        assert "Compilation failed." in result.output


class TestRerun:
    def test_rerun_single_case(self, home: Path, programs: dict[str, Path]) -> None:
        assert runner.invoke(app, ["run", str(programs["solution"])]).exit_code == 0
        run_id = _only_run(home)
        result = runner.invoke(
            app, ["rerun", str(programs["solution"]), "--run", run_id, "--case", "2"]
        )
        assert result.exit_code == 0, result.output
        assert f"[{run_id}/2] OK" in result.output

    def test_rerun_from_selection_file(
        self, home: Path, programs: dict[str, Path], tmp_path: Path
    ) -> None:
        assert runner.invoke(app, ["run", str(programs["solution"])]).exit_code == 0
        run_id = _only_run(home)
        pick = tmp_path / "pick.yaml"
        pick.write_text(f"'{run_id}': all\n", encoding="utf-8")
        result = runner.invoke(app, ["rerun", str(programs["solution"]), "-s", str(pick)])
        assert result.exit_code == 0, result.output
        assert "Summary (2 cases)" in result.output

    def test_requires_a_selection(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["rerun", str(programs["solution"])])
        assert result.exit_code == 2
        assert "--selection" in result.output

    def test_unknown_run(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["rerun", str(programs["solution"]), "--run", "ghost"])
        assert result.exit_code == 2
        assert "unknown run id" in result.output

    def test_case_requires_run(self, home: Path, programs: dict[str, Path]) -> None:
        result = runner.invoke(app, ["rerun", str(programs["solution"]), "--case", "1"])
        assert result.exit_code == 2
        assert "--case needs --run" in result.output

    def test_selection_and_run_are_exclusive(
        self, home: Path, programs: dict[str, Path], tmp_path: Path
    ) -> None:
        pick = tmp_path / "pick.yaml"
        pick.write_text("x: all\n", encoding="utf-8")
        args = ["rerun", str(programs["solution"]), "-s", str(pick), "--run", "x"]
        result = runner.invoke(app, args)
        assert result.exit_code == 2
        assert "not both" in result.output

    def test_notes_runs_of_another_solution(
        self, home: Path, programs: dict[str, Path], make_script: Any
    ) -> None:
        wrong = make_script("wrong.py", "n = int(input())\nprint(-n)\n")
        args = ["run", str(wrong), "-g", str(programs["generator"]), "-c", str(programs["checker"])]
        assert runner.invoke(app, args).exit_code == 1
        run_id = _only_run(home, "wrong.py")
        result = runner.invoke(app, ["rerun", str(programs["solution"]), "--run", run_id])
        assert result.exit_code == 0, result.output
        assert f"run {run_id} was recorded for wrong.py, replaying with sol.py" in result.output


class TestBrowseAndDelete:
    def test_listing_commands(self, home: Path, programs: dict[str, Path]) -> None:
        assert runner.invoke(app, ["run", str(programs["solution"])]).exit_code == 0
        run_id = _only_run(home)

        result = runner.invoke(app, ["solutions"])
        assert result.output.split() == ["sol.py"]

        result = runner.invoke(app, ["runs", "sol.py"])
        assert result.output.split() == [run_id]

        result = runner.invoke(app, ["results", run_id])
        assert result.exit_code == 0
        assert len(result.output.strip().splitlines()) == 2

        result = runner.invoke(app, ["results", run_id, "--json"])
        records = json.loads(result.output)
        assert [r["test_case"] for r in records] == [1, 2]
        assert all(r["last_result"] == CaseStatus.OK.value for r in records)

    def test_delete_commands(self, home: Path, programs: dict[str, Path]) -> None:
        assert runner.invoke(app, ["run", str(programs["solution"])]).exit_code == 0
        run_id = _only_run(home)
        store = ResultStore(home)

        assert runner.invoke(app, ["delete-result", run_id, "1"]).exit_code == 0
        assert [r.test_case for r in store.list_results(run_id)] == [2]

        assert runner.invoke(app, ["delete-run", run_id]).exit_code == 0
        assert store.list_runs(SolutionName("sol.py")) == []
        assert not store.run_dir(run_id).exists()

        assert runner.invoke(app, ["run", str(programs["solution"])]).exit_code == 0
        assert runner.invoke(app, ["delete-solution", "sol.py"]).exit_code == 0
        assert store.list_solutions() == []
