"""File-backed bookkeeping of solutions, runs and per-case results.

Layout under the store root:
  temp/                      compiled executables + scratch input/output files
  results/main.json          {solution name: [run id, ...]}
  results/<run id>/test_<n>.json

The index is re-read on every call and rewritten whole on every change
(single-writer assumption). Readers tolerate drift between the index and the
run directories and never raise on missing or corrupt files.
"""

from __future__ import annotations

import json
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError as PydanticValidationError

from cpstress.errors import StoreError
from cpstress.logging import get_logger
from cpstress.models.paths import RunId, SolutionName, TestPaths
from cpstress.models.verdict import CaseRecord

TEMP_DIR = "temp"
RESULTS_DIR = "results"
INDEX_FILE = "main.json"

_RESULT_FILE = re.compile(r"^test_(\d+)\.json$")

log = get_logger("store")

Index = dict[str, list[str]]


def generate_nonce(now: datetime | None = None) -> RunId:
    """Sortable, filesystem-safe run id, e.g. ``2023-10-27T10-00-00-000Z``."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
    return RunId(re.sub(r"[:.]", "-", iso))


class ResultStore:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    # ── paths ────────────────────────────────────────────────────────────────

    @property
    def temp_dir(self) -> Path:
        return self.root / TEMP_DIR

    @property
    def results_dir(self) -> Path:
        return self.root / RESULTS_DIR

    @property
    def index_path(self) -> Path:
        return self.results_dir / INDEX_FILE

    def run_dir(self, run_id: RunId) -> Path:
        return self.results_dir / run_id

    def result_path(self, run_id: RunId, case_no: int) -> Path:
        return self.run_dir(run_id) / f"test_{case_no}.json"

    @staticmethod
    def solution_name(solution_path: str | Path) -> SolutionName:
        return SolutionName(Path(solution_path).name)

    def ensure_temp_dir(self) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        return self.temp_dir

    # ── session setup ────────────────────────────────────────────────────────

    def setup(self, solution_path: str | Path) -> TestPaths:
        """Ensure temp/results exist and create a fresh run directory."""
        self.ensure_temp_dir()
        self.results_dir.mkdir(parents=True, exist_ok=True)
        run_id = generate_nonce()
        run_dir = self.run_dir(run_id)
        run_dir.mkdir(parents=True, exist_ok=True)
        log.debug("created run directory %s", run_dir)
        return TestPaths(
            temp_dir=self.temp_dir,
            results_dir=self.results_dir,
            solution_path=Path(solution_path),
            run_id=run_id,
            run_dir=run_dir,
            index_path=self.index_path,
        )

    def initialize_run(self, solution_name: SolutionName, run_id: RunId) -> None:
        """Register `run_id` under `solution_name`; calling twice is harmless."""
        index = self._read_index()
        runs = index.setdefault(solution_name, [])
        if run_id not in runs:
            runs.append(run_id)
        self._write_index(index)
        self.run_dir(run_id).mkdir(parents=True, exist_ok=True)

    # ── writes ───────────────────────────────────────────────────────────────

    def save_result(self, run_dir: Path, record: CaseRecord) -> Path:
        """Write one case file, replacing any previous file for that case."""
        if record.test_case < 1:
            raise StoreError(f"case numbers start at 1, got {record.test_case}")
        run_dir = Path(run_dir)
        run_dir.mkdir(parents=True, exist_ok=True)
        path = run_dir / f"test_{record.test_case}.json"
        path.write_text(record.model_dump_json(indent=4), encoding="utf-8")
        log.debug("saved %s", path)
        return path

    def update_result(self, run_id: RunId, record: CaseRecord) -> Path:
        """Overwrite a stored case in place (re-runs)."""
        return self.save_result(self.run_dir(run_id), record)

    # ── reads ────────────────────────────────────────────────────────────────

    def list_solutions(self) -> list[SolutionName]:
        return [SolutionName(name) for name in self._read_index()]

    def list_runs(self, solution_name: SolutionName) -> list[RunId]:
        return [RunId(r) for r in self._read_index().get(solution_name, [])]

    def list_results(self, run_id: RunId) -> list[CaseRecord]:
        """All readable case records of a run, sorted by case number."""
        run_dir = self.run_dir(run_id)
        if not run_dir.is_dir():
            return []
        records: list[CaseRecord] = []
        for path in run_dir.iterdir():
            if not _RESULT_FILE.match(path.name):
                continue
            record = _load_record(path)
            if record is not None:
                records.append(record)
        return sorted(records, key=lambda r: r.test_case)

    def read_result(self, run_id: RunId, case_no: int) -> CaseRecord | None:
        path = self.result_path(run_id, case_no)
        if not path.is_file():
            return None
        return _load_record(path)

    def find_owner(self, run_id: RunId) -> SolutionName | None:
        for name, runs in self._read_index().items():
            if run_id in runs:
                return SolutionName(name)
        return None

    # ── deletes ──────────────────────────────────────────────────────────────

    def delete_solution(self, solution_name: SolutionName) -> None:
        """Remove the solution, every run directory under it and its index entry."""
        index = self._read_index()
        runs = index.pop(solution_name, [])
        for run_id in runs:
            _rmtree(self.run_dir(RunId(run_id)))
        self._write_index(index)
        log.info("deleted solution %s (%d runs)", solution_name, len(runs))

    def delete_run(self, run_id: RunId) -> None:
        """Remove the run directory and scrub the id from every solution."""
        _rmtree(self.run_dir(run_id))
        index = self._read_index()
        for name in list(index):
            index[name] = [r for r in index[name] if r != run_id]
        self._write_index(index)
        log.info("deleted run %s", run_id)

    def delete_result(self, run_id: RunId, case_no: int) -> None:
        self.result_path(run_id, case_no).unlink(missing_ok=True)

    def cleanup(self, paths: Iterable[str | Path]) -> None:
        """Best-effort recursive removal; already-missing paths are fine."""
        for p in paths:
            path = Path(p)
            if path.is_dir():
                _rmtree(path)
            else:
                path.unlink(missing_ok=True)

    # ── index ────────────────────────────────────────────────────────────────

    def _read_index(self) -> Index:
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as ex:
            log.warning("ignoring unreadable index %s: %s", self.index_path, ex)
            return {}
        if not isinstance(data, dict):
            log.warning("ignoring malformed index %s", self.index_path)
            return {}
        return {
            str(name): [str(r) for r in runs]
            for name, runs in data.items()
            if isinstance(runs, list)
        }

    def _write_index(self, index: Index) -> None:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.index_path.write_text(json.dumps(index, indent=4, ensure_ascii=False), encoding="utf-8")


def _load_record(path: Path) -> CaseRecord | None:
    try:
        return CaseRecord.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, PydanticValidationError) as ex:
        log.warning("skipping unreadable result %s: %s", path, ex)
        return None


def _rmtree(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
