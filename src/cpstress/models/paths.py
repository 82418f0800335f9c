"""Semantic path and identifier types.

Solution names and run ids are both plain strings on disk; the NewTypes keep
them apart at call sites so a run id is never passed where a solution name is
expected.
"""

from __future__ import annotations

from pathlib import Path
from typing import NewType

from pydantic import BaseModel, ConfigDict

SolutionName = NewType("SolutionName", str)
RunId = NewType("RunId", str)


class TestPaths(BaseModel):
    """Directories and files used by one stress-test session."""

    __test__ = False
    model_config = ConfigDict(extra="forbid", frozen=True)

    temp_dir: Path
    results_dir: Path
    solution_path: Path
    run_id: str
    run_dir: Path
    index_path: Path


class ExecutableSet(BaseModel):
    """Compiled artifacts for one session; deleted with the temp directory."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    solution: Path
    checker: Path
    # absent when compiled for a re-run
    generator: Path | None = None
