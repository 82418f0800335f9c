"""Companion file scaffolding for a solution.

For ``problem.cpp`` the generator lives in ``problem.genval.cpp`` and the
checker in ``problem.check.cpp``, both next to the solution.
"""

from __future__ import annotations

import re
from importlib import resources
from pathlib import Path

GENERATOR_SUFFIX = ".genval"
CHECKER_SUFFIX = ".check"

GENERATOR_TEMPLATE = "generator.cpp"
CHECKER_TEMPLATE = "checker.cpp"

_COMPANION = re.compile(r"\.(genval|check)(\.[^.]+)$")


def generator_path_for(solution: str | Path) -> Path:
    p = Path(solution)
    return p.with_name(p.stem + GENERATOR_SUFFIX + p.suffix)


def checker_path_for(solution: str | Path) -> Path:
    p = Path(solution)
    return p.with_name(p.stem + CHECKER_SUFFIX + p.suffix)


def solution_path_for(companion: str | Path) -> Path:
    """Map a generator/checker path back to its solution; other paths pass through."""
    p = Path(companion)
    return p.with_name(_COMPANION.sub(r"\2", p.name))


def read_template(name: str) -> str:
    return resources.files("cpstress").joinpath("templates").joinpath(name).read_text(encoding="utf-8")


class TestFileScaffold:
    """Creates and checks generator/checker stubs next to a solution file."""

    __test__ = False

    def create_test_files(self, solution: str | Path, *, overwrite: bool = True) -> tuple[Path, Path]:
        gen = generator_path_for(solution)
        chk = checker_path_for(solution)
        for target, template in ((gen, GENERATOR_TEMPLATE), (chk, CHECKER_TEMPLATE)):
            if target.exists() and not overwrite:
                continue
            target.write_text(read_template(template), encoding="utf-8")
        return gen, chk

    def test_files_exist(self, solution: str | Path) -> bool:
        return generator_path_for(solution).is_file() and checker_path_for(solution).is_file()
