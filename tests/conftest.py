from __future__ import annotations

import stat
import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from cpstress.models.events import ProgressEvent
from cpstress.settings import CpstressSettings
from cpstress.store.results import ResultStore


class RecordingReporter:
    """Reporter double that keeps everything it is told."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []
        self.errors: list[str] = []
        self.cleared = 0
        self.running = 0

    async def report_progress(self, event: ProgressEvent) -> None:
        self.events.append(event)

    async def report_error(self, message: str) -> None:
        self.errors.append(message)

    async def report_history_cleared(self) -> None:
        self.cleared += 1

    async def report_test_running(self) -> None:
        self.running += 1


ScriptFactory = Callable[[str, str], Path]


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def store(tmp_path: Path) -> ResultStore:
    return ResultStore(tmp_path / "home")


@pytest.fixture
def settings(tmp_path: Path) -> CpstressSettings:
    return CpstressSettings(home=str(tmp_path / "home"), timeout_ms=2000, num_tests=3)


@pytest.fixture
def make_script(tmp_path: Path) -> ScriptFactory:
    """Write an executable Python script whose shebang is the running interpreter."""

    def _make(name: str, body: str) -> Path:
        path = tmp_path / "src" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return path

    return _make


GENERATOR = """\
import random
print(random.randint(1, 1000))
"""

DOUBLER = """\
n = int(input())
print(n * 2)
"""

DOUBLE_CHECKER = """\
import sys
n = int(open(sys.argv[1]).read())
got = open(sys.argv[2]).read().strip()
if got != str(2 * n):
    sys.stderr.write(f"expected {2 * n}, got {got}")
    sys.exit(1)
"""


@pytest.fixture
def programs(make_script: ScriptFactory) -> dict[str, Path]:
    """A working generator / solution / checker trio of Python scripts."""
    return {
        "generator": make_script("sol.genval.py", GENERATOR),
        "solution": make_script("sol.py", DOUBLER),
        "checker": make_script("sol.check.py", DOUBLE_CHECKER),
    }
