"""Toolchains turn one source file into one executable.

The orchestrator only cares about pass/fail plus diagnostic text, so every
toolchain either returns normally or raises `CompileError`.
"""

from __future__ import annotations

import asyncio
import shlex
import shutil
import stat
from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

from cpstress.errors import CompileError
from cpstress.logging import get_logger
from cpstress.settings import CpstressSettings

log = get_logger("compiler")


@runtime_checkable
class Toolchain(Protocol):
    async def build(self, source: Path, output: Path) -> None: ...


class CommandToolchain:
    """Runs a shell-style command template such as ``g++ {source} -o {output}``."""

    def __init__(self, template: str, *, timeout_s: float = 60) -> None:
        self.template = template
        self.timeout_s = timeout_s

    def command_for(self, source: Path, output: Path) -> list[str]:
        try:
            rendered = self.template.format(
                source=shlex.quote(str(source)), output=shlex.quote(str(output))
            )
            argv = shlex.split(rendered)
        except (KeyError, IndexError, ValueError) as ex:
            raise CompileError(
                f"bad compile command template {self.template!r}: {ex!r}", source=str(source)
            ) from ex
        if not argv:
            raise CompileError("compile command template is empty", source=str(source))
        return argv

    async def build(self, source: Path, output: Path) -> None:
        argv = self.command_for(source, output)
        log.debug("compiling %s: %s", source.name, argv)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as ex:
            raise CompileError(f"cannot start compiler {argv[0]!r}: {ex}", source=str(source)) from ex
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
        except asyncio.TimeoutError as ex:
            proc.kill()
            await proc.wait()
            raise CompileError(
                f"compiler timed out after {self.timeout_s}s", source=str(source)
            ) from ex
        if proc.returncode != 0:
            diagnostic = stderr.decode("utf-8", errors="replace") or stdout.decode(
                "utf-8", errors="replace"
            )
            raise CompileError(diagnostic, source=str(source))


class ScriptToolchain:
    """'Compiles' interpreted sources by copying them and marking them executable."""

    async def build(self, source: Path, output: Path) -> None:
        try:
            with source.open("rb") as fh:
                head = fh.read(2)
        except OSError as ex:
            raise CompileError(str(ex), source=str(source)) from ex
        if head != b"#!":
            raise CompileError(
                f"{source.name} has no shebang line; cannot run it directly", source=str(source)
            )
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, output)
            mode = output.stat().st_mode
            output.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except OSError as ex:
            raise CompileError(f"cannot install {source.name}: {ex}", source=str(source)) from ex


class SuffixToolchain:
    """Dispatches to a toolchain by source file suffix."""

    def __init__(self, by_suffix: Mapping[str, Toolchain]) -> None:
        self.by_suffix = {k.lower(): v for k, v in by_suffix.items()}

    @classmethod
    def from_settings(cls, settings: CpstressSettings) -> "SuffixToolchain":
        cpp = CommandToolchain(settings.cpp_compile_command, timeout_s=settings.compile_timeout_s)
        c = CommandToolchain(settings.c_compile_command, timeout_s=settings.compile_timeout_s)
        script = ScriptToolchain()
        return cls(
            {
                ".cpp": cpp,
                ".cc": cpp,
                ".cxx": cpp,
                ".c": c,
                ".py": script,
                ".sh": script,
            }
        )

    async def build(self, source: Path, output: Path) -> None:
        chain = self.by_suffix.get(source.suffix.lower())
        if chain is None:
            raise CompileError(
                f"no toolchain configured for '{source.suffix or source.name}' files",
                source=str(source),
            )
        await chain.build(source, output)
