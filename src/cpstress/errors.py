"""Centralized structured exception hierarchy for cpstress.

Only infrastructure problems are exceptions. Everything that can go wrong
inside a single test case (generator stderr, a crashing or slow solution, a
wrong answer, a misbehaving checker) is returned as a typed verdict instead,
so a session always runs to completion.

Design:
  - CpstressError is the common base (subclass of RuntimeError for ergonomics).
  - CompileError carries the toolchain diagnostic; the compiler turns it into
    a reported message and a boolean.
  - StoreError signals misuse of the result store (bad case numbers etc.).
  - ValidationError is raised for user facing input problems (selection YAML,
    unknown run ids, invalid test counts).
"""

from __future__ import annotations

__all__ = [
    "CpstressError",
    "CompileError",
    "StoreError",
    "ValidationError",
]


class CpstressError(RuntimeError):
    """Base class for all structured cpstress errors."""


class CompileError(CpstressError):
    """A source file could not be turned into an executable."""

    def __init__(self, diagnostic: str, *, source: str | None = None) -> None:
        super().__init__(diagnostic)
        self.diagnostic = diagnostic
        self.source = source


class StoreError(CpstressError):
    """Raised when the result store is asked to do something impossible."""


class ValidationError(CpstressError):
    """Raised for user / content validation issues (YAML, ids, counts)."""
