"""cpstress stress-testing orchestrator.

Generate random inputs, run a solution under time/output limits, validate it
with a checker and keep replayable per-case records.
"""

from __future__ import annotations

from .errors import (
    CpstressError,
    CompileError,
    StoreError,
    ValidationError,
)

__all__ = [
    "__version__",
    "CpstressError",
    "CompileError",
    "StoreError",
    "ValidationError",
]

__version__ = "0.1.0"
