import signal as _signal

from pydantic import BaseModel, ConfigDict, Field

from cpstress.models.verdict import CaseStatus

DEFAULT_TIMEOUT_MS = 2000
DEFAULT_MAX_OUTPUT_BYTES = 512 * 1024 * 1024

# Signal delivered to a child whose deadline elapsed or whose output overflowed.
TIMEOUT_SIGNAL = _signal.SIGTERM.name


# ─────────────────────────────────────────────────────────────────────────────
# Limits
# ─────────────────────────────────────────────────────────────────────────────


class Limits(BaseModel):
    """Per-process wall-clock and output-size limits."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────


class ExecutionResult(BaseModel):
    """Classified outcome of a limited run (generator or solution)."""

    model_config = ConfigDict(extra="forbid")

    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0
    # no memory metering; always 0
    memory_kb: int = 0
    status: CaseStatus


class RawExecutionResult(BaseModel):
    """Unclassified outcome of an unlimited run (checker)."""

    model_config = ConfigDict(extra="forbid")

    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    signal: str | None = None
    spawn_error: str | None = None
    duration_ms: float = 0.0


def derive_status(exit_code: int | None, signal: str | None, output_overflow: bool) -> CaseStatus:
    """Map a finished process to a status.

    Priority: timeout signal with overflow is MLE, the timeout signal alone is
    TLE, an overflow without the signal is MLE, exit code 0 is OK and anything
    else is a runtime error.
    """
    if signal == TIMEOUT_SIGNAL and output_overflow:
        return CaseStatus.MLE
    if signal == TIMEOUT_SIGNAL:
        return CaseStatus.TLE
    if output_overflow:
        return CaseStatus.MLE
    if exit_code == 0:
        return CaseStatus.OK
    return CaseStatus.RUNTIME_ERROR
