from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# ─────────────────────────────────────────────────────────────────────────────
# Case status
# ─────────────────────────────────────────────────────────────────────────────


class CaseStatus(str, Enum):
    OK = "OK"
    WA = "WA"
    TLE = "TLE"
    MLE = "MLE"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    ERROR = "Error"
    # progress events only, never stored
    RUNNING = "Running"


# ─────────────────────────────────────────────────────────────────────────────
# Verdict (what the case runner returns)
# ─────────────────────────────────────────────────────────────────────────────


class CaseVerdict(BaseModel):
    """
    Outcome of one executed case.

    `message` explains why the case could not complete; `reason` is the
    checker's explanation for a rejection.
    """

    model_config = ConfigDict(extra="forbid")

    status: CaseStatus
    input: str | None = None
    output: str | None = None
    duration_ms: float | None = None
    memory_kb: int | None = None
    message: str | None = None
    reason: str | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return (
            f"CaseVerdict(status={self.status.value}, input_len={len(self.input or '')}, "
            f"output_len={len(self.output or '')}, duration_ms={self.duration_ms})"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Stored record (one test_<n>.json file)
# ─────────────────────────────────────────────────────────────────────────────


class CaseRecord(BaseModel):
    """Persisted form of a verdict, keyed by case number inside a run."""

    model_config = ConfigDict(extra="ignore")

    test_case: int = Field(..., gt=0)
    last_result: CaseStatus
    input: str | None = None
    user_output: str | None = None
    exec_time: float | None = None
    memory_used: int | None = None
    message: str | None = None
    reason: str | None = None

    @classmethod
    def from_verdict(cls, case_no: int, verdict: CaseVerdict) -> "CaseRecord":
        return cls(
            test_case=case_no,
            last_result=verdict.status,
            input=verdict.input,
            user_output=verdict.output,
            exec_time=verdict.duration_ms,
            memory_used=verdict.memory_kb,
            message=verdict.message,
            reason=verdict.reason,
        )

    def to_verdict(self) -> CaseVerdict:
        return CaseVerdict(
            status=self.last_result,
            input=self.input,
            output=self.user_output,
            duration_ms=self.exec_time,
            memory_kb=self.memory_used,
            message=self.message,
            reason=self.reason,
        )

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return (
            f"CaseRecord(test_case={self.test_case}, last_result={self.last_result.value!r}, "
            f"exec_time={self.exec_time}, message={self.message!r})"
        )


# ─────────────────────────────────────────────────────────────────────────────
# Session summary
# ─────────────────────────────────────────────────────────────────────────────


class RunSummary(BaseModel):
    """Status histogram owned by one orchestration call."""

    model_config = ConfigDict(extra="forbid")

    run_id: str | None = None
    counts: dict[str, int] = Field(default_factory=dict)

    def tally(self, status: CaseStatus) -> None:
        self.counts[status.value] = self.counts.get(status.value, 0) + 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def all_ok(self) -> bool:
        return all(k == CaseStatus.OK.value for k in self.counts)
