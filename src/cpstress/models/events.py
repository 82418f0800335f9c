from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from cpstress.models.verdict import CaseStatus, CaseVerdict, RunSummary

# ─────────────────────────────────────────────────────────────────────────────
# Progress events pushed to the reporter
# ─────────────────────────────────────────────────────────────────────────────


class _Event(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def payload(self) -> dict[str, Any]:
        """Plain dict form with camelCase keys and unset fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RunningEvent(_Event):
    """A case is about to start."""

    status: Literal["Running"] = CaseStatus.RUNNING.value
    test_case: int = Field(alias="testCase")
    run_id: str | None = Field(default=None, alias="runId")


class CaseEvent(_Event):
    """A case finished; carries the whole verdict."""

    status: CaseStatus
    test_case: int = Field(alias="testCase")
    run_id: str | None = Field(default=None, alias="runId")
    input: str | None = None
    output: str | None = None
    time: float | None = None
    memory: int | None = None
    message: str | None = None
    reason: str | None = None

    @classmethod
    def from_verdict(
        cls, case_no: int, verdict: CaseVerdict, run_id: str | None = None
    ) -> "CaseEvent":
        return cls(
            status=verdict.status,
            test_case=case_no,
            run_id=run_id,
            input=verdict.input,
            output=verdict.output,
            time=verdict.duration_ms,
            memory=verdict.memory_kb,
            message=verdict.message,
            reason=verdict.reason,
        )


class SummaryEvent(_Event):
    """Terminal histogram of a session."""

    run_id: str | None = Field(default=None, alias="runId")
    summary: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_summary(cls, summary: RunSummary) -> "SummaryEvent":
        return cls(run_id=summary.run_id, summary=dict(summary.counts))


ProgressEvent = Union[RunningEvent, CaseEvent, SummaryEvent]
