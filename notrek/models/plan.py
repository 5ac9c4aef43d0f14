"""Care plan schemas and the intake-to-plan factory.

This module defines:
1. Task records (TaskStep, Task) with lenient coercion of client input
2. The Plan record stored by the plan store and returned by the API
3. IntakeSnapshot, the summary of an intake conversation, and
   build_plan_from_intake which turns a snapshot into a Plan

Status Values:
- Task.status: "todo" | "in_progress" | "done" (legacy "doing" is accepted)
- Task.urgency: "info" | "elevated" | "severe"
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from notrek.models.base import WireModel, coerce_str_list, ensure_utc, new_id, utc_now
from notrek.models.citation import Citation
from notrek.models.triage import Urgency, normalize_urgency

TaskStatus = Literal["todo", "in_progress", "done"]
TaskAction = Literal["call_ai", "book", "directions", "message", "upload"]

TASK_ACTIONS = ("call_ai", "book", "directions", "message", "upload")


def normalize_task_status(value: Any) -> TaskStatus:
    """Map client status values onto todo, in_progress or done."""
    s = str(value or "").strip().lower()
    if s in ("in_progress", "doing", "in-progress"):
        return "in_progress"
    if s == "done":
        return "done"
    return "todo"


class TaskStep(WireModel):
    """One item of a task's sub-checklist."""

    id: str = Field(default_factory=new_id)
    text: str = ""
    done: bool = False
    requires_photo: bool | None = None

    @field_validator("id", mode="before")
    @classmethod
    def ensure_id(cls, v: Any) -> str:
        return str(v) if v else new_id()

    @field_validator("text", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("done", mode="before")
    @classmethod
    def coerce_done(cls, v: Any) -> bool:
        return bool(v)


class Task(WireModel):
    """
    A single actionable item of a care plan.

    Tasks are mutated by client-driven status edits; the service only stores
    and returns them. Missing identifiers are generated and unknown status,
    urgency or action values are coerced rather than rejected.
    """

    id: str = Field(default_factory=new_id)
    title: str = Field(default="Untitled task")
    status: TaskStatus = Field(default="todo")
    due_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    urgency: Urgency = Field(default="info")
    requires_evidence: bool | None = None
    steps: list[TaskStep] = Field(default_factory=list)
    actions: list[TaskAction] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    rationale: str | None = None
    related_venue_id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def ensure_id(cls, v: Any) -> str:
        return str(v) if v else new_id()

    @field_validator("title", mode="before")
    @classmethod
    def ensure_title(cls, v: Any) -> str:
        return str(v) if v else "Untitled task"

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> TaskStatus:
        return normalize_task_status(v)

    @field_validator("urgency", mode="before")
    @classmethod
    def coerce_urgency(cls, v: Any) -> Urgency:
        return normalize_urgency(v)

    @field_validator("actions", mode="before")
    @classmethod
    def drop_unknown_actions(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [a for a in v if a in TASK_ACTIONS]

    @field_validator("steps", "citations", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict | WireModel)]

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, v: Any) -> Any:
        """Ensure timestamps are timezone-aware (UTC), defaulting to now."""
        if v is None or v == "":
            return utc_now()
        return ensure_utc(v)

    @field_validator("due_at", mode="before")
    @classmethod
    def coerce_due_at(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return ensure_utc(v)

    @field_validator("created_at", "updated_at", "due_at", mode="after")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        # Naive ISO strings from the client are UTC.
        return ensure_utc(v)


class Plan(WireModel):
    """
    A user's saved care plan.

    Lifecycle: created on intake submission, held by the plan store and
    retrieved by identifier. Writing a plan with an existing id replaces it.
    """

    id: str = Field(default_factory=new_id, description="Plan identifier")
    title: str = Field(default="", description="Display title")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")
    risk: str | None = Field(default=None, description="Risk level as reported at intake")
    tasks: list[Task] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    solution_steps: list[str] = Field(default_factory=list)
    evidence_lock: bool | None = None
    source_session_id: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def ensure_id(cls, v: Any) -> str:
        return str(v) if v else new_id()

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("risk", "source_session_id", mode="before")
    @classmethod
    def keep_strings_only(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None

    @field_validator("tasks", "citations", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict | WireModel)]

    @field_validator("solution_steps", mode="before")
    @classmethod
    def coerce_solution_steps(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(s) for s in v]

    @field_validator("created_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, v: Any) -> Any:
        """Ensure timestamps are timezone-aware (UTC)."""
        if v is None or v == "":
            return utc_now()
        return ensure_utc(v)


class PlanCreateResponse(WireModel):
    """Response model for plan creation."""

    ok: bool = True
    id: str = Field(..., description="Identifier of the stored plan")


class IntakeRecommendation(WireModel):
    """A recommendation produced by the intake conversation."""

    title: str
    rationale: str | None = None
    citations: list[Citation] = Field(default_factory=list)
    actions: list[TaskAction] = Field(default_factory=list)
    steps: list[str] = Field(default_factory=list)
    urgency: Urgency | None = None
    requires_evidence: bool = False
    related_venue_id: str | None = None

    @field_validator("actions", mode="before")
    @classmethod
    def drop_unknown_actions(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [a for a in v if a in TASK_ACTIONS]

    @field_validator("steps", mode="before")
    @classmethod
    def coerce_steps(cls, v: Any) -> list[str]:
        return coerce_str_list(v)

    @field_validator("urgency", mode="before")
    @classmethod
    def coerce_urgency(cls, v: Any) -> Urgency | None:
        return normalize_urgency(v) if v else None


class IntakeSnapshot(WireModel):
    """Summary of a finished intake conversation."""

    session_id: str
    risk: Urgency = "info"
    recommendations: list[IntakeRecommendation] = Field(default_factory=list)
    summary_steps: list[str] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    evidence_lock: bool = False

    @field_validator("risk", mode="before")
    @classmethod
    def coerce_risk(cls, v: Any) -> Urgency:
        return normalize_urgency(v)

    @field_validator("summary_steps", mode="before")
    @classmethod
    def coerce_summary_steps(cls, v: Any) -> list[str]:
        return coerce_str_list(v)


def build_plan_from_intake(snapshot: IntakeSnapshot, now: datetime | None = None) -> Plan:
    """
    Factory helper to create a Plan from an intake snapshot.

    Each recommendation becomes a "todo" task whose urgency falls back to the
    snapshot risk. Steps are created from the recommendation's strings, and a
    task requires evidence when either the recommendation or the snapshot's
    evidence lock demands it.

    Args:
        snapshot: The intake snapshot
        now: Optional timestamp to use (default: current UTC time)

    Returns:
        Plan with freshly generated identifiers
    """
    now = ensure_utc(now) if now is not None else utc_now()

    tasks = [
        Task(
            title=rec.title,
            status="todo",
            created_at=now,
            updated_at=now,
            urgency=rec.urgency or snapshot.risk,
            requires_evidence=rec.requires_evidence or snapshot.evidence_lock,
            steps=[TaskStep(text=text, done=False) for text in rec.steps],
            actions=list(rec.actions),
            citations=[c.model_copy() for c in rec.citations],
            rationale=rec.rationale,
            related_venue_id=rec.related_venue_id,
        )
        for rec in snapshot.recommendations
    ]

    return Plan(
        title="Care Plan",
        created_at=now,
        risk=snapshot.risk,
        tasks=tasks,
        citations=[c.model_copy() for c in snapshot.citations],
        solution_steps=list(snapshot.summary_steps),
        evidence_lock=snapshot.evidence_lock,
        source_session_id=snapshot.session_id,
    )
