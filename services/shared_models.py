"""
Snapshot and result models exchanged by the rule engines.

Attributes are snake_case; the JSON form uses the camelCase keys of the stored
training documents (``courseName``, ``compliancePercentage``...). All models
are frozen: a snapshot is built once per evaluation and never mutated.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from config import Config

PASSING_SCORE = Config.PASSING_SCORE


def clean_course_name(name) -> str:
    """Uppercase, trim and collapse whitespace. Accents are kept for display."""
    if name is None:
        return ""
    return " ".join(str(name).split()).upper()


def coerce_score(value) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return min(100.0, max(0.0, score))


class SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CourseRecord(SnapshotModel):
    course_name: str
    date: str | None = None
    score: float = 0.0
    status: Literal["approved", "failed"]

    @model_validator(mode="before")
    @classmethod
    def _ingest(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        name_key = "courseName" if "courseName" in data else "course_name"
        data[name_key] = clean_course_name(data.get(name_key))
        data["score"] = coerce_score(data.get("score", 0))
        status = str(data.get("status") or "").strip().lower()
        if status not in ("approved", "failed"):
            # derived once here, never by the evaluators
            status = "approved" if data["score"] >= PASSING_SCORE else "failed"
        data["status"] = status
        return data


class ComplianceResult(SnapshotModel):
    required_count: int = 0
    completed_count: int = 0
    missing_courses: list[str] = Field(default_factory=list)
    failed_courses: list[str] = Field(default_factory=list)
    pending_courses: list[str] = Field(default_factory=list)
    compliance_percentage: float = 0.0


class PositionRequirements(SnapshotModel):
    name: str
    required_courses: list[str] = Field(default_factory=list)


class PromotionRule(SnapshotModel):
    current_position: str = ""
    promotion_to: str = ""
    temporality_months: int = 0
    exam_min_score: int = 0
    matrix_min_coverage: int = 0
    performance_min_score: int = 0


class ExamAttempt(SnapshotModel):
    date: str | None = None
    score: float = 0.0
    passed: bool = False

    coerce_attempt_score = field_validator("score", mode="before")(coerce_score)


class PromotionData(SnapshotModel):
    performance_score: float = 0.0
    performance_period: str | None = None
    position_start_date: str | None = None
    exam_attempts: list[ExamAttempt] = Field(default_factory=list)

    coerce_performance_score = field_validator("performance_score", mode="before")(coerce_score)


class EmployeeSnapshot(SnapshotModel):
    employee_id: str | None = None
    name: str | None = None
    position: str = ""
    department: str = ""
    history: list[CourseRecord] = Field(default_factory=list)
    matrix: ComplianceResult = Field(default_factory=ComplianceResult)
    promotion_data: PromotionData = Field(default_factory=PromotionData)


class ExamEligibility(SnapshotModel):
    can_take_exam: bool
    next_date: date | None = None
    reason: str
    status: Literal["passed", "available", "waiting", "blocked"]


class PerformanceCriterion(SnapshotModel):
    met: bool
    current: float
    required: float
    period: str | None = None
    label: str = "Desempeño"
    order: int = 1


class TemporalityCriterion(SnapshotModel):
    met: bool
    current: int
    required: int
    start_date: str | None = None
    label: str = "Temporalidad"
    order: int = 2


class MatrixCriterion(SnapshotModel):
    met: bool
    current: float
    required: float
    label: str = "Matriz"
    order: int = 3


class ExamCriterion(SnapshotModel):
    met: bool
    current: float | None = None
    required: float
    attempts: int = 0
    last_passed: bool = False
    label: str = "Examen"
    order: int = 4


class OverallEligibility(SnapshotModel):
    eligible: bool
    met_count: int
    total: int = 4


class EligibilityResult(SnapshotModel):
    performance: PerformanceCriterion
    temporality: TemporalityCriterion
    matrix: MatrixCriterion
    exam: ExamCriterion
    overall: OverallEligibility


class ExpiryAlert(SnapshotModel):
    employee_id: str | None = None
    employee_name: str | None = None
    department: str | None = None
    position: str | None = None
    course_name: str
    date_taken: str | None = None
    expiration_date: date
    status: Literal["EXPIRED", "WARNING"]
    score: float = 0.0


class MatrixUpdate(SnapshotModel):
    employee_id: str
    matrix: ComplianceResult


class PositionStats(SnapshotModel):
    name: str
    department: str
    headcount: int = 0
    avg_compliance: float = 0.0
    band: Literal["critical", "regular", "excellent"] = "critical"
    approved: int = 0
    failed: int = 0
    pending: int = 0
