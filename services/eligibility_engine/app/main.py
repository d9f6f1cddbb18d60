import logging
from typing import Any

from fastapi import HTTPException
from pydantic import Field

from services import shared_http
from services.eligibility_engine.app.rules import evaluate_eligibility, exam_eligibility, normalize_promotion_rule
from services.shared_dates import reference_date
from services.shared_models import (
    EligibilityResult,
    EmployeeSnapshot,
    ExamAttempt,
    ExamEligibility,
    PromotionRule,
    SnapshotModel,
)

SERVICE_NAME = "eligibility-engine"

app = shared_http.create_app(
    SERVICE_NAME,
    title="Eligibility Engine",
    description="Promotion eligibility and exam retake scheduling",
)
logger = logging.getLogger(SERVICE_NAME)


class EligibilityPayload(SnapshotModel):
    employee: EmployeeSnapshot | None = None
    rule: PromotionRule | None = None
    raw_rule: dict[str, Any] | None = None
    today: str | None = None


class ExamEligibilityPayload(SnapshotModel):
    exam_attempts: list[ExamAttempt] = Field(default_factory=list)
    temporality_months: int = 0
    position_start_date: str | None = None
    today: str | None = None


@app.post("/evaluate", response_model=EligibilityResult)
def evaluate(payload: EligibilityPayload):
    rule = payload.rule
    if rule is None and payload.raw_rule is not None:
        rule = normalize_promotion_rule(payload.raw_rule)
    if payload.employee is None or rule is None:
        logger.info("Evaluating with missing employee or rule, returning the not-eligible default")
    return evaluate_eligibility(payload.employee, rule, reference_date(payload.today))


@app.post("/exam-eligibility", response_model=ExamEligibility)
def evaluate_exam(payload: ExamEligibilityPayload):
    return exam_eligibility(
        payload.exam_attempts,
        payload.temporality_months,
        payload.position_start_date,
        reference_date(payload.today),
    )


@app.post("/rules/normalize", response_model=list[PromotionRule])
def normalize_rules(rows: list[dict[str, Any]]):
    rules = [normalize_promotion_rule(row) for row in rows]
    skipped = [r for r in rules if not r.current_position]
    if len(skipped) == len(rules) and rules:
        raise HTTPException(status_code=422, detail="No row has a 'Puesto actual' column")
    return [r for r in rules if r.current_position]
