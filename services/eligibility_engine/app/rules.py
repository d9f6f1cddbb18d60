"""
Promotion eligibility rules.

Four criteria gate a promotion, in display order: performance evaluation,
time in position (temporality), training matrix coverage and the theory exam.
Every criterion is always computed; the employee is eligible only when all
four are met.

Exam retakes follow a cooldown: one failed attempt waits one month from the
attempt, two or more failed attempts wait until the position's temporality is
complete.
"""

import logging
import math
import re
from datetime import date
from typing import Any, Iterable, Mapping

from pydantic import TypeAdapter

from services.compliance_engine.app.rules import normalize_course_name
from services.shared_dates import add_months, month_diff, parse_date
from services.shared_models import (
    PASSING_SCORE,
    EligibilityResult,
    EmployeeSnapshot,
    ExamAttempt,
    ExamCriterion,
    ExamEligibility,
    MatrixCriterion,
    OverallEligibility,
    PerformanceCriterion,
    PromotionRule,
    TemporalityCriterion,
)

logger = logging.getLogger("eligibility-engine")

DEFAULT_PERFORMANCE_MIN = 80
DEFAULT_MATRIX_MIN = 90
DEFAULT_EXAM_MIN = 70

_attempts_adapter = TypeAdapter(list[ExamAttempt])


def parse_percent(value: Any) -> int:
    """Parse "90%" as 90. Blank or non-numeric input gives 0."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = re.match(r"\s*(-?\d+)", str(value).replace("%", ""))
    return int(match.group(1)) if match else 0


def parse_temporality(value: Any) -> int:
    """Parse "6 MESES" as 6: the first integer in the text, 0 when there is none."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = re.search(r"(\d+)", str(value))
    return int(match.group(1)) if match else 0


def normalize_promotion_rule(raw: Mapping[str, Any]) -> PromotionRule:
    """Build a rule from one row of the promotions table (Spanish column headers)."""
    return PromotionRule(
        current_position=str(raw.get("Puesto actual") or "").strip().upper(),
        promotion_to=str(raw.get("Promoción a") or "").strip().upper(),
        temporality_months=parse_temporality(raw.get("Temporalidad en el puesto")),
        exam_min_score=parse_percent(raw.get("Exámen Calificación Téorico")),
        matrix_min_coverage=parse_percent(raw.get("% Cobertura Matriz (Cursos Asignados)")),
        performance_min_score=parse_percent(raw.get("Evaluación de Desempeño")),
    )


def months_in_position(position_start_date: Any, today: date) -> int:
    start = parse_date(position_start_date)
    if start is None:
        return 0
    return month_diff(start, today)


def semester_period(today: date) -> str:
    """Evaluation period label for a date: "ENE-JUN 2024" or "JUL-DIC 2024"."""
    if today.month <= 6:
        return f"ENE-JUN {today.year}"
    return f"JUL-DIC {today.year}"


def exam_eligibility(
    exam_attempts: Iterable[Any] | None,
    temporality_months: int | None,
    position_start_date: Any,
    today: date,
) -> ExamEligibility:
    attempts = _attempts_adapter.validate_python(list(exam_attempts or []))
    failed = [a for a in attempts if not a.passed]
    last = attempts[-1] if attempts else None

    if last is not None and last.passed:
        return ExamEligibility(can_take_exam=False, reason="Examen aprobado", status="passed")

    if not failed:
        return ExamEligibility(can_take_exam=True, reason="Sin intentos previos", status="available")

    if len(failed) == 1:
        next_date = add_months(parse_date(last.date, default=today), 1)
        if today >= next_date:
            return ExamEligibility(can_take_exam=True, reason="Período de espera completado (1 mes)", status="available")
        return ExamEligibility(
            can_take_exam=False,
            next_date=next_date,
            reason="Debe esperar 1 mes desde último intento",
            status="waiting",
        )

    start = parse_date(position_start_date)
    if start is None:
        return ExamEligibility(can_take_exam=False, reason="Fecha de inicio de puesto no registrada", status="blocked")

    months = temporality_months or 0
    next_date = add_months(start, months)
    if today >= next_date:
        return ExamEligibility(can_take_exam=True, reason="Temporalidad completada", status="available")
    return ExamEligibility(
        can_take_exam=False,
        next_date=next_date,
        reason=f"Debe completar temporalidad ({months} meses)",
        status="blocked",
    )


def matrix_coverage(employee: EmployeeSnapshot) -> float:
    """Stored compliance percentage, recomputed only when the stored matrix looks stale.

    A stored ``completedCount`` of 0 while the history holds approved courses
    means the matrix was never recalculated after the history import. In that
    case coverage is approximated from the approved course count.
    """
    matrix = employee.matrix
    coverage = matrix.compliance_percentage
    if not employee.history or matrix.required_count <= 0:
        return coverage
    if matrix.completed_count != 0:
        return coverage

    approved = {
        normalize_course_name(h.course_name)
        for h in employee.history
        if h.status == "approved" or h.score >= PASSING_SCORE
    }
    if not approved:
        return coverage

    completed = min(len(approved), matrix.required_count)
    recomputed = float(math.floor(completed / matrix.required_count * 100 + 0.5))
    logger.warning(
        f"Stale matrix for employee {employee.employee_id}: stored coverage {coverage}, "
        f"recomputed {recomputed} from {len(approved)} approved courses"
    )
    return recomputed


def default_eligibility() -> EligibilityResult:
    return EligibilityResult(
        performance=PerformanceCriterion(met=False, current=0, required=DEFAULT_PERFORMANCE_MIN),
        temporality=TemporalityCriterion(met=False, current=0, required=0),
        matrix=MatrixCriterion(met=False, current=0, required=DEFAULT_MATRIX_MIN),
        exam=ExamCriterion(met=False, current=None, required=DEFAULT_EXAM_MIN, attempts=0),
        overall=OverallEligibility(eligible=False, met_count=0),
    )


def evaluate_eligibility(employee: Any, rule: Any, today: date) -> EligibilityResult:
    if employee is None or rule is None:
        return default_eligibility()
    employee = EmployeeSnapshot.model_validate(employee)
    rule = PromotionRule.model_validate(rule)
    promotion = employee.promotion_data

    # zero means "not configured" in the rules table
    required_months = rule.temporality_months or 0
    exam_min = rule.exam_min_score or DEFAULT_EXAM_MIN
    matrix_min = rule.matrix_min_coverage or DEFAULT_MATRIX_MIN
    performance_min = rule.performance_min_score or DEFAULT_PERFORMANCE_MIN

    performance = PerformanceCriterion(
        met=promotion.performance_score >= performance_min,
        current=promotion.performance_score,
        required=performance_min,
        period=promotion.performance_period or semester_period(today),
    )

    months = months_in_position(promotion.position_start_date, today)
    temporality = TemporalityCriterion(
        met=required_months == 0 or months >= required_months,
        current=months,
        required=required_months,
        start_date=promotion.position_start_date,
    )

    coverage = matrix_coverage(employee)
    matrix = MatrixCriterion(met=coverage >= matrix_min, current=coverage, required=matrix_min)

    attempts = promotion.exam_attempts
    passed = next((a for a in attempts if a.passed and a.score >= exam_min), None)
    last = attempts[-1] if attempts else None
    if passed is not None:
        exam_current = passed.score
    elif last is not None:
        exam_current = last.score
    else:
        exam_current = None
    exam = ExamCriterion(
        met=passed is not None,
        current=exam_current,
        required=exam_min,
        attempts=len(attempts),
        last_passed=passed is not None,
    )

    flags = [performance.met, temporality.met, matrix.met, exam.met]
    return EligibilityResult(
        performance=performance,
        temporality=temporality,
        matrix=matrix,
        exam=exam,
        overall=OverallEligibility(eligible=all(flags), met_count=sum(flags)),
    )
