import unicodedata
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from pydantic import TypeAdapter

from services.shared_models import ComplianceResult, CourseRecord

_history_adapter = TypeAdapter(list[CourseRecord])


def normalize_course_name(name: Any) -> str:
    """Matching key for course names: no accents, uppercase, single spaces."""
    if name is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(name))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split()).upper()


def round_half_up(value: float, places: int) -> float:
    """Decimal rounding with ties away from zero (3.125 -> 3.13), unlike the builtin round()."""
    return float(Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def as_history(history: Iterable[Any] | None) -> list[CourseRecord]:
    return _history_adapter.validate_python(list(history or []))


def evaluate_compliance(history: Iterable[Any] | None, required_courses: Iterable[str] | None) -> ComplianceResult:
    records = as_history(history)

    # one entry per normalized name, first spelling wins
    required: dict[str, str] = {}
    for course in required_courses or []:
        key = normalize_course_name(course)
        if key and key not in required:
            required[key] = course

    approved = {normalize_course_name(r.course_name) for r in records if r.status == "approved"}
    attempted = {normalize_course_name(r.course_name) for r in records}

    missing = [name for key, name in required.items() if key not in approved]
    failed = [name for name in missing if normalize_course_name(name) in attempted]
    pending = [name for name in missing if normalize_course_name(name) not in attempted]

    required_count = len(required)
    completed_count = required_count - len(missing)
    if required_count > 0:
        percentage = round_half_up(completed_count / required_count * 100, 2)
    else:
        percentage = 100.0

    return ComplianceResult(
        required_count=required_count,
        completed_count=completed_count,
        missing_courses=missing,
        failed_courses=failed,
        pending_courses=pending,
        compliance_percentage=percentage,
    )


def compliance_band(percentage: float) -> str:
    if percentage < 70:
        return "critical"
    if percentage < 90:
        return "regular"
    return "excellent"
