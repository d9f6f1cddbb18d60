"""
Certification expiry alerts.

Courses with a renewal period (``validityYears`` on the course catalog) expire
that many years after the employee's latest approval. Alerts are raised for
expired certifications and for those expiring inside the warning window.
"""

from datetime import date, timedelta
from typing import Any, Iterable, Mapping

from services.compliance_engine.app.rules import as_history, normalize_course_name
from services.shared_dates import add_months, parse_date
from services.shared_models import CourseRecord, ExpiryAlert

DEFAULT_WARNING_DAYS = 60


def parse_renewal_period(text: str | None) -> int:
    """Map catalog renewal text to validity years ("RENOVACIÓN CADA 2 AÑOS" -> 2, one-time -> 0)."""
    if not text:
        return 0
    normalized = normalize_course_name(text)
    if "2 ANO" in normalized:
        return 2
    return 0


def latest_approvals(history: Iterable[Any] | None) -> dict[str, tuple[CourseRecord, date]]:
    """Most recent approved record per course, keyed by normalized course name."""
    latest: dict[str, tuple[CourseRecord, date]] = {}
    for record in as_history(history):
        if record.status != "approved":
            continue
        taken = parse_date(record.date)
        if taken is None:
            continue
        key = normalize_course_name(record.course_name)
        if key not in latest or taken > latest[key][1]:
            latest[key] = (record, taken)
    return latest


def expiry_alerts(
    history: Iterable[Any] | None,
    validity_years: Mapping[str, int],
    today: date,
    warning_days: int = DEFAULT_WARNING_DAYS,
    employee: Mapping[str, Any] | None = None,
) -> list[ExpiryAlert]:
    validity = {normalize_course_name(name): int(years or 0) for name, years in validity_years.items()}
    try:
        warning_date = today + timedelta(days=warning_days)
    except OverflowError:
        warning_date = date.max if warning_days > 0 else date.min
    employee = employee or {}

    alerts = []
    for key, (record, taken) in latest_approvals(history).items():
        years = validity.get(key, 0)
        if years <= 0:
            continue
        expiration = add_months(taken, years * 12)
        if expiration < today:
            status = "EXPIRED"
        elif expiration < warning_date:
            status = "WARNING"
        else:
            continue
        alerts.append(
            ExpiryAlert(
                employee_id=employee.get("employee_id"),
                employee_name=employee.get("name"),
                department=employee.get("department"),
                position=employee.get("position"),
                course_name=record.course_name,
                date_taken=record.date,
                expiration_date=expiration,
                status=status,
                score=record.score,
            )
        )
    return sort_alerts(alerts)


def sort_alerts(alerts: Iterable[ExpiryAlert]) -> list[ExpiryAlert]:
    return sorted(alerts, key=lambda a: (a.status != "EXPIRED", a.expiration_date, a.course_name))
