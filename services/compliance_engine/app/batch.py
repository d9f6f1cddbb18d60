"""
Batch recompute of the stored compliance matrix.

``plan_recompute`` folds over employee snapshots and yields persistence
batches; only records whose stored matrix differs from the recomputed one are
emitted, so replaying it over its own output yields nothing.
"""

from typing import Any, Iterable, Iterator, Mapping

from pydantic import TypeAdapter

from config import Config
from services.compliance_engine.app.rules import compliance_band, evaluate_compliance, normalize_course_name, round_half_up
from services.shared_models import EmployeeSnapshot, MatrixUpdate, PositionRequirements, PositionStats

_snapshots_adapter = TypeAdapter(list[EmployeeSnapshot])
_positions_adapter = TypeAdapter(list[PositionRequirements])

NO_POSITION = "SIN PUESTO"
NO_DEPARTMENT = "SIN ASIGNAR"


def requirements_by_position(positions: Iterable[Any] | Mapping[str, list[str]]) -> dict[str, list[str]]:
    if isinstance(positions, Mapping):
        return {normalize_course_name(name): list(courses or []) for name, courses in positions.items()}
    return {normalize_course_name(p.name): list(p.required_courses) for p in _positions_adapter.validate_python(list(positions))}


def recompute_matrix(snapshot: EmployeeSnapshot, requirements: Mapping[str, list[str]]) -> MatrixUpdate | None:
    required = requirements.get(normalize_course_name(snapshot.position), [])
    matrix = evaluate_compliance(snapshot.history, required)
    if matrix == snapshot.matrix:
        return None
    return MatrixUpdate(employee_id=snapshot.employee_id or "", matrix=matrix)


def plan_recompute(
    records: Iterable[Any],
    positions: Iterable[Any] | Mapping[str, list[str]],
    batch_size: int = Config.RECOMPUTE_BATCH_SIZE,
) -> Iterator[list[MatrixUpdate]]:
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    requirements = requirements_by_position(positions)
    batch: list[MatrixUpdate] = []
    for snapshot in _snapshots_adapter.validate_python(list(records)):
        update = recompute_matrix(snapshot, requirements)
        if update is None:
            continue
        batch.append(update)
        if len(batch) >= batch_size:
            yield batch
            batch = []
    if batch:
        yield batch


def position_stats(records: Iterable[Any], positions: Iterable[Any] | Mapping[str, list[str]]) -> list[PositionStats]:
    """Per-position headcount, average compliance and approved/failed/pending totals."""
    requirements = requirements_by_position(positions)
    totals: dict[str, dict[str, Any]] = {}
    for snapshot in _snapshots_adapter.validate_python(list(records)):
        name = normalize_course_name(snapshot.position) or NO_POSITION
        matrix = evaluate_compliance(snapshot.history, requirements.get(name, []))
        stat = totals.setdefault(
            name,
            {"department": snapshot.department or NO_DEPARTMENT, "headcount": 0, "sum": 0.0, "approved": 0, "failed": 0, "pending": 0},
        )
        stat["headcount"] += 1
        stat["sum"] += matrix.compliance_percentage
        stat["approved"] += matrix.completed_count
        stat["failed"] += len(matrix.failed_courses)
        stat["pending"] += len(matrix.pending_courses)

    out = []
    for name in sorted(totals):
        stat = totals[name]
        avg = round_half_up(stat["sum"] / stat["headcount"], 1)
        out.append(
            PositionStats(
                name=name,
                department=stat["department"],
                headcount=stat["headcount"],
                avg_compliance=avg,
                band=compliance_band(avg),
                approved=stat["approved"],
                failed=stat["failed"],
                pending=stat["pending"],
            )
        )
    return out
