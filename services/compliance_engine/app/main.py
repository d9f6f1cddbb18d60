import json
import logging

from fastapi import Header, HTTPException
from pydantic import Field

from config import Config
from services import shared_http
from services.compliance_engine.app import store
from services.compliance_engine.app.batch import plan_recompute, position_stats
from services.compliance_engine.app.expiry import expiry_alerts, sort_alerts
from services.compliance_engine.app.rules import evaluate_compliance
from services.shared_auth import HR_ADMIN, SERVICE, require_role
from services.shared_dates import reference_date
from services.shared_models import ComplianceResult, CourseRecord, EmployeeSnapshot, ExpiryAlert, SnapshotModel

SERVICE_NAME = "compliance-engine"
LOCK_KEY = "compliance_recompute_lock"
SUMMARY_KEY = "compliance:last_recompute"

app = shared_http.create_app(
    SERVICE_NAME,
    title="Compliance Engine",
    description="Training compliance matrix, certification expiry alerts and batch recompute",
)
logger = logging.getLogger(SERVICE_NAME)

_last_recompute: dict | None = None


class CompliancePayload(SnapshotModel):
    history: list[CourseRecord] = Field(default_factory=list)
    required_courses: list[str] = Field(default_factory=list)


class AlertsPayload(SnapshotModel):
    history: list[CourseRecord] = Field(default_factory=list)
    validity_years: dict[str, int] = Field(default_factory=dict)
    today: str | None = None
    warning_days: int = Config.ALERT_WARNING_DAYS


@app.post("/evaluate", response_model=ComplianceResult)
def evaluate(payload: CompliancePayload):
    return evaluate_compliance(payload.history, payload.required_courses)


@app.post("/alerts", response_model=list[ExpiryAlert])
def alerts_for_history(payload: AlertsPayload):
    return expiry_alerts(payload.history, payload.validity_years, reference_date(payload.today), payload.warning_days)


@app.get("/alerts", response_model=list[ExpiryAlert])
def stored_alerts(today: str | None = None, warning_days: int = Config.ALERT_WARNING_DAYS):
    db = shared_http.get_db()
    if not db:
        raise HTTPException(status_code=503, detail="Database unavailable")
    store.ensure_schema(db)
    validity = store.load_course_validity(db)
    ref = reference_date(today)
    out = []
    for raw in store.load_records(db):
        snapshot = EmployeeSnapshot.model_validate(raw)
        employee = {
            "employee_id": snapshot.employee_id,
            "name": snapshot.name,
            "department": snapshot.department or "N/A",
            "position": snapshot.position or "N/A",
        }
        out.extend(expiry_alerts(snapshot.history, validity, ref, warning_days, employee=employee))
    return sort_alerts(out)


@app.post("/recompute")
def recompute(authorization: str | None = Header(default=None)):
    global _last_recompute
    caller = require_role(authorization, HR_ADMIN, SERVICE)
    db = shared_http.get_db()
    if not db:
        raise HTTPException(status_code=503, detail="Database unavailable")

    rc = shared_http.get_redis()
    if rc and not rc.set(LOCK_KEY, caller["username"], nx=True, ex=300):
        return {"status": "locked"}
    try:
        store.ensure_schema(db)
        records = store.load_records(db)
        positions = store.load_positions(db)
        updated = 0
        batches = 0
        for batch in plan_recompute(records, positions, Config.RECOMPUTE_BATCH_SIZE):
            updated += store.write_matrix_batch(db, batch)
            batches += 1
        stats = position_stats(records, positions)
        store.write_position_stats(db, stats)
    finally:
        if rc:
            try:
                rc.delete(LOCK_KEY)
            except Exception as e:
                logger.error(f"Failed to release recompute lock: {e}", exc_info=True)

    summary = {
        "status": "ok",
        "processed": len(records),
        "updated": updated,
        "batches": batches,
        "positions": len(stats),
        "requested_by": caller["username"],
    }
    logger.info(f"Recompute finished: {json.dumps(summary)}")
    _last_recompute = summary
    if rc:
        try:
            rc.set(SUMMARY_KEY, json.dumps(summary))
        except Exception as e:
            logger.error(f"Failed to cache recompute summary: {e}", exc_info=True)
    return summary


@app.post("/recompute/enqueue")
def enqueue_recompute(reason: str = "manual", authorization: str | None = Header(default=None)):
    caller = require_role(authorization, HR_ADMIN)
    rc = shared_http.get_redis()
    if not rc:
        raise HTTPException(status_code=503, detail="Queue unavailable")
    rc.lpush(Config.RECOMPUTE_QUEUE, json.dumps({"reason": reason, "requested_by": caller["username"]}))
    return {"status": "queued", "queue": Config.RECOMPUTE_QUEUE}


@app.get("/recompute/last")
def last_recompute():
    rc = shared_http.get_redis()
    if rc:
        cached = rc.get(SUMMARY_KEY)
        if cached:
            try:
                return json.loads(cached)
            except ValueError:
                logger.warning("Ignoring malformed cached recompute summary")
    if _last_recompute is None:
        raise HTTPException(status_code=404, detail="No recompute has run yet")
    return _last_recompute
