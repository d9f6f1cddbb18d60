"""Postgres access for training records, positions, the course catalog and position analytics."""

import json
import logging
from typing import Any, Iterable

from services.compliance_engine.app.expiry import parse_renewal_period
from services.shared_models import MatrixUpdate, PositionStats

logger = logging.getLogger("compliance-engine")

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS training_records (
    employee_id TEXT PRIMARY KEY,
    name TEXT,
    position TEXT NOT NULL DEFAULT '',
    department TEXT NOT NULL DEFAULT '',
    history JSONB NOT NULL DEFAULT '[]'::jsonb,
    matrix JSONB NOT NULL DEFAULT '{}'::jsonb,
    promotion_data JSONB NOT NULL DEFAULT '{}'::jsonb,
    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
);
CREATE TABLE IF NOT EXISTS positions (
    name TEXT PRIMARY KEY,
    department TEXT,
    required_courses JSONB NOT NULL DEFAULT '[]'::jsonb
);
CREATE TABLE IF NOT EXISTS courses (
    name TEXT PRIMARY KEY,
    validity_years INTEGER,
    renewal_period TEXT
);
CREATE TABLE IF NOT EXISTS position_stats (
    name TEXT PRIMARY KEY,
    department TEXT,
    headcount INTEGER NOT NULL,
    avg_compliance NUMERIC(5, 1) NOT NULL,
    band TEXT NOT NULL,
    approved INTEGER NOT NULL,
    failed INTEGER NOT NULL,
    pending INTEGER NOT NULL,
    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
);
"""


def ensure_schema(conn) -> None:
    cur = conn.cursor()
    cur.execute(SCHEMA_DDL)
    conn.commit()


def load_records(conn) -> list[dict[str, Any]]:
    """Employee snapshots in the stored document shape. JSONB columns arrive already decoded."""
    cur = conn.cursor()
    cur.execute(
        "SELECT employee_id, name, position, department, history, matrix, promotion_data FROM training_records ORDER BY employee_id;"
    )
    return [
        {
            "employeeId": employee_id,
            "name": name,
            "position": position or "",
            "department": department or "",
            "history": history or [],
            "matrix": matrix or {},
            "promotionData": promotion_data or {},
        }
        for employee_id, name, position, department, history, matrix, promotion_data in cur.fetchall()
    ]


def load_positions(conn) -> dict[str, list[str]]:
    cur = conn.cursor()
    cur.execute("SELECT name, required_courses FROM positions;")
    return {name: list(required or []) for name, required in cur.fetchall()}


def load_course_validity(conn) -> dict[str, int]:
    """Validity in years per course; falls back to the catalog's renewal text when the number is unset."""
    cur = conn.cursor()
    cur.execute("SELECT name, validity_years, renewal_period FROM courses;")
    out = {}
    for name, years, renewal_period in cur.fetchall():
        out[name] = years if years is not None else parse_renewal_period(renewal_period)
    return out


def write_matrix_batch(conn, updates: Iterable[MatrixUpdate]) -> int:
    rows = [(json.dumps(u.matrix.model_dump(by_alias=True)), u.employee_id) for u in updates]
    if not rows:
        return 0
    cur = conn.cursor()
    try:
        cur.executemany(
            "UPDATE training_records SET matrix=%s::jsonb, updated_at=NOW() WHERE employee_id=%s;",
            rows,
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    logger.info(f"Committed matrix batch of {len(rows)} records")
    return len(rows)


def write_position_stats(conn, stats: Iterable[PositionStats]) -> int:
    cur = conn.cursor()
    count = 0
    try:
        for s in stats:
            cur.execute(
                "INSERT INTO position_stats (name, department, headcount, avg_compliance, band, approved, failed, pending) "
                "VALUES (%s,%s,%s,%s,%s,%s,%s,%s) ON CONFLICT (name) DO UPDATE SET department=EXCLUDED.department, "
                "headcount=EXCLUDED.headcount, avg_compliance=EXCLUDED.avg_compliance, band=EXCLUDED.band, "
                "approved=EXCLUDED.approved, failed=EXCLUDED.failed, pending=EXCLUDED.pending, updated_at=NOW();",
                (s.name, s.department, s.headcount, s.avg_compliance, s.band, s.approved, s.failed, s.pending),
            )
            count += 1
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return count
