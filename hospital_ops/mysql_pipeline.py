"""Run the cleaning stages in place against the MySQL tables.

Same stage order and prerequisites as :mod:`hospital_ops.pipeline`, issued as
SQL. The connection is expected to autocommit; a failing statement stops the
run and leaves earlier stages applied.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Dict, Iterable, Optional

from .db import execute, query_all, query_one
from .pipeline import check_requires, get_stages
from .schema import DEFAULT_EVENT, PATIENTS, SERVICES_WEEKLY, STAY_DURATION, TABLES

logger = logging.getLogger(__name__)

AUDIT_LOG_DDL = """
CREATE TABLE IF NOT EXISTS audit_log (
    id INT AUTO_INCREMENT PRIMARY KEY,
    table_name VARCHAR(128) NOT NULL,
    row_pk VARCHAR(255),
    operation VARCHAR(16) NOT NULL,
    old_values LONGTEXT,
    new_values LONGTEXT,
    changed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    changed_by VARCHAR(128)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
"""

INVALID_STAYS_WHERE = "departure_date < arrival_date"


def normalize_service(conn, changed_by: str) -> int:
    changed = 0
    for table in TABLES:
        changed += execute(conn, f"UPDATE `{table}` SET service = TRIM(service)")
    logger.info("normalize_service: trimmed %d service values", changed)
    return changed


def default_events(conn, changed_by: str) -> int:
    changed = execute(
        conn,
        f"UPDATE `{SERVICES_WEEKLY}` SET event = %s WHERE event IS NULL OR event = ''",
        (DEFAULT_EVENT,),
    )
    logger.info("default_events: set %d events to %r", changed, DEFAULT_EVENT)
    return changed


def remove_invalid_stays(conn, changed_by: str) -> int:
    """Log every invalid patient row to audit_log, then delete them."""
    rows = query_all(conn, f"SELECT * FROM `{PATIENTS}` WHERE {INVALID_STAYS_WHERE}")
    if rows:
        execute(conn, AUDIT_LOG_DDL)
        with conn.cursor() as cur:
            cur.executemany(
                """
                INSERT INTO audit_log (table_name, row_pk, operation, old_values, new_values, changed_by)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                [
                    (
                        PATIENTS,
                        None if row.get("patient_id") is None else str(row.get("patient_id")),
                        "DELETE",
                        json.dumps(row, default=str),
                        None,
                        changed_by,
                    )
                    for row in rows
                ],
            )

    removed = execute(conn, f"DELETE FROM `{PATIENTS}` WHERE {INVALID_STAYS_WHERE}")
    logger.info("remove_invalid_stays: removed %d patients (%d archived)", removed, len(rows))
    return removed


def has_column(conn, table: str, column: str) -> bool:
    row = query_one(
        conn,
        """
        SELECT COUNT(*) AS n
        FROM information_schema.COLUMNS
        WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s AND COLUMN_NAME = %s
        """,
        (table, column),
    )
    return bool(row and row["n"])


def compute_stay_duration(conn, changed_by: str) -> int:
    if not has_column(conn, PATIENTS, STAY_DURATION):
        execute(conn, f"ALTER TABLE `{PATIENTS}` ADD COLUMN {STAY_DURATION} INT")
        logger.info("compute_stay_duration: added column %s.%s", PATIENTS, STAY_DURATION)

    changed = execute(
        conn,
        f"UPDATE `{PATIENTS}` SET {STAY_DURATION} = DATEDIFF(departure_date, arrival_date)",
    )
    logger.info("compute_stay_duration: updated %d rows", changed)
    return changed


SQL_STAGES: Dict[str, Callable[..., int]] = {
    "normalize_service": normalize_service,
    "default_events": default_events,
    "remove_invalid_stays": remove_invalid_stays,
    "compute_stay_duration": compute_stay_duration,
}


def run_mysql_pipeline(
    conn,
    stages: Optional[Iterable[str]] = None,
    changed_by: str = "hospital-ops",
) -> Dict[str, int]:
    """Run the stages against ``conn`` and return the affected row count per stage."""
    applied = []
    changes: Dict[str, int] = {}
    for stage in get_stages(stages):
        check_requires(stage, applied)
        changes[stage.name] = SQL_STAGES[stage.name](conn, changed_by)
        applied.append(stage.name)
    return changes
