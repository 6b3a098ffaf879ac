"""MySQL stages against a recording fake connection."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from hospital_ops import mysql_pipeline
from hospital_ops.errors import StageOrderError
from hospital_ops.store import load_mysql


def _squash(sql: str) -> str:
    return " ".join(sql.split())


class FakeCursor:
    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn
        self._rows: List[Dict[str, Any]] = []
        self.rowcount = 0
        self.description: Optional[List[Tuple[str]]] = None

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def execute(self, sql: str, params: tuple = ()) -> None:
        sql = _squash(sql)
        self._conn.executed.append((sql, params))
        rows, rowcount, columns = self._conn.respond(sql)
        self._rows = rows
        self.rowcount = rowcount
        self.description = [(c,) for c in columns]

    def executemany(self, sql: str, seq: Any) -> None:
        self._conn.executed_many.append((_squash(sql), list(seq)))

    def fetchone(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None

    def fetchall(self) -> List[Dict[str, Any]]:
        return list(self._rows)


class FakeConnection:
    """Answers by substring; the first matching rule wins."""

    def __init__(self, rules: Optional[List[Tuple[str, Any]]] = None) -> None:
        self.rules = rules or []
        self.executed: List[Tuple[str, tuple]] = []
        self.executed_many: List[Tuple[str, list]] = []

    def respond(self, sql: str):
        for needle, answer in self.rules:
            if needle in sql:
                rows, rowcount = answer if isinstance(answer, tuple) else (answer, len(answer))
                columns = list(rows[0]) if rows else []
                return rows, rowcount, columns
        return [], 0, []

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    @property
    def statements(self) -> List[str]:
        return [sql for sql, _ in self.executed]


INVALID_ROW = {
    "patient_id": "P2",
    "name": "Bob",
    "arrival_date": "2024-01-03",
    "departure_date": "2023-12-31",
    "service": "surgery",
}


def test_full_run_issues_stages_in_order() -> None:
    conn = FakeConnection([
        ("SET service = TRIM(service)", ([], 2)),
        ("SET event = %s", ([], 3)),
        ("SELECT * FROM `patients` WHERE", [INVALID_ROW]),
        ("DELETE FROM `patients`", ([], 1)),
        ("information_schema.COLUMNS", [{"n": 0}]),
        ("DATEDIFF", ([], 4)),
    ])

    changes = mysql_pipeline.run_mysql_pipeline(conn, changed_by="tester")

    assert changes == {
        "normalize_service": 8,
        "default_events": 3,
        "remove_invalid_stays": 1,
        "compute_stay_duration": 4,
    }
    statements = conn.statements
    assert statements[:4] == [
        "UPDATE `patients` SET service = TRIM(service)",
        "UPDATE `services_weekly` SET service = TRIM(service)",
        "UPDATE `staff` SET service = TRIM(service)",
        "UPDATE `staff_schedule` SET service = TRIM(service)",
    ]
    assert statements[4] == "UPDATE `services_weekly` SET event = %s WHERE event IS NULL OR event = ''"
    assert conn.executed[4][1] == ("Normal",)
    assert statements[5].startswith("SELECT * FROM `patients` WHERE departure_date < arrival_date")
    assert statements[6].startswith("CREATE TABLE IF NOT EXISTS audit_log")
    assert statements[7] == "DELETE FROM `patients` WHERE departure_date < arrival_date"
    assert "information_schema.COLUMNS" in statements[8]
    assert statements[9] == "ALTER TABLE `patients` ADD COLUMN stay_duration INT"
    assert statements[10] == "UPDATE `patients` SET stay_duration = DATEDIFF(departure_date, arrival_date)"


def test_removed_rows_are_written_to_audit_log() -> None:
    conn = FakeConnection([("SELECT * FROM `patients` WHERE", [INVALID_ROW])])

    mysql_pipeline.remove_invalid_stays(conn, changed_by="tester")

    assert len(conn.executed_many) == 1
    sql, rows = conn.executed_many[0]
    assert sql.startswith("INSERT INTO audit_log")
    table, pk, operation, old_values, new_values, changed_by = rows[0]
    assert (table, pk, operation, new_values, changed_by) == ("patients", "P2", "DELETE", None, "tester")
    assert json.loads(old_values)["departure_date"] == "2023-12-31"


def test_nothing_archived_without_invalid_rows() -> None:
    conn = FakeConnection()

    assert mysql_pipeline.remove_invalid_stays(conn, changed_by="tester") == 0
    assert conn.executed_many == []
    assert not any("audit_log" in s for s in conn.statements)


def test_existing_column_is_not_added_again() -> None:
    conn = FakeConnection([("information_schema.COLUMNS", [{"n": 1}])])

    mysql_pipeline.compute_stay_duration(conn, changed_by="tester")

    assert not any(s.startswith("ALTER TABLE") for s in conn.statements)
    assert conn.statements[-1].startswith("UPDATE `patients` SET stay_duration")


def test_duration_before_removal_is_rejected() -> None:
    conn = FakeConnection()

    with pytest.raises(StageOrderError):
        mysql_pipeline.run_mysql_pipeline(conn, stages=["compute_stay_duration"])
    assert conn.executed == []


def test_load_mysql_reads_all_tables() -> None:
    conn = FakeConnection([
        ("FROM `patients`", [{"Patient_ID": "P1", "Service": "ICU", "Arrival_Date": "2024-01-01",
                              "Departure_Date": "2024-01-02"}]),
        ("FROM `services_weekly`", [{"service": "ICU", "event": None}]),
        ("FROM `staff_schedule`", [{"service": "ICU", "present": 1}]),
        ("FROM `staff`", [{"service": "ICU"}]),
    ])

    tables = load_mysql(conn)

    assert list(tables.patients.columns) == ["patient_id", "service", "arrival_date", "departure_date"]
    assert tables.staff_schedule["present"].tolist() == [1]
    assert conn.statements == [
        "SELECT * FROM `patients`",
        "SELECT * FROM `services_weekly`",
        "SELECT * FROM `staff`",
        "SELECT * FROM `staff_schedule`",
    ]
