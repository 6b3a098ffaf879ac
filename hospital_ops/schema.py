# schema.py

from typing import Iterable

import pandas as pd

from .errors import DataTypeError, SchemaError


PATIENTS = "patients"
SERVICES_WEEKLY = "services_weekly"
STAFF = "staff"
STAFF_SCHEDULE = "staff_schedule"

TABLES = (PATIENTS, SERVICES_WEEKLY, STAFF, STAFF_SCHEDULE)

DEFAULT_EVENT = "Normal"
STAY_DURATION = "stay_duration"

patients_schema = {
    "required": ["service", "arrival_date", "departure_date"],
    "properties": {
        "patient_id": "string",
        "name": "string",
        "age": "int",
        "arrival_date": "date",
        "departure_date": "date",
        "service": "string",
        "satisfaction": "number",
        STAY_DURATION: "int",
    },
}

services_weekly_schema = {
    "required": ["service", "event"],
    "properties": {
        "week": "int",
        "month": "int",
        "service": "string",
        "available_beds": "int",
        "patients_request": "int",
        "patients_admitted": "int",
        "patients_refused": "int",
        "patient_satisfaction": "number",
        "staff_morale": "number",
        "event": "string",
    },
}

staff_schema = {
    "required": ["service"],
    "properties": {
        "staff_id": "string",
        "staff_name": "string",
        "role": "string",
        "service": "string",
    },
}

staff_schedule_schema = {
    "required": ["service"],
    "properties": {
        "week": "int",
        "staff_id": "string",
        "staff_name": "string",
        "role": "string",
        "service": "string",
        "present": "bool",
    },
}

SCHEMAS = {
    PATIENTS: patients_schema,
    SERVICES_WEEKLY: services_weekly_schema,
    STAFF: staff_schema,
    STAFF_SCHEDULE: staff_schedule_schema,
}


def normalize_columns(frame: pd.DataFrame) -> pd.DataFrame:
    """Lower-case and strip headers; identifiers are case-insensitive in the source SQL."""
    frame = frame.copy()
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    return frame


def require_columns(frame: pd.DataFrame, table: str, columns: Iterable[str]) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise SchemaError(f"table '{table}' is missing columns: {missing}")


def validate_table(frame: pd.DataFrame, table: str) -> None:
    if table not in SCHEMAS:
        raise SchemaError(f"unknown table '{table}'")
    require_columns(frame, table, SCHEMAS[table]["required"])


NUMERIC_KINDS = ("int", "number", "bool")


def coerce_column(frame: pd.DataFrame, table: str, column: str) -> pd.Series:
    """Read a column as its declared kind; a value that doesn't fit is fatal.

    Dates accept any ISO 8601 form, so plain dates and date-times can share a column.
    Columns without a declared kind are returned unchanged.
    """
    require_columns(frame, table, [column])
    kind = SCHEMAS[table]["properties"].get(column, "string")
    try:
        if kind == "date":
            return pd.to_datetime(frame[column], errors="raise", format="ISO8601")
        if kind in NUMERIC_KINDS:
            return pd.to_numeric(frame[column], errors="raise")
    except (ValueError, TypeError) as e:
        raise DataTypeError(f"{table}.{column} holds a value that is not a {kind}: {e}") from e
    return frame[column]
