"""Loading and saving the four tables.

A CSV directory holds one file per table (``patients.csv`` ...). MySQL
tables are read through :mod:`hospital_ops.db`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from .config import SOURCES, Settings, get_settings
from .db import get_connection, query_frame
from .errors import SchemaError
from .schema import TABLES, normalize_columns
from .tables import HospitalTables

logger = logging.getLogger(__name__)

REMOVED_PATIENTS_FILE = "removed_patients.csv"


def _csv_path(data_dir: Path, table: str) -> Path:
    return Path(data_dir) / f"{table}.csv"


def read_csv_table(path: Path) -> pd.DataFrame:
    # Only empty cells are missing; literal "none"/"NA" stay as text.
    frame = pd.read_csv(path, keep_default_na=False, na_values=[""])
    return normalize_columns(frame)


def load_csv_dir(data_dir) -> HospitalTables:
    data_dir = Path(data_dir)
    frames = {}
    for table in TABLES:
        path = _csv_path(data_dir, table)
        if not path.exists():
            raise SchemaError(f"table '{table}' not found: {path}")
        frames[table] = read_csv_table(path)
        logger.debug("Loaded %d rows from %s", len(frames[table]), path)
    return HospitalTables.from_frames(frames)


def write_csv_dir(tables: HospitalTables, out_dir) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    for table, frame in tables.frames().items():
        frame.to_csv(_csv_path(out_dir, table), index=False)
    logger.info("Wrote %d tables to %s", len(TABLES), out_dir)
    return out_dir


def append_removed_patients(removed: pd.DataFrame, out_dir) -> Path | None:
    """Append removed patient rows to the audit CSV; nothing is written when empty."""
    if removed.empty:
        return None
    path = Path(out_dir) / REMOVED_PATIENTS_FILE
    removed.to_csv(path, mode="a", header=not path.exists(), index=False)
    logger.info("Archived %d removed patient rows to %s", len(removed), path)
    return path


def load_mysql(conn) -> HospitalTables:
    frames = {}
    for table in TABLES:
        frames[table] = normalize_columns(query_frame(conn, f"SELECT * FROM `{table}`"))
    return HospitalTables.from_frames(frames)


def load_tables(source: str = "csv", data_dir=None, settings: Settings | None = None) -> HospitalTables:
    """Load the tables from the configured source (``csv`` directory or ``mysql``)."""
    settings = settings or get_settings()
    if source == "csv":
        return load_csv_dir(data_dir or settings.data_dir)
    if source == "mysql":
        conn = get_connection(settings)
        try:
            return load_mysql(conn)
        finally:
            conn.close()
    raise ValueError(f"Unknown source {source!r}; expected one of {SOURCES}")
