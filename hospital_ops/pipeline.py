"""
pipeline.py
-----------
Cleaning & enrichment stages for the hospital tables.

Stages, in the only order they may run:
1) normalize_service     : strip whitespace around the `service` join key (all tables)
2) default_events        : null/empty `event` -> "Normal" (services_weekly)
3) remove_invalid_stays  : drop patients whose departure precedes arrival
4) compute_stay_duration : whole days between arrival and departure

Each stage takes a HospitalTables and returns a StageResult holding the next
state; nothing is modified in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

import pandas as pd

from .errors import StageOrderError
from .schema import (
    DEFAULT_EVENT,
    PATIENTS,
    SERVICES_WEEKLY,
    STAY_DURATION,
    TABLES,
    coerce_column,
    require_columns,
)
from .tables import HospitalTables

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageResult:
    tables: HospitalTables
    changed: int = 0
    removed: Optional[pd.DataFrame] = None


@dataclass(frozen=True)
class Stage:
    name: str
    run: Callable[[HospitalTables], StageResult]
    requires: Tuple[str, ...] = ()
    description: str = ""


@dataclass
class PipelineResult:
    tables: HospitalTables
    changes: Dict[str, int] = field(default_factory=dict)
    removed_patients: pd.DataFrame = field(default_factory=pd.DataFrame)


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _is_blank_but_not_empty(value) -> bool:
    return isinstance(value, str) and value != "" and not value.strip()


def normalize_service(tables: HospitalTables) -> StageResult:
    changes = {}
    changed = 0
    for table, frame in tables.frames().items():
        require_columns(frame, table, ["service"])
        before = frame["service"]
        after = before.astype(object).map(_strip)
        changed += int((before.notna() & (after != before)).sum())
        frame = frame.copy()
        frame["service"] = after
        changes[table] = frame

    logger.info("normalize_service: trimmed %d service values", changed)
    return StageResult(tables.evolve("normalize_service", **changes), changed=changed)


def default_events(tables: HospitalTables) -> StageResult:
    frame = tables.services_weekly
    require_columns(frame, SERVICES_WEEKLY, ["event"])

    event = frame["event"].astype(object)
    missing = event.isna() | (event == "")
    blank = int(event.map(_is_blank_but_not_empty).sum())
    if blank:
        # left as-is: only null and "" count as "no event"
        logger.warning("default_events: %d whitespace-only events left unchanged", blank)

    frame = frame.copy()
    frame["event"] = event.mask(missing, DEFAULT_EVENT)
    changed = int(missing.sum())

    logger.info("default_events: set %d events to %r", changed, DEFAULT_EVENT)
    return StageResult(tables.evolve("default_events", services_weekly=frame), changed=changed)


def invalid_stay_mask(patients: pd.DataFrame) -> pd.Series:
    """Rows whose departure precedes arrival. Rows missing either date are not invalid."""
    require_columns(patients, PATIENTS, ["arrival_date", "departure_date"])
    arrival = coerce_column(patients, PATIENTS, "arrival_date")
    departure = coerce_column(patients, PATIENTS, "departure_date")
    return departure < arrival


def remove_invalid_stays(tables: HospitalTables) -> StageResult:
    patients = tables.patients
    invalid = invalid_stay_mask(patients)
    removed = patients[invalid].copy()
    kept = patients[~invalid].copy()

    logger.info("remove_invalid_stays: removed %d of %d patients", len(removed), len(patients))
    return StageResult(
        tables.evolve("remove_invalid_stays", patients=kept),
        changed=len(removed),
        removed=removed,
    )


def stay_days(arrival: pd.Series, departure: pd.Series) -> pd.Series:
    # calendar-day difference; time of day is ignored
    delta = departure.dt.normalize() - arrival.dt.normalize()
    return delta.dt.days.astype("Int64")


def compute_stay_duration(tables: HospitalTables) -> StageResult:
    patients = tables.patients
    require_columns(patients, PATIENTS, ["arrival_date", "departure_date"])
    arrival = coerce_column(patients, PATIENTS, "arrival_date")
    departure = coerce_column(patients, PATIENTS, "departure_date")

    if STAY_DURATION in patients.columns:
        logger.debug("compute_stay_duration: column exists, recomputing")

    patients = patients.copy()
    patients[STAY_DURATION] = stay_days(arrival, departure)
    changed = int(patients[STAY_DURATION].notna().sum())

    logger.info("compute_stay_duration: computed %d durations", changed)
    return StageResult(tables.evolve("compute_stay_duration", patients=patients), changed=changed)


STAGES: Tuple[Stage, ...] = (
    Stage("normalize_service", normalize_service,
          description="Trim whitespace around service in %s" % ", ".join(TABLES)),
    Stage("default_events", default_events,
          description="Default null/empty services_weekly.event to 'Normal'"),
    Stage("remove_invalid_stays", remove_invalid_stays,
          description="Delete patients with departure_date < arrival_date"),
    Stage("compute_stay_duration", compute_stay_duration,
          requires=("remove_invalid_stays",),
          description="Add and fill patients.stay_duration (days)"),
)

STAGE_NAMES = tuple(s.name for s in STAGES)


def get_stages(names: Optional[Iterable[str]] = None) -> Tuple[Stage, ...]:
    if names is None:
        return STAGES
    by_name = {s.name: s for s in STAGES}
    unknown = [n for n in names if n not in by_name]
    if unknown:
        raise ValueError(f"Unknown stages: {unknown}. Known: {list(STAGE_NAMES)}")
    return tuple(by_name[n] for n in names)


def check_requires(stage: Stage, applied: Sequence[str]) -> None:
    missing = [r for r in stage.requires if r not in applied]
    if missing:
        raise StageOrderError(f"stage '{stage.name}' requires {missing} to run first")


def run_pipeline(tables: HospitalTables, stages: Optional[Iterable[str]] = None) -> PipelineResult:
    """Run the stages in order and collect per-stage change counts and removed rows."""
    result = PipelineResult(tables=tables)
    removed = []
    for stage in get_stages(stages):
        check_requires(stage, result.tables.applied)
        outcome = stage.run(result.tables)
        result.tables = outcome.tables
        result.changes[stage.name] = outcome.changed
        if outcome.removed is not None:
            removed.append(outcome.removed)

    if removed:
        result.removed_patients = pd.concat(removed, ignore_index=True)
    return result
