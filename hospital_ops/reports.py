"""Operational reports over the cleaned tables.

Every report is read-only and returns a new DataFrame. Weekly statistics and
patients are aggregated per service before they are joined, so a service's
refusals are counted once rather than once per patient.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import pandas as pd

from .schema import (
    PATIENTS,
    SERVICES_WEEKLY,
    STAFF_SCHEDULE,
    STAY_DURATION,
    coerce_column,
    require_columns,
)
from .tables import HospitalTables

PREVIEW_COLUMNS = ["service", "arrival_date", "departure_date", STAY_DURATION]


def _sum(values: pd.Series):
    # SUM over only missing values is missing, not 0
    return values.sum(min_count=1)


def preview(tables: HospitalTables, limit: int = 10) -> pd.DataFrame:
    """Most recent patients with their stay duration."""
    patients = tables.patients
    require_columns(patients, PATIENTS, PREVIEW_COLUMNS)
    out = patients[PREVIEW_COLUMNS].copy()
    out["arrival_date"] = coerce_column(patients, PATIENTS, "arrival_date")
    out["departure_date"] = coerce_column(patients, PATIENTS, "departure_date")
    out = out.sort_values("arrival_date", ascending=False, na_position="last", kind="mergesort")
    return out.head(limit).reset_index(drop=True)


def bottlenecks(tables: HospitalTables) -> pd.DataFrame:
    """Average stay, total refusals and average satisfaction per service."""
    patients = tables.patients
    require_columns(patients, PATIENTS, ["service"])
    stays = pd.DataFrame({
        "service": patients["service"],
        "stay": coerce_column(patients, PATIENTS, STAY_DURATION),
    })
    by_patient = stays.groupby("service").agg(avg_stay_days=("stay", "mean"))

    weekly = tables.services_weekly
    require_columns(weekly, SERVICES_WEEKLY, ["service"])
    stats = pd.DataFrame({
        "service": weekly["service"],
        "refused": coerce_column(weekly, SERVICES_WEEKLY, "patients_refused"),
        "satisfaction": coerce_column(weekly, SERVICES_WEEKLY, "patient_satisfaction"),
    })
    by_week = stats.groupby("service").agg(
        total_patients_refused=("refused", _sum),
        avg_satisfaction=("satisfaction", "mean"),
    )

    out = by_patient.join(by_week, how="inner").reset_index()
    out["avg_stay_days"] = out["avg_stay_days"].round(1)
    out["avg_satisfaction"] = out["avg_satisfaction"].round(1)
    out = out.sort_values(
        ["total_patients_refused", "service"],
        ascending=[False, True],
        na_position="last",
        kind="mergesort",
    )
    return out[["service", "avg_stay_days", "total_patients_refused", "avg_satisfaction"]].reset_index(drop=True)


def resource_allocation(tables: HospitalTables, by_week: bool = False) -> pd.DataFrame:
    """Admitted patients per present staff member, staff morale and refusals.

    The ratio only counts service-weeks with staff present; ``patients_per_staff``
    is missing (pd.NA) where no staff member was present at all.
    """
    weekly = tables.services_weekly
    require_columns(weekly, SERVICES_WEEKLY, ["service"])
    stats = pd.DataFrame({
        "service": weekly["service"],
        "week": coerce_column(weekly, SERVICES_WEEKLY, "week"),
        "patients_admitted": coerce_column(weekly, SERVICES_WEEKLY, "patients_admitted"),
        "staff_morale": coerce_column(weekly, SERVICES_WEEKLY, "staff_morale"),
        "patients_refused": coerce_column(weekly, SERVICES_WEEKLY, "patients_refused"),
    })

    schedule = tables.staff_schedule
    require_columns(schedule, STAFF_SCHEDULE, ["service"])
    shifts = pd.DataFrame({
        "service": schedule["service"],
        "week": coerce_column(schedule, STAFF_SCHEDULE, "week"),
        "present": coerce_column(schedule, STAFF_SCHEDULE, "present").astype(float),
    })
    present = (
        shifts.groupby(["service", "week"])["present"].sum()
        .rename("present_staff")
        .reset_index()
    )

    merged = stats.merge(present, on=["service", "week"], how="left")
    merged["present_staff"] = merged["present_staff"].fillna(0)
    # unstaffed weeks stay out of the ratio; refusals and morale cover every week
    merged["staffed_admitted"] = merged["patients_admitted"].where(merged["present_staff"] > 0)

    keys = ["service", "week"] if by_week else ["service"]
    out = merged.groupby(keys).agg(
        staffed_admitted=("staffed_admitted", _sum),
        present_staff=("present_staff", "sum"),
        avg_staff_morale=("staff_morale", "mean"),
        total_refused=("patients_refused", _sum),
    ).reset_index()

    staffed = out["present_staff"].where(out["present_staff"] > 0)
    out["patients_per_staff"] = (out["staffed_admitted"] / staffed).round(2).astype("Float64")
    out["present_staff"] = out["present_staff"].astype("int64")
    out["avg_staff_morale"] = out["avg_staff_morale"].round(1)

    out = out.sort_values(
        ["patients_per_staff"] + keys,
        ascending=[False] + [True] * len(keys),
        na_position="last",
        kind="mergesort",
    )
    columns = keys + ["patients_per_staff", "present_staff", "avg_staff_morale", "total_refused"]
    return out[columns].reset_index(drop=True)


def geriatric(tables: HospitalTables, min_age: int = 60) -> pd.DataFrame:
    """Satisfaction and average stay of patients aged ``min_age`` or above, per service."""
    patients = tables.patients
    require_columns(patients, PATIENTS, ["service"])
    age = coerce_column(patients, PATIENTS, "age")
    elderly = pd.DataFrame({
        "service": patients["service"],
        "satisfaction": coerce_column(patients, PATIENTS, "satisfaction"),
        "stay": coerce_column(patients, PATIENTS, STAY_DURATION),
    })[age >= min_age]

    out = elderly.groupby("service").agg(
        patients=("satisfaction", "size"),
        elderly_satisfaction=("satisfaction", "mean"),
        avg_stay=("stay", "mean"),
    ).reset_index()
    out["elderly_satisfaction"] = out["elderly_satisfaction"].round(2)
    out["avg_stay"] = out["avg_stay"].round(2)
    return out


REPORTS: Dict[str, Callable[..., pd.DataFrame]] = {
    "preview": preview,
    "bottlenecks": bottlenecks,
    "resource-allocation": resource_allocation,
    "geriatric": geriatric,
}


def to_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """JSON-ready rows: dates as YYYY-MM-DD, missing values as None."""
    out = frame.copy()
    for col in out.columns:
        if pd.api.types.is_datetime64_any_dtype(out[col]):
            out[col] = out[col].dt.strftime("%Y-%m-%d")
    return json.loads(out.to_json(orient="records"))
