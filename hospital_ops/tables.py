from dataclasses import dataclass, field, replace
from typing import Dict, Tuple

import pandas as pd

from .errors import SchemaError
from .schema import PATIENTS, SERVICES_WEEKLY, STAFF, STAFF_SCHEDULE, TABLES, validate_table


@dataclass(frozen=True)
class HospitalTables:
    """The four relations, passed from stage to stage.

    ``applied`` lists the stage names already run on this state, in order.
    Stages never mutate the frames they receive; they return a new bundle.
    """

    patients: pd.DataFrame
    services_weekly: pd.DataFrame
    staff: pd.DataFrame
    staff_schedule: pd.DataFrame
    applied: Tuple[str, ...] = field(default=())

    @classmethod
    def from_frames(cls, frames: Dict[str, pd.DataFrame]) -> "HospitalTables":
        for name in TABLES:
            if name not in frames:
                raise SchemaError(f"table '{name}' is missing")
            validate_table(frames[name], name)
        return cls(
            patients=frames[PATIENTS],
            services_weekly=frames[SERVICES_WEEKLY],
            staff=frames[STAFF],
            staff_schedule=frames[STAFF_SCHEDULE],
        )

    def frames(self) -> Dict[str, pd.DataFrame]:
        return {name: getattr(self, name) for name in TABLES}

    def evolve(self, stage: str, **changes: pd.DataFrame) -> "HospitalTables":
        return replace(self, applied=self.applied + (stage,), **changes)
