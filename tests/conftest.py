from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pandas as pd
import pytest

from hospital_ops.store import load_csv_dir
from hospital_ops.tables import HospitalTables

PATIENTS_CSV = """patient_id,name,age,arrival_date,departure_date,service,satisfaction
P1,Ann,72,2024-01-01,2024-01-05," emergency ",80
P2,Bob,45,2024-01-03,2023-12-31,surgery,70
P3,Cid,65,2024-01-10,2024-01-12,"surgery ",90
P4,Dee,30,2024-01-07,2024-01-07,ICU,60
P5,Eve,61,2024-01-08,,emergency,70
"""

SERVICES_WEEKLY_CSV = """week,month,service,available_beds,patients_request,patients_admitted,patients_refused,patient_satisfaction,staff_morale,event
1,1," emergency",30,40,20,20,80,70,""
2,1,emergency,30,35,25,10,84,74,Flu Outbreak
1,1,"surgery ",20,15,12,3,90,80,
2,1,surgery,20,10,8,2,88,76,"  "
1,1,ICU,10,5,5,0,70,60,none
"""

STAFF_CSV = """staff_id,staff_name,role,service
S1,Ada,doctor," emergency "
S2,Ben,nurse,surgery
S3,Cal,nurse,ICU
"""

STAFF_SCHEDULE_CSV = """week,staff_id,staff_name,role,service,present
1,S1,Ada,doctor,"emergency ",1
1,S4,Dan,nurse,emergency,1
2,S1,Ada,doctor,emergency,1
2,S4,Dan,nurse,emergency,0
1,S2,Ben,nurse,surgery,1
2,S2,Ben,nurse,surgery,0
1,S3,Cal,nurse,ICU,0
"""


@pytest.fixture
def csv_dir(tmp_path: Path) -> Path:
    data = tmp_path / "data"
    data.mkdir()
    (data / "patients.csv").write_text(PATIENTS_CSV)
    (data / "services_weekly.csv").write_text(SERVICES_WEEKLY_CSV)
    (data / "staff.csv").write_text(STAFF_CSV)
    (data / "staff_schedule.csv").write_text(STAFF_SCHEDULE_CSV)
    return data


@pytest.fixture
def tables(csv_dir: Path) -> HospitalTables:
    return load_csv_dir(csv_dir)


@pytest.fixture
def make_tables() -> Callable[..., HospitalTables]:
    """Build a small bundle; tables not given get a single placeholder row."""

    def _make(
        patients: Optional[dict] = None,
        services_weekly: Optional[dict] = None,
        staff: Optional[dict] = None,
        staff_schedule: Optional[dict] = None,
    ) -> HospitalTables:
        return HospitalTables(
            patients=pd.DataFrame(patients or {
                "service": ["Cardiology"],
                "arrival_date": ["2024-01-01"],
                "departure_date": ["2024-01-02"],
            }),
            services_weekly=pd.DataFrame(services_weekly or {"service": ["Cardiology"], "event": ["Normal"]}),
            staff=pd.DataFrame(staff or {"service": ["Cardiology"]}),
            staff_schedule=pd.DataFrame(staff_schedule or {"service": ["Cardiology"]}),
        )

    return _make
