from datetime import date
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from hospital_ops.config import Settings, get_settings
from hospital_ops.db import get_connection
from hospital_ops.errors import HospitalOpsError
from hospital_ops.logging_config import setup_logging
from hospital_ops.mysql_pipeline import run_mysql_pipeline
from hospital_ops.pipeline import run_pipeline
from hospital_ops.reports import bottlenecks, geriatric, preview, resource_allocation, to_records
from hospital_ops.store import append_removed_patients, load_tables, write_csv_dir
from hospital_ops.tables import HospitalTables


setup_logging()

app = FastAPI(title="Hospital Operations Reports API", version="1.0.0")


@app.exception_handler(HospitalOpsError)
def hospital_ops_error(request: Request, exc: HospitalOpsError):
	return JSONResponse(status_code=422, content={"detail": str(exc)})


def current_settings() -> Settings:
	return get_settings()


def cleaned_tables(settings: Settings = Depends(current_settings)) -> HospitalTables:
	# Reports always read cleaned data; the stages are idempotent so re-running is safe
	tables = load_tables(settings.source, settings.data_dir, settings)
	return run_pipeline(tables).tables


# ======== Schemas ========
class PreviewRow(BaseModel):
	service: Optional[str]
	arrival_date: Optional[date]
	departure_date: Optional[date]
	stay_duration: Optional[int]


class BottleneckRow(BaseModel):
	service: str
	avg_stay_days: Optional[float]
	total_patients_refused: Optional[float]
	avg_satisfaction: Optional[float]


class ResourceAllocationRow(BaseModel):
	service: str
	week: Optional[int] = None
	patients_per_staff: Optional[float]  # None when nobody was present
	present_staff: int
	avg_staff_morale: Optional[float]
	total_refused: Optional[float]


class GeriatricRow(BaseModel):
	service: str
	patients: int
	elderly_satisfaction: Optional[float]
	avg_stay: Optional[float]


class PipelineRunOut(BaseModel):
	source: str
	changes: Dict[str, int]


# ======== Reports ========
@app.get("/reports/preview", response_model=list[PreviewRow], tags=["Reports"])
def preview_report(limit: int = Query(default=10, ge=1, le=1000), tables=Depends(cleaned_tables)):
	return to_records(preview(tables, limit=limit))


@app.get("/reports/bottlenecks", response_model=list[BottleneckRow], tags=["Reports"])
def bottlenecks_report(tables=Depends(cleaned_tables)):
	return to_records(bottlenecks(tables))


@app.get("/reports/resource-allocation", response_model=list[ResourceAllocationRow], tags=["Reports"])
def resource_allocation_report(by_week: bool = False, tables=Depends(cleaned_tables)):
	return to_records(resource_allocation(tables, by_week=by_week))


@app.get("/reports/geriatric", response_model=list[GeriatricRow], tags=["Reports"])
def geriatric_report(min_age: int = Query(default=60, ge=0), tables=Depends(cleaned_tables)):
	return to_records(geriatric(tables, min_age=min_age))


# ======== Pipeline ========
@app.post("/pipeline/run", response_model=PipelineRunOut, tags=["Pipeline"])
def run_cleaning(settings: Settings = Depends(current_settings)):
	if settings.source == "mysql":
		conn = get_connection(settings)
		try:
			changes = run_mysql_pipeline(conn, changed_by="api")
		finally:
			conn.close()
	else:
		result = run_pipeline(load_tables("csv", settings.data_dir, settings))
		write_csv_dir(result.tables, settings.data_dir)
		append_removed_patients(result.removed_patients, settings.data_dir)
		changes = result.changes
	return {"source": settings.source, "changes": changes}
