"""hospital_ops package initializer

Cleaning stages and operational reports for the hospital dataset
(patients, services_weekly, staff, staff_schedule).
"""

__all__ = [
    "cli",
    "config",
    "db",
    "errors",
    "logging_config",
    "mysql_pipeline",
    "pipeline",
    "reports",
    "schema",
    "store",
    "tables",
]
