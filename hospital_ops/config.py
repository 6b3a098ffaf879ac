import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError


load_dotenv()

SOURCES = ("csv", "mysql")


@dataclass(frozen=True)
class Settings:
    source: str = "csv"
    data_dir: str = "data"
    log_level: str = "INFO"
    host: Optional[str] = None
    port: int = 3306
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None


def get_settings() -> Settings:
    """Read settings from the environment (a local .env is loaded on import)."""
    source = os.getenv("HOSPITAL_OPS_SOURCE", "csv").strip().lower()
    if source not in SOURCES:
        raise ConfigError(f"HOSPITAL_OPS_SOURCE must be one of {SOURCES}, got {source!r}")

    try:
        port = int(os.getenv("PORT_NUMBER", "3306"))
    except ValueError as e:
        raise ConfigError(f"PORT_NUMBER must be an integer: {e}") from e

    return Settings(
        source=source,
        data_dir=os.getenv("HOSPITAL_OPS_DATA_DIR", "data"),
        log_level=os.getenv("HOSPITAL_OPS_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST"),
        port=port,
        database=os.getenv("DATABASE_NAME"),
        user=os.getenv("DATABASE_USER"),
        password=os.getenv("DATABASE_PASSWORD"),
    )
