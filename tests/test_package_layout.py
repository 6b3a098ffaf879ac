"""Package exports and source layout."""

from __future__ import annotations

import importlib
from pathlib import Path

import hospital_ops

PACKAGE_DIR = Path(hospital_ops.__file__).resolve().parent


def test_all_lists_every_module() -> None:
    modules = {p.stem for p in PACKAGE_DIR.glob("*.py") if p.stem != "__init__"}
    assert set(hospital_ops.__all__) == modules


def test_every_exported_module_imports() -> None:
    for name in hospital_ops.__all__:
        importlib.import_module(f"hospital_ops.{name}")


def test_db_helpers_use_tab_indentation() -> None:
    lines = (PACKAGE_DIR / "db.py").read_text().splitlines()
    assert not [line for line in lines if line.startswith(" ")]
