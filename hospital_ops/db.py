from typing import Any, Dict, Optional

import pandas as pd
import pymysql

from .config import Settings, get_settings


def get_connection(settings: Optional[Settings] = None) -> pymysql.connections.Connection:
	"""Create a new DB connection using env vars.

	Autocommit is on: every cleaning statement commits on its own.
	"""
	settings = settings or get_settings()
	return pymysql.connect(
		host=settings.host,
		user=settings.user,
		password=settings.password,
		database=settings.database,
		port=settings.port,
		charset="utf8mb4",
		cursorclass=pymysql.cursors.DictCursor,
		autocommit=True,
	)


def query_one(conn, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
	with conn.cursor() as cur:
		cur.execute(sql, params)
		return cur.fetchone()


def query_all(conn, sql: str, params: tuple = ()) -> list[Dict[str, Any]]:
	with conn.cursor() as cur:
		cur.execute(sql, params)
		rows = cur.fetchall()
		return list(rows)


def execute(conn, sql: str, params: tuple = ()) -> int:
	with conn.cursor() as cur:
		cur.execute(sql, params)
		return cur.rowcount


def query_frame(conn, sql: str, params: tuple = ()) -> pd.DataFrame:
	"""Run a SELECT and return its rows as a DataFrame, keeping the column list when empty."""
	with conn.cursor() as cur:
		cur.execute(sql, params)
		rows = list(cur.fetchall())
		columns = [d[0] for d in (cur.description or ())]
	return pd.DataFrame(rows, columns=columns)
