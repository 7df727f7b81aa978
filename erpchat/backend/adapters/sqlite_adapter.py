from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from erpchat.backend import constants


TABLES = (
	"bank_accounts",
	"stock_items",
	"customers",
	"credit_cards",
	"cash_accounts",
	"quotes",
	"quote_lines",
	"customer_movements",
)

_SCHEMA = (
	"""
	CREATE TABLE IF NOT EXISTS bank_accounts (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		bank_name TEXT NOT NULL,
		account_name TEXT,
		currency TEXT NOT NULL,
		balance REAL NOT NULL DEFAULT 0
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS stock_items (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		stock_code TEXT NOT NULL,
		stock_name TEXT NOT NULL,
		warehouse TEXT NOT NULL,
		quantity REAL NOT NULL DEFAULT 0
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS customers (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		customer_name TEXT NOT NULL UNIQUE,
		group_name TEXT,
		currency TEXT NOT NULL DEFAULT 'TL',
		total_debit REAL NOT NULL DEFAULT 0,
		total_credit REAL NOT NULL DEFAULT 0
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS credit_cards (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		card_name TEXT NOT NULL,
		bank_name TEXT NOT NULL,
		card_limit REAL NOT NULL DEFAULT 0,
		used REAL NOT NULL DEFAULT 0
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS cash_accounts (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		cash_name TEXT NOT NULL,
		currency TEXT NOT NULL,
		balance REAL NOT NULL DEFAULT 0
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS quotes (
		quote_no TEXT PRIMARY KEY,
		customer_name TEXT NOT NULL,
		quote_date TEXT NOT NULL,
		status TEXT NOT NULL,
		description TEXT,
		currency TEXT NOT NULL DEFAULT 'TL'
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS quote_lines (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		quote_no TEXT NOT NULL REFERENCES quotes(quote_no),
		product_name TEXT NOT NULL,
		quantity REAL NOT NULL DEFAULT 0,
		unit_price REAL NOT NULL DEFAULT 0
	)
	""",
	"""
	CREATE TABLE IF NOT EXISTS customer_movements (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		customer_name TEXT NOT NULL,
		movement_date TEXT NOT NULL,
		document_no TEXT,
		description TEXT,
		debit REAL NOT NULL DEFAULT 0,
		credit REAL NOT NULL DEFAULT 0,
		currency TEXT NOT NULL DEFAULT 'TL'
	)
	""",
)


def _get_db_path(db_path: Optional[str]) -> str:
	if db_path:
		return db_path
	return constants.DEFAULT_DB_PATH


def _connect(path: str) -> sqlite3.Connection:
	conn = sqlite3.connect(path, timeout=constants.SQLITE_BUSY_TIMEOUT_MS / 1000)
	conn.execute("PRAGMA journal_mode=WAL")
	conn.execute("PRAGMA synchronous=NORMAL")
	conn.execute(f"PRAGMA busy_timeout={constants.SQLITE_BUSY_TIMEOUT_MS}")
	conn.execute("PRAGMA foreign_keys=ON")
	return conn


def init_db(db_path: Optional[str] = None) -> None:
	path = _get_db_path(db_path)
	Path(path).parent.mkdir(parents=True, exist_ok=True)
	conn = _connect(path)
	try:
		for statement in _SCHEMA:
			conn.execute(statement)
		conn.commit()
	finally:
		conn.close()


def run_query(sql: str, params: Mapping[str, Any], db_path: Optional[str] = None) -> List[Dict[str, Any]]:
	"""Execute a read statement with named parameters bound by the driver."""

	init_db(db_path)
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.row_factory = sqlite3.Row
		cursor = conn.execute(sql, dict(params))
		return [dict(row) for row in cursor.fetchall()]
	finally:
		conn.close()


def insert_rows(table: str, rows: List[Mapping[str, Any]], db_path: Optional[str] = None) -> int:
	if not rows:
		return 0
	if table not in TABLES:
		raise ValueError(f"Unknown table: {table}")
	init_db(db_path)
	columns = list(rows[0].keys())
	placeholders = ", ".join(f":{column}" for column in columns)
	sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		conn.executemany(sql, [dict(row) for row in rows])
		conn.commit()
	finally:
		conn.close()
	return len(rows)


def get_storage_meta(db_path: Optional[str] = None) -> Dict[str, object]:
	init_db(db_path)
	path = _get_db_path(db_path)
	conn = _connect(path)
	try:
		quick_check = conn.execute("PRAGMA quick_check").fetchone()[0]
		journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
		return {
			"path": path,
			"journal_mode": journal_mode,
			"quick_check": quick_check,
		}
	finally:
		conn.close()
