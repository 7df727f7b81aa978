from __future__ import annotations

import logging
import re
import sqlite3
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from erpchat.backend.adapters import sqlite_adapter
from erpchat.backend.services.credential_service import CredentialRegistry
from erpchat.backend.services.query_catalog import QueryDefinition, QueryParam, get_query, list_queries


LOGGER = logging.getLogger(__name__)

_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")

_DENIALS = {
	"invalid_key": (401, "INVALID_API_KEY", "Missing or unknown API key."),
	"rate_limited": (429, "RATE_LIMITED", "Rate limit exceeded, try again in a minute."),
	"forbidden": (403, "OPERATION_NOT_ALLOWED", "This key may not run the requested operation."),
}


class QueryServiceError(Exception):
	def __init__(self, status_code: int, code: str, message: str):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message


def _utc_now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def scrub(value: Any) -> Any:
	if isinstance(value, str):
		return _CONTROL_RE.sub("", value)
	return value


def scrub_row(row: Mapping[str, Any]) -> Dict[str, Any]:
	return {key: scrub(value) for key, value in row.items()}


def _coerce(param: QueryParam, value: Any) -> Any:
	if value is None:
		return None
	if param.type == "integer":
		try:
			return int(value)
		except (TypeError, ValueError) as exc:
			raise QueryServiceError(400, "INVALID_PARAMETER", f"{param.name} must be an integer.") from exc
	text = scrub(str(value)).strip()
	if not text:
		return None
	if param.type == "date":
		try:
			return date.fromisoformat(text[:10]).isoformat()
		except ValueError as exc:
			raise QueryServiceError(400, "INVALID_PARAMETER", f"{param.name} must be a YYYY-MM-DD date.") from exc
	return text


def bind_params(query: QueryDefinition, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
	supplied = dict(params or {})
	unknown = sorted(set(supplied) - {param.name for param in query.params})
	if unknown:
		raise QueryServiceError(400, "UNKNOWN_PARAMETER", f"Unknown parameters for {query.name}: {', '.join(unknown)}")
	bound: Dict[str, Any] = {}
	for param in query.params:
		value = _coerce(param, supplied.get(param.name))
		if param.required and value is None:
			raise QueryServiceError(400, "MISSING_PARAMETER", f"{param.name} is required for {query.name}.")
		bound[param.name] = value
	return bound


class QueryService:
	"""Executes catalog queries for authorized callers.

	Denials and bad requests raise QueryServiceError. Execution failures come
	back as an unsuccessful envelope with a scrubbed message.
	"""

	def __init__(self, registry: CredentialRegistry, db_path: Optional[str] = None):
		self.registry = registry
		self.db_path = db_path

	def catalog(self, api_key: Optional[str]) -> List[Dict[str, object]]:
		decision, credential = self.registry.authorize(api_key, "catalog")
		if credential is None:
			decision = "invalid_key"
		if decision == "invalid_key" or decision == "rate_limited":
			status, code, message = _DENIALS[decision]
			raise QueryServiceError(status, code, message)
		return [item for item in list_queries() if credential.allows(str(item["name"]))]

	def execute(self, api_key: Optional[str], operation: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
		decision, credential = self.registry.authorize(api_key, operation)
		if decision != "allowed":
			status, code, message = _DENIALS[decision]
			raise QueryServiceError(status, code, message)
		query = get_query(operation)
		if query is None:
			raise QueryServiceError(400, "UNKNOWN_OPERATION", f"Unknown operation: {scrub(operation)}")
		bound = bind_params(query, params)

		started = time.perf_counter()
		try:
			rows = sqlite_adapter.run_query(query.sql, bound, self.db_path)
		except sqlite3.Error as exc:
			LOGGER.error("Query %s failed for %s: %s", operation, credential.name if credential else "-", exc)
			return {
				"success": False,
				"operation": operation,
				"record_count": 0,
				"rows": [],
				"error": scrub(str(exc)),
				"executed_at": _utc_now_iso(),
			}
		elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
		LOGGER.info("Query %s returned %d rows in %sms", operation, len(rows), elapsed_ms)
		return {
			"success": True,
			"operation": operation,
			"record_count": len(rows),
			"rows": [scrub_row(row) for row in rows],
			"error": None,
			"executed_at": _utc_now_iso(),
			"elapsed_ms": elapsed_ms,
		}

	def health(self) -> Dict[str, object]:
		try:
			meta = sqlite_adapter.get_storage_meta(self.db_path)
		except sqlite3.Error as exc:
			return {"status": "degraded", "error": scrub(str(exc)), "credentials": len(self.registry)}
		status = "ok" if meta.get("quick_check") == "ok" else "degraded"
		return {"status": status, "storage": meta, "credentials": len(self.registry)}
