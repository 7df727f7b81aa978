from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from erpchat.backend import constants
from erpchat.backend.services.query_service import QueryService, QueryServiceError


LOGGER = logging.getLogger(__name__)


@dataclass
class QueryResult:
	success: bool
	rows: List[Dict[str, Any]] = field(default_factory=list)
	count: int = 0
	error_message: str = ""

	@classmethod
	def ok(cls, rows: List[Dict[str, Any]]) -> "QueryResult":
		return cls(success=True, rows=rows, count=len(rows))

	@classmethod
	def failure(cls, message: str) -> "QueryResult":
		return cls(success=False, error_message=message or "Unknown gateway error")


class QueryGateway(Protocol):
	def execute(self, operation: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
		...


def _result_from_envelope(payload: Mapping[str, Any]) -> QueryResult:
	if payload.get("success"):
		rows = payload.get("rows") or []
		return QueryResult.ok([dict(row) for row in rows])
	return QueryResult.failure(str(payload.get("error") or ""))


def _drop_empty(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
	return {key: value for key, value in (params or {}).items() if value not in (None, "")}


class HttpQueryGateway:
	"""Client for a remote query service. Never raises for transport problems."""

	def __init__(
		self,
		base_url: str,
		api_key: str,
		*,
		timeout_s: float = constants.GATEWAY_TIMEOUT_S,
		session: Optional[requests.Session] = None,
	):
		self.base_url = base_url.rstrip("/")
		self.timeout_s = timeout_s
		self._session = session or requests.Session()
		self._session.headers.update({"X-API-Key": api_key, "Accept": "application/json"})

	def execute(self, operation: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
		try:
			response = self._session.post(
				f"{self.base_url}/api/query",
				json={"operation": operation, "params": _drop_empty(params)},
				timeout=self.timeout_s,
			)
		except requests.RequestException as exc:
			LOGGER.warning("Gateway request %s failed: %s", operation, exc)
			return QueryResult.failure(str(exc))

		try:
			payload = response.json()
		except ValueError:
			return QueryResult.failure(f"HTTP {response.status_code}: invalid response body")

		if response.status_code >= 400:
			error = payload.get("error") if isinstance(payload, dict) else None
			message = error.get("message") if isinstance(error, dict) else None
			if not message and isinstance(payload, dict):
				detail = payload.get("detail")
				message = detail.get("message") if isinstance(detail, dict) else detail
			return QueryResult.failure(f"HTTP {response.status_code}: {message or response.reason}")

		data = payload.get("data", payload) if isinstance(payload, dict) else {}
		if not isinstance(data, dict):
			return QueryResult.failure("Malformed gateway envelope")
		return _result_from_envelope(data)


class LocalQueryGateway:
	"""In-process gateway over a QueryService, same failure mapping as HTTP."""

	def __init__(self, service: QueryService, api_key: str):
		self.service = service
		self.api_key = api_key

	def execute(self, operation: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
		try:
			payload = self.service.execute(self.api_key, operation, _drop_empty(params))
		except QueryServiceError as exc:
			return QueryResult.failure(exc.message)
		return _result_from_envelope(payload)
