from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, Iterable, List, Literal, Optional, Tuple

from erpchat.backend import constants


LOGGER = logging.getLogger(__name__)

Decision = Literal["allowed", "invalid_key", "rate_limited", "forbidden"]

ALL_OPERATIONS = "*"


@dataclass
class Credential:
	key: str
	name: str
	allowed_operations: List[str] = field(default_factory=lambda: [ALL_OPERATIONS])
	rate_limit: int = 100
	request_count: int = 0
	last_request_at: Optional[float] = None

	def allows(self, operation: str) -> bool:
		return ALL_OPERATIONS in self.allowed_operations or operation in self.allowed_operations


class CredentialRegistry:
	"""API keys with per-key operation allow-lists and a fixed rate window.

	Checks run in order: key validity, rate window, allow-list.
	"""

	def __init__(
		self,
		credentials: Iterable[Credential] = (),
		*,
		window_s: float = constants.RATE_WINDOW_S,
		clock: Callable[[], float] = time.monotonic,
	):
		self._credentials: Dict[str, Credential] = {item.key: item for item in credentials}
		self._window_s = window_s
		self._clock = clock
		self._lock = Lock()

	def __len__(self) -> int:
		return len(self._credentials)

	def add(self, credential: Credential) -> None:
		with self._lock:
			self._credentials[credential.key] = credential

	def authorize(self, key: Optional[str], operation: str) -> Tuple[Decision, Optional[Credential]]:
		with self._lock:
			credential = self._credentials.get(key or "")
			if credential is None:
				return "invalid_key", None
			if not self._consume(credential):
				LOGGER.warning("Rate limit reached for credential %s", credential.name)
				return "rate_limited", credential
			if not credential.allows(operation):
				return "forbidden", credential
			return "allowed", credential

	def _consume(self, credential: Credential) -> bool:
		now = self._clock()
		if credential.last_request_at is None or now - credential.last_request_at > self._window_s:
			credential.request_count = 1
			credential.last_request_at = now
			return True
		if credential.request_count < credential.rate_limit:
			credential.request_count += 1
			return True
		return False


def parse_credentials(raw: str) -> List[Credential]:
	"""Parse a JSON list of {"key", "name", "allowed_operations", "rate_limit"} objects."""

	if not raw.strip():
		return []
	payload = json.loads(raw)
	if not isinstance(payload, list):
		raise ValueError("Gateway credentials must be a JSON list.")
	credentials: List[Credential] = []
	for entry in payload:
		if not isinstance(entry, dict) or not str(entry.get("key", "")).strip():
			raise ValueError("Each gateway credential needs a non-empty key.")
		operations = entry.get("allowed_operations") or [ALL_OPERATIONS]
		credentials.append(
			Credential(
				key=str(entry["key"]).strip(),
				name=str(entry.get("name") or "unnamed"),
				allowed_operations=[str(item) for item in operations],
				rate_limit=max(1, int(entry.get("rate_limit", 100))),
			)
		)
	return credentials


def credentials_from_env() -> List[Credential]:
	raw = os.getenv("ERPCHAT_GATEWAY_CREDENTIALS", "")
	try:
		return parse_credentials(raw)
	except (ValueError, TypeError) as exc:
		LOGGER.error("Ignoring invalid ERPCHAT_GATEWAY_CREDENTIALS: %s", exc)
		return []
