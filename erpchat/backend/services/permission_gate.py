from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Iterable, List, Literal, Optional, Set


AdminOutcome = Literal[
	"created",
	"granted",
	"already_granted",
	"revoked",
	"not_held",
	"activated",
	"already_active",
	"deactivated",
	"already_inactive",
	"updated",
	"unknown_user",
	"invalid_capability",
]


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
	if value is None:
		return None
	return value.isoformat().replace("+00:00", "Z")


@dataclass
class License:
	user_id: str
	is_active: bool = True
	capabilities: Set[str] = field(default_factory=set)
	username: Optional[str] = None
	first_name: Optional[str] = None
	created_at: datetime = field(default_factory=_now)
	last_used_at: Optional[datetime] = None
	usage_count: int = 0

	def as_dict(self) -> Dict[str, object]:
		return {
			"user_id": self.user_id,
			"username": self.username,
			"first_name": self.first_name,
			"is_active": self.is_active,
			"capabilities": sorted(self.capabilities),
			"created_at": _iso(self.created_at),
			"last_used_at": _iso(self.last_used_at),
			"usage_count": self.usage_count,
		}


@dataclass
class UsageStats:
	total_queries: int = 0
	queries_by_capability: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
	daily_usage: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


class PermissionGate:
	"""Per-user licenses plus process-wide usage counters.

	Every admin mutation is idempotent and reports which case applied, so
	callers can tell "granted" apart from "already granted".
	"""

	def __init__(self, known_capabilities: Iterable[str], *, clock: Callable[[], datetime] = _now):
		self.known_capabilities = tuple(known_capabilities)
		self._licenses: Dict[str, License] = {}
		self._usage = UsageStats()
		self._clock = clock
		self._lock = Lock()

	def has_active_license(self, user_id: str) -> bool:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			return bool(license_ and license_.is_active)

	def has_capability(self, user_id: str, capability: str) -> bool:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None or not license_.is_active:
				return False
			return capability in license_.capabilities

	def record_usage(self, user_id: str, capability: str) -> None:
		now = self._clock()
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return
			license_.last_used_at = now
			license_.usage_count += 1
			self._usage.total_queries += 1
			self._usage.queries_by_capability[capability] += 1
			self._usage.daily_usage[now.date().isoformat()] += 1

	def create_license(
		self,
		user_id: str,
		capabilities: Optional[Iterable[str]] = None,
		*,
		username: Optional[str] = None,
		first_name: Optional[str] = None,
	) -> AdminOutcome:
		requested = set(self.known_capabilities if capabilities is None else capabilities)
		if requested - set(self.known_capabilities):
			return "invalid_capability"
		key = str(user_id)
		with self._lock:
			existing = self._licenses.get(key)
			if existing is not None:
				existing.is_active = True
				existing.capabilities = requested
				return "updated"
			self._licenses[key] = License(
				user_id=key,
				capabilities=requested,
				username=username,
				first_name=first_name,
				created_at=self._clock(),
			)
			return "created"

	def update_profile(self, user_id: str, *, username: Optional[str] = None, first_name: Optional[str] = None) -> None:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return
			if username:
				license_.username = username
			if first_name:
				license_.first_name = first_name

	def grant(self, user_id: str, capability: str) -> AdminOutcome:
		if capability not in self.known_capabilities:
			return "invalid_capability"
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return "unknown_user"
			if capability in license_.capabilities:
				return "already_granted"
			license_.capabilities.add(capability)
			return "granted"

	def revoke(self, user_id: str, capability: str) -> AdminOutcome:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return "unknown_user"
			if capability not in license_.capabilities:
				return "not_held"
			license_.capabilities.discard(capability)
			return "revoked"

	def set_capabilities(self, user_id: str, capabilities: Iterable[str]) -> AdminOutcome:
		requested = set(capabilities)
		if requested - set(self.known_capabilities):
			return "invalid_capability"
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return "unknown_user"
			license_.capabilities = requested
			return "updated"

	def grant_all(self, user_id: str) -> AdminOutcome:
		return self.set_capabilities(user_id, self.known_capabilities)

	def revoke_all(self, user_id: str) -> AdminOutcome:
		return self.set_capabilities(user_id, [])

	def activate(self, user_id: str) -> AdminOutcome:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return "unknown_user"
			if license_.is_active:
				return "already_active"
			license_.is_active = True
			return "activated"

	def deactivate(self, user_id: str) -> AdminOutcome:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return "unknown_user"
			if not license_.is_active:
				return "already_inactive"
			license_.is_active = False
			return "deactivated"

	def get_license(self, user_id: str) -> Optional[License]:
		with self._lock:
			license_ = self._licenses.get(str(user_id))
			if license_ is None:
				return None
			return License(
				user_id=license_.user_id,
				is_active=license_.is_active,
				capabilities=set(license_.capabilities),
				username=license_.username,
				first_name=license_.first_name,
				created_at=license_.created_at,
				last_used_at=license_.last_used_at,
				usage_count=license_.usage_count,
			)

	def list_licenses(self) -> List[Dict[str, object]]:
		with self._lock:
			return [license_.as_dict() for license_ in self._licenses.values()]

	def stats(self) -> Dict[str, object]:
		today = self._clock().date().isoformat()
		with self._lock:
			return {
				"total_users": len(self._licenses),
				"active_users": sum(1 for item in self._licenses.values() if item.is_active),
				"total_queries": self._usage.total_queries,
				"today_queries": self._usage.daily_usage.get(today, 0),
				"queries_by_capability": dict(self._usage.queries_by_capability),
				"daily_usage": dict(self._usage.daily_usage),
			}
