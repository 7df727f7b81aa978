from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from erpchat.backend.services.permission_gate import AdminOutcome, PermissionGate
from erpchat.backend.services.session_store import SessionStore


LOGGER = logging.getLogger(__name__)

_FEEDBACK: Dict[str, str] = {
	"created": "License created for {user_id}.",
	"granted": "{capability} granted to {user_id}.",
	"already_granted": "{user_id} already has {capability}.",
	"revoked": "{capability} revoked from {user_id}.",
	"not_held": "{user_id} does not have {capability}; nothing to revoke.",
	"activated": "{user_id} activated.",
	"already_active": "{user_id} is already active.",
	"deactivated": "{user_id} deactivated.",
	"already_inactive": "{user_id} is already inactive.",
	"updated": "Capabilities of {user_id} updated.",
}


class AdminServiceError(Exception):
	def __init__(self, *, status_code: int, code: str, message: str):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message


class AdminService:
	"""Administrative hooks over the permission gate and session store."""

	def __init__(self, gate: PermissionGate, sessions: SessionStore, admin_users: Iterable[str] = ()):
		self.gate = gate
		self.sessions = sessions
		self.admin_users = {str(item) for item in admin_users}

	def require_admin(self, admin_user: Optional[str]) -> None:
		if not admin_user or admin_user.strip() not in self.admin_users:
			raise AdminServiceError(status_code=403, code="admin_required", message="Administrator access required.")

	def _result(self, outcome: AdminOutcome, user_id: str, capability: str = "") -> Dict[str, object]:
		if outcome == "unknown_user":
			raise AdminServiceError(status_code=404, code="unknown_user", message=f"No license exists for {user_id}.")
		if outcome == "invalid_capability":
			raise AdminServiceError(
				status_code=400,
				code="invalid_capability",
				message=f"Unknown capability. Valid capabilities: {', '.join(self.gate.known_capabilities)}",
			)
		LOGGER.info("Admin action: user=%s outcome=%s capability=%s", user_id, outcome, capability or "-")
		return {
			"user_id": user_id,
			"outcome": outcome,
			"message": _FEEDBACK[outcome].format(user_id=user_id, capability=capability),
		}

	def add_user(
		self,
		user_id: str,
		capabilities: Optional[List[str]] = None,
		*,
		username: Optional[str] = None,
		first_name: Optional[str] = None,
	) -> Dict[str, object]:
		outcome = self.gate.create_license(user_id, capabilities, username=username, first_name=first_name)
		return self._result(outcome, user_id)

	def grant(self, user_id: str, capability: str) -> Dict[str, object]:
		return self._result(self.gate.grant(user_id, capability), user_id, capability)

	def revoke(self, user_id: str, capability: str) -> Dict[str, object]:
		return self._result(self.gate.revoke(user_id, capability), user_id, capability)

	def grant_all(self, user_id: str) -> Dict[str, object]:
		return self._result(self.gate.grant_all(user_id), user_id)

	def revoke_all(self, user_id: str) -> Dict[str, object]:
		return self._result(self.gate.revoke_all(user_id), user_id)

	def set_capabilities(self, user_id: str, capabilities: List[str]) -> Dict[str, object]:
		return self._result(self.gate.set_capabilities(user_id, capabilities), user_id)

	def activate(self, user_id: str) -> Dict[str, object]:
		return self._result(self.gate.activate(user_id), user_id)

	def deactivate(self, user_id: str) -> Dict[str, object]:
		return self._result(self.gate.deactivate(user_id), user_id)

	def list_users(self) -> List[Dict[str, object]]:
		return self.gate.list_licenses()

	def user_capabilities(self, user_id: str) -> Dict[str, object]:
		license_ = self.gate.get_license(user_id)
		if license_ is None:
			raise AdminServiceError(status_code=404, code="unknown_user", message=f"No license exists for {user_id}.")
		return license_.as_dict()

	def list_capabilities(self) -> List[str]:
		return list(self.gate.known_capabilities)

	def stats(self) -> Dict[str, object]:
		return {
			"licenses": self.gate.stats(),
			"sessions": self.sessions.stats(),
		}
