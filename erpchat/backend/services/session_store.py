from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Literal

from erpchat.backend import constants


Role = Literal["user", "model"]


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Turn:
	role: Role
	content: str
	created_at: str = field(default_factory=_now_iso)

	def as_dict(self) -> Dict[str, str]:
		return {"role": self.role, "content": self.content, "created_at": self.created_at}


@dataclass
class Session:
	user_id: str
	updated_at: str
	turns: List[Turn] = field(default_factory=list)


class SessionStore:
	"""Volatile per-user conversation history.

	History holds at most ``max_exchanges`` user/model pairs. Truncation drops
	whole pairs from the front so the first turn is always a user turn.
	"""

	def __init__(
		self,
		max_exchanges: int = constants.SESSION_MAX_EXCHANGES,
		context_turns: int = constants.SESSION_CONTEXT_TURNS,
	):
		if max_exchanges < 1:
			raise ValueError("max_exchanges must be at least 1")
		self.max_exchanges = max_exchanges
		self.context_turns = max(2, context_turns)
		self._sessions: Dict[str, Session] = {}
		self._lock = Lock()

	@property
	def max_turns(self) -> int:
		return self.max_exchanges * 2

	def get_history(self, user_id: str) -> List[Turn]:
		with self._lock:
			session = self._sessions.get(str(user_id))
			if session is None:
				return []
			return list(session.turns)

	def recent_context(self, user_id: str, limit: int | None = None) -> List[Turn]:
		window = limit if isinstance(limit, int) and limit > 0 else self.context_turns
		turns = self.get_history(user_id)[-window:]
		while turns and turns[0].role != "user":
			turns = turns[1:]
		return turns

	def append(self, user_id: str, user_text: str, model_text: str) -> List[Turn]:
		key = str(user_id)
		with self._lock:
			session = self._sessions.get(key)
			if session is None:
				session = Session(user_id=key, updated_at=_now_iso())
				self._sessions[key] = session
			session.turns.append(Turn(role="user", content=user_text))
			session.turns.append(Turn(role="model", content=model_text))
			overflow = len(session.turns) - self.max_turns
			if overflow > 0:
				# Round up to whole pairs.
				drop = overflow + (overflow % 2)
				session.turns = session.turns[drop:]
			session.updated_at = _now_iso()
			return list(session.turns)

	def reset(self, user_id: str) -> None:
		key = str(user_id)
		with self._lock:
			self._sessions[key] = Session(user_id=key, updated_at=_now_iso())

	def stats(self) -> Dict[str, int]:
		with self._lock:
			return {
				"sessions": len(self._sessions),
				"turns": sum(len(session.turns) for session in self._sessions.values()),
			}
