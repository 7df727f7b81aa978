from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Callable, Deque, Dict, List, Literal, Protocol

import requests

from erpchat.backend import constants


LOGGER = logging.getLogger(__name__)

_TELEGRAM_API = "https://api.telegram.org"


class Messenger(Protocol):
	def send_text(self, user_id: str, text: str) -> None:
		...

	def send_document(self, user_id: str, file_path: str, caption: str) -> None:
		...

	def send_typing(self, user_id: str) -> None:
		...


class MessagingError(Exception):
	pass


def chunk_text(text: str, limit: int = constants.MESSAGE_CHUNK_LIMIT) -> List[str]:
	if limit <= 0:
		raise ValueError("limit must be positive")
	if not text:
		return [text]
	chunks: List[str] = []
	remaining = text
	while len(remaining) > limit:
		cut = remaining.rfind("\n", 0, limit)
		if cut <= 0:
			cut = limit
		chunks.append(remaining[:cut])
		remaining = remaining[cut:].lstrip("\n")
	if remaining:
		chunks.append(remaining)
	return chunks


class TelegramMessenger:
	"""Bot API transport. Long text is split into sequential sends."""

	def __init__(
		self,
		token: str,
		*,
		base_url: str = _TELEGRAM_API,
		timeout_s: float = 30.0,
		chunk_limit: int = constants.MESSAGE_CHUNK_LIMIT,
		chunk_delay_s: float = constants.MESSAGE_CHUNK_DELAY_S,
		session: requests.Session | None = None,
		sleep: Callable[[float], None] = time.sleep,
	):
		if not token:
			raise ValueError("Telegram bot token is required.")
		self._url = f"{base_url.rstrip('/')}/bot{token}"
		self._timeout_s = timeout_s
		self._chunk_limit = chunk_limit
		self._chunk_delay_s = chunk_delay_s
		self._session = session or requests.Session()
		self._sleep = sleep

	def _call(self, method: str, **kwargs) -> Dict[str, object]:
		try:
			response = self._session.post(f"{self._url}/{method}", timeout=self._timeout_s, **kwargs)
			response.raise_for_status()
			payload = response.json()
		except (requests.RequestException, ValueError) as exc:
			raise MessagingError(f"{method} failed: {exc}") from exc
		if not payload.get("ok", False):
			raise MessagingError(f"{method} rejected: {payload.get('description', 'unknown error')}")
		return payload

	def send_text(self, user_id: str, text: str) -> None:
		chunks = chunk_text(text, self._chunk_limit)
		for index, chunk in enumerate(chunks):
			if index:
				self._sleep(self._chunk_delay_s)
			self._call("sendMessage", data={"chat_id": user_id, "text": chunk})

	def send_document(self, user_id: str, file_path: str, caption: str) -> None:
		path = Path(file_path)
		with path.open("rb") as handle:
			self._call(
				"sendDocument",
				data={"chat_id": user_id, "caption": caption[:1024]},
				files={"document": (path.name, handle, "application/pdf")},
			)

	def send_typing(self, user_id: str) -> None:
		self._call("sendChatAction", data={"chat_id": user_id, "action": "typing"})


@dataclass
class OutboxItem:
	kind: Literal["text", "document", "typing"]
	text: str = ""
	file_name: str = ""
	size_bytes: int = 0
	created_at: str = field(
		default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
	)

	def as_dict(self) -> Dict[str, object]:
		return {
			"kind": self.kind,
			"text": self.text,
			"file_name": self.file_name,
			"size_bytes": self.size_bytes,
			"created_at": self.created_at,
		}


class OutboxMessenger:
	"""In-memory transport used when no bot is configured.

	Deliveries are kept per user until drained, up to max_items per user with
	the oldest dropped first. Documents are recorded by name and size because
	the artifact is removed after delivery.
	"""

	def __init__(
		self,
		chunk_limit: int = constants.MESSAGE_CHUNK_LIMIT,
		max_items: int = constants.OUTBOX_MAX_ITEMS,
	):
		if max_items <= 0:
			raise ValueError("max_items must be positive")
		self._chunk_limit = chunk_limit
		self._max_items = max_items
		self._items: Dict[str, Deque[OutboxItem]] = {}
		self._lock = Lock()

	def _push(self, user_id: str, item: OutboxItem) -> None:
		with self._lock:
			queue = self._items.get(str(user_id))
			if queue is None:
				queue = self._items[str(user_id)] = deque(maxlen=self._max_items)
			queue.append(item)

	def send_text(self, user_id: str, text: str) -> None:
		for chunk in chunk_text(text, self._chunk_limit):
			self._push(user_id, OutboxItem(kind="text", text=chunk))

	def send_document(self, user_id: str, file_path: str, caption: str) -> None:
		path = Path(file_path)
		if not path.exists():
			raise MessagingError(f"Document not found: {path}")
		self._push(
			user_id,
			OutboxItem(kind="document", text=caption, file_name=path.name, size_bytes=path.stat().st_size),
		)

	def send_typing(self, user_id: str) -> None:
		self._push(user_id, OutboxItem(kind="typing"))

	def peek(self, user_id: str) -> List[OutboxItem]:
		with self._lock:
			return list(self._items.get(str(user_id), []))

	def drain(self, user_id: str) -> List[OutboxItem]:
		with self._lock:
			return list(self._items.pop(str(user_id), ()))
