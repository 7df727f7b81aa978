from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

from erpchat.backend import constants
from erpchat.backend.services import formatting


OutputMode = Literal["inline", "deferred"]
OutputFormat = Literal["text", "document"]


@dataclass
class PendingExport:
	user_id: str
	kind: str
	title: str
	rows: List[Mapping[str, Any]]
	requested_at: str = field(
		default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
	)


@dataclass
class Materialization:
	mode: OutputMode
	inline_text: str
	export: Optional[PendingExport] = None


@dataclass
class LastResult:
	kind: str
	title: str
	rows: List[Mapping[str, Any]]


class PreferenceStore:
	"""Sticky per-user output preferences and the user's last result."""

	def __init__(self) -> None:
		self._formats: Dict[str, Dict[str, OutputFormat]] = {}
		self._last: Dict[str, LastResult] = {}
		self._lock = Lock()

	def set_format(self, user_id: str, kind: str, output_format: OutputFormat) -> None:
		with self._lock:
			self._formats.setdefault(str(user_id), {})[kind] = output_format

	def preferred_format(self, user_id: str, kind: str) -> Optional[OutputFormat]:
		with self._lock:
			return self._formats.get(str(user_id), {}).get(kind)

	def prefers_text(self, user_id: str, kind: str) -> bool:
		return self.preferred_format(user_id, kind) == "text"

	def remember(self, user_id: str, kind: str, title: str, rows: Sequence[Mapping[str, Any]]) -> None:
		with self._lock:
			self._last[str(user_id)] = LastResult(kind=kind, title=title, rows=list(rows))

	def last_result(self, user_id: str) -> Optional[LastResult]:
		with self._lock:
			return self._last.get(str(user_id))


class ResultMaterializer:
	def __init__(
		self,
		preferences: PreferenceStore,
		*,
		thresholds: Optional[Mapping[str, int]] = None,
		default_threshold: int = constants.DEFAULT_INLINE_ROW_THRESHOLD,
		char_budget: int = constants.INLINE_CHAR_BUDGET,
	):
		self.preferences = preferences
		self.thresholds = dict(constants.INLINE_ROW_THRESHOLDS if thresholds is None else thresholds)
		self.default_threshold = default_threshold
		self.char_budget = char_budget

	def threshold_for(self, kind: str) -> int:
		return self.thresholds.get(kind, self.default_threshold)

	def decide(
		self,
		rows: Sequence[Mapping[str, Any]],
		kind: str,
		user_id: str,
		*,
		title: Optional[str] = None,
		force_document: bool = False,
	) -> Materialization:
		"""Choose between a full inline rendering and summary plus export.

		Rows over the kind's threshold, or a full rendering over the character
		budget, are deferred unless the user asked for text for this kind. A
		stored "document" preference defers every non-empty result.
		"""

		report_title = title or formatting.report_format(kind).title
		if not rows:
			return Materialization(mode="inline", inline_text=formatting.report_format(kind).not_found)

		full_text = formatting.render_full(rows, kind, report_title)
		preferred = self.preferences.preferred_format(user_id, kind)
		if preferred == "text":
			return Materialization(mode="inline", inline_text=full_text)

		force_document = force_document or preferred == "document"
		oversized = len(rows) > self.threshold_for(kind) or len(full_text) > self.char_budget
		if not (oversized or force_document):
			return Materialization(mode="inline", inline_text=full_text)

		summary = formatting.render_summary(rows, kind, report_title)
		summary += (
			"\n\nThe detailed report is being sent as a document."
			"\nSay \"send it as text\" if you prefer the full listing here."
		)
		return Materialization(
			mode="deferred",
			inline_text=summary,
			export=PendingExport(user_id=str(user_id), kind=kind, title=report_title, rows=list(rows)),
		)
