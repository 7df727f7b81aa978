from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence

from erpchat.backend import constants


Record = Mapping[str, Any]

# Letters NFD cannot decompose to a Latin base (dotless i), plus the dotted
# capital I, which lowercases to "i" + combining dot.
_FOLD_TABLE = str.maketrans(
	{
		"ı": "i",
		"İ": "i",
		"ğ": "g",
		"Ğ": "g",
		"ü": "u",
		"Ü": "u",
		"ş": "s",
		"Ş": "s",
		"ö": "o",
		"Ö": "o",
		"ç": "c",
		"Ç": "c",
	}
)


def normalize_text(value: Optional[str]) -> str:
	if value is None:
		return ""
	text = str(value).translate(_FOLD_TABLE).lower()
	decomposed = unicodedata.normalize("NFD", text)
	stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
	return unicodedata.normalize("NFC", stripped).strip()


@dataclass
class ResolutionResult:
	exact: List[Record] = field(default_factory=list)
	approximate: List[Record] = field(default_factory=list)
	suggestions: List[str] = field(default_factory=list)

	@property
	def empty(self) -> bool:
		return not self.exact and not self.approximate


def _tokens(text: str) -> List[str]:
	return [token for token in text.split() if len(token) >= constants.MIN_TOKEN_LENGTH]


def is_approximate_match(candidate: str, term: str) -> bool:
	"""Containment, prefix or shared-token match between two normalized names."""

	if not candidate or not term:
		return False
	if term in candidate or candidate in term:
		return True
	if candidate.startswith(term) or term.startswith(candidate):
		return True
	if any(token in candidate for token in _tokens(term)):
		return True
	return any(token in term for token in _tokens(candidate))


def _default_name(record: Record) -> str:
	return str(record.get("name") or "")


def resolve(
	candidates: Optional[Sequence[Record]],
	term: Optional[str],
	*,
	name_of: Callable[[Record], Any] = _default_name,
	render: Optional[Callable[[Record], Any]] = None,
	limit: int = constants.SUGGESTION_LIMIT,
) -> ResolutionResult:
	"""Split ``candidates`` into exact and approximate matches for ``term``.

	Suggestions are the first ``limit`` matches (exact before approximate)
	rendered for display; empty renders are dropped. A missing candidate set
	yields an empty result.
	"""

	if not candidates:
		return ResolutionResult()
	wanted = normalize_text(term)
	render_fn = render or name_of

	exact: List[Record] = []
	approximate: List[Record] = []
	for record in candidates:
		name = normalize_text(name_of(record))
		if name == wanted:
			exact.append(record)
		elif is_approximate_match(name, wanted):
			approximate.append(record)

	suggestions: List[str] = []
	for record in (exact + approximate)[: max(0, limit)]:
		rendered = str(render_fn(record) or "").strip()
		if rendered:
			suggestions.append(rendered)
	return ResolutionResult(exact=exact, approximate=approximate, suggestions=suggestions)


def distinct_names(rows: Optional[Sequence[Record]], column: str) -> List[Record]:
	seen: set[str] = set()
	names: List[Record] = []
	for row in rows or []:
		value = str(row.get(column) or "").strip()
		if not value or value in seen:
			continue
		seen.add(value)
		names.append({"name": value})
	return names
