from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from openai import APITimeoutError, OpenAI

from erpchat.backend import constants
from erpchat.backend.dispatch.prompts import COMPOSE_INSTRUCTION, system_instruction
from erpchat.backend.dispatch.types import (
	Answer,
	Decision,
	ReasoningError,
	ReasoningTimeout,
	ToolCall,
	ToolCalls,
	ToolResult,
)
from erpchat.backend.services.entity_resolver import normalize_text
from erpchat.backend.services.session_store import Turn


LOGGER = logging.getLogger(__name__)


def _build_openai_client(*, api_key: str, timeout_s: float) -> OpenAI:
	return OpenAI(api_key=api_key, timeout=timeout_s, max_retries=0)


def _reasoning_error(exc: Exception) -> ReasoningError:
	if isinstance(exc, (TimeoutError, APITimeoutError)):
		return ReasoningTimeout()
	return ReasoningError(f"Reasoning provider request failed: {exc.__class__.__name__}")


def _turn_message(turn: Turn) -> Dict[str, str]:
	role = "assistant" if turn.role == "model" else "user"
	return {"role": role, "content": turn.content}


def _conversation(context: Sequence[Turn], message: str) -> List[Dict[str, str]]:
	items = [{"role": "system", "content": system_instruction()}]
	items.extend(_turn_message(turn) for turn in context)
	items.append({"role": "user", "content": message})
	return items


def _field(item: Any, name: str) -> Any:
	value = getattr(item, name, None)
	if value is None and isinstance(item, dict):
		value = item.get(name)
	return value


def _parse_arguments(raw: Any) -> Dict[str, Any]:
	if isinstance(raw, dict):
		return raw
	if not isinstance(raw, str) or not raw.strip():
		return {}
	try:
		parsed = json.loads(raw)
	except json.JSONDecodeError:
		LOGGER.warning("Discarding malformed tool arguments: %r", raw[:200])
		return {}
	return parsed if isinstance(parsed, dict) else {}


def _extract_tool_calls(response: Any) -> List[ToolCall]:
	output = _field(response, "output")
	if not isinstance(output, list):
		return []
	calls: List[ToolCall] = []
	for item in output:
		if _field(item, "type") != "function_call":
			continue
		calls.append(
			ToolCall(
				name=str(_field(item, "name") or ""),
				arguments=_parse_arguments(_field(item, "arguments")),
				call_id=str(_field(item, "call_id") or ""),
			)
		)
	return calls


def _extract_response_text(response: Any) -> str:
	output_text = _field(response, "output_text")
	if isinstance(output_text, str) and output_text.strip():
		return output_text.strip()

	output = _field(response, "output")
	if not isinstance(output, list):
		return ""
	parts: List[str] = []
	for item in output:
		content = _field(item, "content")
		if not isinstance(content, list):
			continue
		for chunk in content:
			text = _field(chunk, "text")
			if isinstance(text, str) and text.strip():
				parts.append(text.strip())
	return "\n".join(parts).strip()


def tool_results_message(calls: Sequence[ToolCall], results: Sequence[ToolResult]) -> str:
	payload = [
		{"tool": call.name, "arguments": call.arguments, "result": result.text}
		for call, result in zip(calls, results)
	]
	return f"{COMPOSE_INSTRUCTION}\n{json.dumps({'tool_results': payload}, ensure_ascii=False)}"


class OpenAIReasoningClient:
	def __init__(self, *, api_key: str, model: str, client: Optional[OpenAI] = None):
		if not api_key and client is None:
			raise ReasoningError("OpenAI API key not configured. Set OPENAI_API_KEY.", status_code=503, code="reasoning_provider_unconfigured")
		self.model = model
		self._client = client or _build_openai_client(api_key=api_key, timeout_s=constants.DECIDE_TIMEOUT_S)

	def _create(self, **kwargs: Any) -> Any:
		try:
			return self._client.responses.create(model=self.model, **kwargs)
		except Exception as exc:
			raise _reasoning_error(exc) from exc

	def decide(
		self,
		context: Sequence[Turn],
		message: str,
		tools: Sequence[Dict[str, Any]],
		timeout_s: float,
	) -> Decision:
		response = self._create(input=_conversation(context, message), tools=list(tools), timeout=timeout_s)
		calls = _extract_tool_calls(response)
		if calls:
			return ToolCalls(calls=calls)
		return Answer(text=_extract_response_text(response))

	def compose(
		self,
		context: Sequence[Turn],
		message: str,
		calls: Sequence[ToolCall],
		results: Sequence[ToolResult],
		tools: Optional[Sequence[Dict[str, Any]]] = None,
		timeout_s: float = constants.COMPOSE_TIMEOUT_S,
	) -> str:
		items = _conversation(context, message)
		items.append({"role": "user", "content": tool_results_message(calls, results)})
		kwargs: Dict[str, Any] = {"input": items, "timeout": timeout_s}
		if tools:
			kwargs["tools"] = list(tools)
		response = self._create(**kwargs)
		text = _extract_response_text(response)
		if not text:
			raise ReasoningError("Reasoning provider returned an empty response.")
		return text


_QUOTE_NO_RE = re.compile(r"\b([A-Z]{2,}[-/]?\d[\w\-/]*)\b")

_KEYWORD_ROUTES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
	("setOutputPreference", ("as text", "in text", "as document", "as pdf always")),
	("requestDocument", ("pdf", "document", "file")),
	("testConnection", ("connection", "ping", "status of the system")),
	("getQuoteDetail", ("quote detail", "open quote", "quote no")),
	("getQuoteReport", ("quote",)),
	("getCustomerMovement", ("movement", "transactions", "statement")),
	("getBalanceList", ("balance list", "debtor", "creditor")),
	("getCreditCardLimits", ("credit card", "card limit")),
	("getCashBalance", ("cash",)),
	("getBankBalances", ("bank",)),
	("getStockReport", ("stock", "inventory", "warehouse", "product")),
	("getCustomerInfo", ("customer", "account")),
)


class LocalReasoningClient:
	"""Keyword router used when no model provider is configured.

	Picks at most one tool per message and composes by joining tool results.
	"""

	def decide(
		self,
		context: Sequence[Turn],
		message: str,
		tools: Sequence[Dict[str, Any]],
		timeout_s: float,
	) -> Decision:
		available = {str(tool.get("name")) for tool in tools}
		lowered = normalize_text(message)
		quote_no = _QUOTE_NO_RE.search(message)
		if "getQuoteDetail" in available and "quote" in lowered and quote_no:
			return ToolCalls(calls=[ToolCall(name="getQuoteDetail", arguments={"quoteNumber": quote_no.group(1)})])
		for name, keywords in _KEYWORD_ROUTES:
			if name not in available:
				continue
			if any(keyword in lowered for keyword in keywords):
				return ToolCalls(calls=[ToolCall(name=name, arguments=self._arguments(name, message, lowered))])
		return Answer(
			text=(
				"I can report bank balances, stock, customer accounts, credit card limits, cash balances, "
				"quotes, customer movements and balance lists. What would you like to see?"
			)
		)

	def _arguments(self, name: str, message: str, lowered: str) -> Dict[str, Any]:
		if name == "getQuoteDetail":
			match = _QUOTE_NO_RE.search(message)
			return {"quoteNumber": match.group(1)} if match else {}
		if name == "setOutputPreference":
			return {"format": "document" if "document" in lowered or "pdf" in lowered else "text"}
		if name == "getBalanceList":
			for status in ("debtor", "creditor"):
				if status in lowered:
					return {"balanceStatus": status}
		return {}

	def compose(
		self,
		context: Sequence[Turn],
		message: str,
		calls: Sequence[ToolCall],
		results: Sequence[ToolResult],
		tools: Optional[Sequence[Dict[str, Any]]] = None,
		timeout_s: float = constants.COMPOSE_TIMEOUT_S,
	) -> str:
		return "\n\n".join(result.text for result in results if result.text.strip())
