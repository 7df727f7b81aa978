from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from erpchat.backend import constants
from erpchat.backend.adapters.messaging import Messenger
from erpchat.backend.dispatch.handlers import ToolHandlers
from erpchat.backend.dispatch.tools import TOOLS_BY_NAME, tool_schemas, validate_arguments
from erpchat.backend.dispatch.types import (
	Answer,
	DispatchReply,
	DispatchState,
	ReasoningClient,
	ReasoningTimeout,
	ToolCall,
	ToolResult,
)
from erpchat.backend.services.permission_gate import PermissionGate
from erpchat.backend.services.session_store import SessionStore


LOGGER = logging.getLogger(__name__)

EMPTY_MESSAGE_HINT = "Please type a question, for example: \"What are our bank balances?\""
LICENSE_REQUIRED = (
	"You do not have an active license for this assistant. "
	"Please send your user id {user_id} to your administrator to request access."
)
TIMEOUT_APOLOGY = "Sorry, that took too long to answer. Please try again, perhaps with a narrower question."
GENERIC_APOLOGY = "Sorry, something went wrong while processing your request. Please try again."
EMPTY_ANSWER = "I could not produce an answer for that. Could you rephrase the question?"


class DispatchLoop:
	"""Turns one user message into a reply.

	decide -> tool calls in order -> compose without tools -> history append.
	A failed cycle leaves the session history untouched.
	"""

	def __init__(
		self,
		sessions: SessionStore,
		gate: PermissionGate,
		reasoning: ReasoningClient,
		handlers: ToolHandlers,
		messenger: Optional[Messenger] = None,
		*,
		decide_timeout_s: float = constants.DECIDE_TIMEOUT_S,
		compose_timeout_s: float = constants.COMPOSE_TIMEOUT_S,
		tools: Optional[Sequence[Dict[str, Any]]] = None,
	):
		self.sessions = sessions
		self.gate = gate
		self.reasoning = reasoning
		self.handlers = handlers
		self.messenger = messenger
		self.decide_timeout_s = decide_timeout_s
		self.compose_timeout_s = compose_timeout_s
		self.tools = list(tools) if tools is not None else tool_schemas()

	def handle_message(self, user_id: str, text: str) -> DispatchReply:
		user_id = str(user_id)
		message = (text or "").strip()
		if not message:
			return DispatchReply(text=EMPTY_MESSAGE_HINT, outcome="empty_message")
		if not self.gate.has_active_license(user_id):
			LOGGER.info("Message rejected, no active license: user=%s", user_id)
			return DispatchReply(text=LICENSE_REQUIRED.format(user_id=user_id), outcome="license_required")

		self._send_typing(user_id)
		context = self.sessions.recent_context(user_id)
		state: DispatchState = "awaiting_model_decision"
		calls: List[ToolCall] = []
		try:
			decision = self.reasoning.decide(context, message, self.tools, self.decide_timeout_s)
			if isinstance(decision, Answer) or not decision.calls:
				answer = decision.text.strip() if isinstance(decision, Answer) else ""
				answer = answer or EMPTY_ANSWER
				self.sessions.append(user_id, message, answer)
				return DispatchReply(text=answer, outcome="answered")

			calls = list(decision.calls)
			state = "executing_tools"
			results = [self._execute(user_id, call) for call in calls]

			state = "awaiting_final_answer"
			final = self.reasoning.compose(
				context,
				message,
				calls,
				results,
				tools=None,
				timeout_s=self.compose_timeout_s,
			)
		except ReasoningTimeout:
			LOGGER.warning("Reasoning timed out: user=%s state=%s", user_id, state)
			return DispatchReply(
				text=TIMEOUT_APOLOGY,
				state=state,
				outcome="timeout",
				tool_calls=[call.name for call in calls],
			)
		except Exception:
			LOGGER.exception("Dispatch failed: user=%s state=%s", user_id, state)
			return DispatchReply(
				text=GENERIC_APOLOGY,
				state=state,
				outcome="failed",
				tool_calls=[call.name for call in calls],
			)

		answer = (final or "").strip() or "\n\n".join(result.text for result in results)
		self.sessions.append(user_id, message, answer)
		return DispatchReply(text=answer, outcome="answered_with_tools", tool_calls=[call.name for call in calls])

	def _execute(self, user_id: str, call: ToolCall) -> ToolResult:
		spec = TOOLS_BY_NAME.get(call.name)
		if spec is None:
			return ToolResult(call=call, text=f"Unknown tool: {call.name}.")
		if not self.gate.has_capability(user_id, call.name):
			LOGGER.info("Tool denied: user=%s tool=%s", user_id, call.name)
			return ToolResult(
				call=call,
				text=f"You are not permitted to use {call.name}. Ask an administrator to grant this capability.",
			)
		self.gate.record_usage(user_id, call.name)

		hint = validate_arguments(spec, call.arguments)
		if hint:
			return ToolResult(call=call, text=hint)
		try:
			return ToolResult(call=call, text=self.handlers.run(user_id, call))
		except Exception as exc:
			LOGGER.exception("Tool failed: user=%s tool=%s", user_id, call.name)
			return ToolResult(call=call, text=f"{call.name} failed. Error: {exc}")

	def _send_typing(self, user_id: str) -> None:
		if self.messenger is None:
			return
		try:
			self.messenger.send_typing(user_id)
		except Exception as exc:
			LOGGER.debug("Typing indicator failed for %s: %s", user_id, exc)
