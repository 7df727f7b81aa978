from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence, Union

from erpchat.backend.services.session_store import Turn


DispatchState = Literal["idle", "awaiting_model_decision", "executing_tools", "awaiting_final_answer"]

DispatchOutcome = Literal[
	"answered",
	"answered_with_tools",
	"empty_message",
	"license_required",
	"timeout",
	"failed",
]


@dataclass(frozen=True)
class ToolCall:
	name: str
	arguments: Dict[str, Any] = field(default_factory=dict)
	call_id: str = ""


@dataclass(frozen=True)
class ToolResult:
	call: ToolCall
	text: str


@dataclass(frozen=True)
class Answer:
	text: str


@dataclass(frozen=True)
class ToolCalls:
	calls: List[ToolCall]


Decision = Union[Answer, ToolCalls]


@dataclass
class DispatchReply:
	text: str
	state: DispatchState = "idle"
	outcome: DispatchOutcome = "answered"
	tool_calls: List[str] = field(default_factory=list)

	def as_dict(self) -> Dict[str, object]:
		return {
			"text": self.text,
			"state": self.state,
			"outcome": self.outcome,
			"tool_calls": list(self.tool_calls),
		}


class ReasoningError(Exception):
	def __init__(self, message: str, *, status_code: int = 502, code: str = "reasoning_provider_error"):
		super().__init__(message)
		self.status_code = status_code
		self.code = code
		self.message = message


class ReasoningTimeout(ReasoningError):
	def __init__(self, message: str = "Reasoning provider timed out."):
		super().__init__(message, status_code=504, code="reasoning_provider_timeout")


class ReasoningClient(Protocol):
	"""Two-phase reasoning capability.

	`decide` may return tool calls. `compose` turns tool results into the final
	answer; callers pass `tools=None` so no further tool calls are possible.
	"""

	def decide(
		self,
		context: Sequence[Turn],
		message: str,
		tools: Sequence[Dict[str, Any]],
		timeout_s: float,
	) -> Decision:
		...

	def compose(
		self,
		context: Sequence[Turn],
		message: str,
		calls: Sequence[ToolCall],
		results: Sequence[ToolResult],
		tools: Optional[Sequence[Dict[str, Any]]] = None,
		timeout_s: float = 25.0,
	) -> str:
		...
