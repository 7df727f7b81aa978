from erpchat.backend.dispatch.loop import DispatchLoop
from erpchat.backend.dispatch.types import Answer, DispatchReply, ReasoningTimeout, ToolCall, ToolCalls

__all__ = [
	"Answer",
	"DispatchLoop",
	"DispatchReply",
	"ReasoningTimeout",
	"ToolCall",
	"ToolCalls",
]
