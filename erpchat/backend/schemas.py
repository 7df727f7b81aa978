from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Any] = None
	error: Optional[ApiError] = None


class ChatMessageRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	user_id: str = Field(..., min_length=1, max_length=64, description="Messaging user identifier.")
	text: str = Field(default="", max_length=4000, description="Free-text request.")
	username: Optional[str] = Field(default=None, max_length=64)
	first_name: Optional[str] = Field(default=None, max_length=128)


class ChatResetRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	user_id: str = Field(..., min_length=1, max_length=64)


class TelegramUser(BaseModel):
	model_config = ConfigDict(extra="ignore")

	id: int
	username: Optional[str] = None
	first_name: Optional[str] = None


class TelegramChat(BaseModel):
	model_config = ConfigDict(extra="ignore")

	id: int


class TelegramMessage(BaseModel):
	model_config = ConfigDict(extra="ignore", populate_by_name=True)

	message_id: int
	from_user: Optional[TelegramUser] = Field(default=None, alias="from")
	chat: TelegramChat
	text: Optional[str] = None


class TelegramUpdate(BaseModel):
	model_config = ConfigDict(extra="ignore")

	update_id: int
	message: Optional[TelegramMessage] = None


class AdminCreateUserRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	user_id: str = Field(..., min_length=1, max_length=64)
	username: Optional[str] = Field(default=None, max_length=64)
	first_name: Optional[str] = Field(default=None, max_length=128)
	capabilities: Optional[List[str]] = Field(
		default=None, description="Capabilities to grant. Omit to grant every capability."
	)


class AdminCapabilityRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	capability: str = Field(..., min_length=1, max_length=64)


class AdminCapabilitiesRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	capabilities: List[str] = Field(default_factory=list)


class QueryRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	operation: str = Field(..., min_length=1, max_length=64)
	params: Dict[str, Any] = Field(default_factory=dict)


class OutputPreferenceRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

	user_id: str = Field(..., min_length=1, max_length=64)
	report_kind: str = Field(..., min_length=1, max_length=64)
	format: Literal["text", "document"]
