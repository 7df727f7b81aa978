from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from erpchat.backend.adapters.messaging import OutboxMessenger
from erpchat.backend.dispatch.tools import REPORT_KINDS
from erpchat.backend.response import success_response
from erpchat.backend.runtime import current_runtime, is_command
from erpchat.backend.schemas import (
	ApiEnvelope,
	ChatMessageRequest,
	ChatResetRequest,
	OutputPreferenceRequest,
	TelegramUpdate,
)


router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("/message", response_model=ApiEnvelope)
def message(request: Request, payload: ChatMessageRequest):
	runtime = current_runtime(request)
	reply = runtime.chat(
		payload.user_id,
		payload.text,
		username=payload.username,
		first_name=payload.first_name,
	)
	return success_response(
		request=request,
		data={"user_id": payload.user_id, "reply": reply.as_dict()},
	)


@router.post("/telegram", response_model=ApiEnvelope)
def telegram_update(request: Request, payload: TelegramUpdate):
	incoming = payload.message
	if incoming is None or incoming.from_user is None:
		return success_response(request=request, data={"handled": False})
	runtime = current_runtime(request)
	if is_command(incoming.text):
		result = runtime.command(
			str(incoming.from_user.id),
			incoming.text or "",
			username=incoming.from_user.username,
			first_name=incoming.from_user.first_name,
			deliver=True,
		)
		return success_response(request=request, data={"handled": True, "command": result["command"]})
	reply = runtime.chat(
		str(incoming.from_user.id),
		incoming.text or "",
		username=incoming.from_user.username,
		first_name=incoming.from_user.first_name,
		deliver=True,
	)
	return success_response(request=request, data={"handled": True, "outcome": reply.outcome})


@router.post("/reset", response_model=ApiEnvelope)
def reset(request: Request, payload: ChatResetRequest):
	current_runtime(request).reset(payload.user_id)
	return success_response(request=request, data={"user_id": payload.user_id, "history": []})


@router.get("/history/{user_id}", response_model=ApiEnvelope)
def history(request: Request, user_id: str):
	turns = current_runtime(request).sessions.get_history(user_id)
	return success_response(
		request=request,
		data={"user_id": user_id, "turns": [turn.as_dict() for turn in turns]},
	)


@router.post("/preferences", response_model=ApiEnvelope)
def set_preference(request: Request, payload: OutputPreferenceRequest):
	if payload.report_kind not in REPORT_KINDS:
		raise HTTPException(
			status_code=400,
			detail={"code": "invalid_report_kind", "message": f"Unknown report kind: {payload.report_kind}"},
		)
	current_runtime(request).preferences.set_format(payload.user_id, payload.report_kind, payload.format)
	return success_response(
		request=request,
		data={"user_id": payload.user_id, "report_kind": payload.report_kind, "format": payload.format},
	)


@router.get("/outbox/{user_id}", response_model=ApiEnvelope)
def outbox(request: Request, user_id: str, drain: bool = True):
	messenger = current_runtime(request).messenger
	if not isinstance(messenger, OutboxMessenger):
		raise HTTPException(
			status_code=409,
			detail={"code": "outbox_unavailable", "message": "Deliveries go to the messaging transport."},
		)
	items = messenger.drain(user_id) if drain else messenger.peek(user_id)
	return success_response(
		request=request,
		data={"user_id": user_id, "items": [item.as_dict() for item in items]},
	)
