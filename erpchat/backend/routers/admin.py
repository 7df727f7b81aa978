from __future__ import annotations

from typing import Callable, Dict

from fastapi import APIRouter, Header, HTTPException, Request

from erpchat.backend.response import success_response
from erpchat.backend.runtime import current_runtime
from erpchat.backend.schemas import (
	AdminCapabilitiesRequest,
	AdminCapabilityRequest,
	AdminCreateUserRequest,
	ApiEnvelope,
)
from erpchat.backend.services.admin_service import AdminService, AdminServiceError


router = APIRouter(prefix="/api/admin", tags=["admin"])


def _run(request: Request, admin_user: str | None, action: Callable[[AdminService], object]) -> Dict[str, object]:
	admin = current_runtime(request).admin
	try:
		admin.require_admin(admin_user)
		data = action(admin)
	except AdminServiceError as exc:
		raise HTTPException(
			status_code=exc.status_code,
			detail={"code": exc.code, "message": exc.message},
		) from exc
	return success_response(request=request, data=data)


@router.post("/users", response_model=ApiEnvelope)
def add_user(request: Request, payload: AdminCreateUserRequest, x_admin_user: str | None = Header(default=None)):
	return _run(
		request,
		x_admin_user,
		lambda admin: admin.add_user(
			payload.user_id,
			payload.capabilities,
			username=payload.username,
			first_name=payload.first_name,
		),
	)


@router.get("/users", response_model=ApiEnvelope)
def list_users(request: Request, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: {"users": admin.list_users()})


@router.get("/users/{user_id}", response_model=ApiEnvelope)
def get_user(request: Request, user_id: str, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.user_capabilities(user_id))


@router.post("/users/{user_id}/grant", response_model=ApiEnvelope)
def grant(request: Request, user_id: str, payload: AdminCapabilityRequest, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.grant(user_id, payload.capability))


@router.post("/users/{user_id}/revoke", response_model=ApiEnvelope)
def revoke(request: Request, user_id: str, payload: AdminCapabilityRequest, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.revoke(user_id, payload.capability))


@router.put("/users/{user_id}/capabilities", response_model=ApiEnvelope)
def set_capabilities(
	request: Request,
	user_id: str,
	payload: AdminCapabilitiesRequest,
	x_admin_user: str | None = Header(default=None),
):
	return _run(request, x_admin_user, lambda admin: admin.set_capabilities(user_id, payload.capabilities))


@router.post("/users/{user_id}/grant-all", response_model=ApiEnvelope)
def grant_all(request: Request, user_id: str, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.grant_all(user_id))


@router.post("/users/{user_id}/revoke-all", response_model=ApiEnvelope)
def revoke_all(request: Request, user_id: str, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.revoke_all(user_id))


@router.post("/users/{user_id}/activate", response_model=ApiEnvelope)
def activate(request: Request, user_id: str, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.activate(user_id))


@router.post("/users/{user_id}/deactivate", response_model=ApiEnvelope)
def deactivate(request: Request, user_id: str, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.deactivate(user_id))


@router.get("/capabilities", response_model=ApiEnvelope)
def capabilities(request: Request, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: {"capabilities": admin.list_capabilities()})


@router.get("/stats", response_model=ApiEnvelope)
def stats(request: Request, x_admin_user: str | None = Header(default=None)):
	return _run(request, x_admin_user, lambda admin: admin.stats())
