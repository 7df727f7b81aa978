from __future__ import annotations

from fastapi import APIRouter, Request

from erpchat.backend import constants
from erpchat.backend.response import success_response
from erpchat.backend.runtime import current_runtime
from erpchat.backend.schemas import ApiEnvelope


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/summary", response_model=ApiEnvelope)
def get_summary(request: Request):
	runtime = current_runtime(request)
	return success_response(
		request=request,
		data={
			"app": constants.APP_NAME,
			"version": constants.APP_VERSION,
			"provider_mode": runtime.settings.provider_mode,
			"gateway": "http" if runtime.settings.gateway_url else "local",
			"messenger": runtime.messenger.__class__.__name__,
			"pending_exports": runtime.exports.pending_count(),
			"sessions": runtime.sessions.stats(),
		},
	)
