from __future__ import annotations

from fastapi import APIRouter, Header, HTTPException, Request

from erpchat.backend.response import success_response
from erpchat.backend.runtime import current_runtime
from erpchat.backend.schemas import ApiEnvelope, QueryRequest
from erpchat.backend.services.query_service import QueryServiceError


router = APIRouter(prefix="/api/query", tags=["query"])


def _http_error(exc: QueryServiceError) -> HTTPException:
	return HTTPException(
		status_code=exc.status_code,
		detail={"code": exc.code, "message": exc.message},
	)


@router.post("", response_model=ApiEnvelope)
def execute(request: Request, payload: QueryRequest, x_api_key: str | None = Header(default=None)):
	service = current_runtime(request).query_service
	try:
		result = service.execute(x_api_key, payload.operation, payload.params)
	except QueryServiceError as exc:
		raise _http_error(exc) from exc
	if not result["success"]:
		raise HTTPException(
			status_code=500,
			detail={"code": "query_failed", "message": result["error"]},
		)
	return success_response(request=request, data=result)


@router.get("/catalog", response_model=ApiEnvelope)
def catalog(request: Request, x_api_key: str | None = Header(default=None)):
	service = current_runtime(request).query_service
	try:
		operations = service.catalog(x_api_key)
	except QueryServiceError as exc:
		raise _http_error(exc) from exc
	return success_response(request=request, data={"operations": operations})


@router.get("/health", response_model=ApiEnvelope)
def health(request: Request):
	return success_response(request=request, data=current_runtime(request).query_service.health())
