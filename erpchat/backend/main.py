from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from erpchat.backend import constants
from erpchat.backend.logging_setup import setup_logging
from erpchat.backend.middleware import RequestContextMiddleware
from erpchat.backend.response import error_response
from erpchat.backend.routers import admin, chat, health, query
from erpchat.backend.runtime import Runtime, build_runtime


LOGGER = logging.getLogger(__name__)


def create_app(runtime: Optional[Runtime] = None) -> FastAPI:
	setup_logging()
	runtime = runtime or build_runtime()

	@asynccontextmanager
	async def lifespan(_app: FastAPI):
		yield
		runtime.shutdown(wait=True)

	app = FastAPI(
		title=constants.APP_NAME,
		version=constants.APP_VERSION,
		lifespan=lifespan,
	)
	app.state.runtime = runtime
	_register_middleware(app)
	_register_handlers(app)
	_register_routers(app)
	return app


def _register_middleware(app: FastAPI) -> None:
	app.add_middleware(RequestContextMiddleware)
	app.add_middleware(GZipMiddleware, minimum_size=1024)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=constants.DEFAULT_CORS_ALLOW_ORIGINS,
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.add_middleware(
		TrustedHostMiddleware,
		allowed_hosts=constants.DEFAULT_TRUSTED_HOSTS,
	)


def _register_routers(app: FastAPI) -> None:
	app.include_router(chat.router)
	app.include_router(admin.router)
	app.include_router(query.router)
	app.include_router(health.router)


def _register_handlers(app: FastAPI) -> None:
	@app.exception_handler(HTTPException)
	async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
		code = f"http_{exc.status_code}"
		message = _exc_message(exc.detail)
		evidence = None
		if isinstance(exc.detail, dict):
			detail_code = exc.detail.get("code")
			detail_message = exc.detail.get("message")
			detail_evidence = exc.detail.get("evidence")
			if isinstance(detail_code, str) and detail_code.strip():
				code = detail_code.strip()
			if isinstance(detail_message, str) and detail_message.strip():
				message = detail_message.strip()
			if isinstance(detail_evidence, list):
				evidence = [str(item) for item in detail_evidence]
		payload = error_response(
			code=code,
			message=message,
			request=request,
			evidence=evidence,
		)
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def handle_starlette_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		payload = error_response(
			code=f"http_{exc.status_code}",
			message=_exc_message(exc.detail),
			request=request,
		)
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def handle_request_validation_error(
		request: Request,
		exc: RequestValidationError,
	) -> JSONResponse:
		evidence = []
		for issue in exc.errors():
			loc = ".".join(str(part) for part in issue.get("loc", []))
			msg = issue.get("msg", "Invalid request.")
			evidence.append(f"{loc}: {msg}" if loc else msg)
		payload = error_response(
			code="validation_error",
			message="Request validation failed.",
			request=request,
			evidence=evidence,
		)
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(Exception)
	async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
		LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
		payload = error_response(
			code="internal_error",
			message="Internal server error.",
			request=request,
		)
		return JSONResponse(status_code=500, content=payload)


def _exc_message(detail: Any) -> str:
	if isinstance(detail, str):
		return detail
	if detail is None:
		return "Request failed."
	return str(detail)


app = create_app()
