"""FastAPI entrypoint for the task service."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.api import register_api_handlers
from taskboard.config import AppConfig, load_config
from taskboard.errors import ApiError, BadRequest, InternalError, error_response
from taskboard.identity import IdentityProvider, SupabaseIdentityProvider
from taskboard.kv_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    SupabaseKeyValueStore,
)
from taskboard.tasks import TaskService
from taskboard.user_scope import (
    AUTH_EXEMPT_PATHS,
    AUTHORIZATION_HEADER,
    verify_request_token,
)

logger = logging.getLogger(__name__)


def _build_store(config: AppConfig) -> KeyValueStore:
    if config.store_backend == "memory":
        return InMemoryKeyValueStore()
    if config.store_backend == "supabase":
        return SupabaseKeyValueStore(
            config.supabase_url,
            config.supabase_service_role_key,
            table=config.kv_table,
            timeout=config.http_timeout,
        )
    return JsonFileKeyValueStore(config.store_path)


def _build_identity(config: AppConfig) -> IdentityProvider:
    return SupabaseIdentityProvider(
        config.supabase_url,
        config.supabase_service_role_key,
        timeout=config.http_timeout,
    )


def create_app(
    config: AppConfig | None = None,
    *,
    store: KeyValueStore | None = None,
    identity: IdentityProvider | None = None,
) -> FastAPI:
    if config is None and (store is None or identity is None):
        config = load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = []
        task_store = store
        if task_store is None:
            task_store = _build_store(config)
            owned.append(task_store)
        provider = identity
        if provider is None:
            provider = _build_identity(config)
            owned.append(provider)

        app.state.config = config
        app.state.identity = provider
        app.state.task_service = TaskService(task_store)
        try:
            yield
        finally:
            for resource in owned:
                close = getattr(resource, "close", None)
                if callable(close):
                    close()

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_bearer_identity(request: Request, call_next):
        path = request.url.path
        if request.method == "OPTIONS" or path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        provider = getattr(request.app.state, "identity", None)
        if provider is None:
            error = InternalError("Identity provider is not configured.").error
            return JSONResponse(
                status_code=error.status_code, content=error_response(error)
            )
        try:
            request.state.user_id = await run_in_threadpool(
                verify_request_token,
                provider,
                request.headers.get(AUTHORIZATION_HEADER),
            )
        except ApiError as exc:
            return JSONResponse(
                status_code=exc.error.status_code, content=error_response(exc.error)
            )

        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            # Runs inside CORSMiddleware; the 500 carries CORS headers.
            logger.exception(
                "Unhandled error on %s %s", request.method, request.url.path
            )
            error = InternalError(f"Internal error: {exc}").error
            response = JSONResponse(
                status_code=error.status_code, content=error_response(error)
            )
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins) if config else ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    @app.exception_handler(ApiError)
    def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.error.status_code, content=error_response(exc.error)
        )

    @app.exception_handler(StarletteHTTPException)
    def handle_http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "code": "HTTP_ERROR"},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for item in exc.errors():
            location = ".".join(str(part) for part in item.get("loc", ()))
            messages.append(f"{location}: {item.get('msg', 'invalid')}")
        error = BadRequest(
            "Invalid request: " + "; ".join(messages), "INVALID_REQUEST"
        ).error
        return JSONResponse(status_code=error.status_code, content=error_response(error))

    @app.exception_handler(Exception)
    def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = InternalError(f"Internal error: {exc}").error
        return JSONResponse(status_code=error.status_code, content=error_response(error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_api_handlers(app)
    return app
