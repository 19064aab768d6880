"""FastAPI entrypoint for the canonicalization service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from proc_canonicalize.config import load_config
from proc_canonicalize.errors import (
    NOT_FOUND,
    PERMISSION_DENIED,
    ErrorResponse,
    McpError,
    error_response,
)
from proc_canonicalize.mcp import register_mcp_handlers
from proc_canonicalize.mcp_constants import AUTH_EXEMPT_PATHS, SERVICE_TOKEN_HEADER

_STATUS_BY_CODE = {NOT_FOUND: 404, PERMISSION_DENIED: 403}


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.config = load_config()
        yield

    app = FastAPI(lifespan=lifespan)

    @app.middleware("http")
    async def enforce_service_token(request: Request, call_next):
        if request.url.path in AUTH_EXEMPT_PATHS:
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        service_token = getattr(config, "service_token", None)
        if service_token:
            supplied_token = request.headers.get(SERVICE_TOKEN_HEADER)
            if supplied_token != service_token:
                error = ErrorResponse(
                    code="AUTH_FORBIDDEN",
                    message="Invalid service token.",
                    details={"header": SERVICE_TOKEN_HEADER},
                )
                return JSONResponse(
                    status_code=403, content=error_response(error)
                )

        return await call_next(request)

    @app.exception_handler(McpError)
    def handle_mcp_error(request: Request, exc: McpError) -> JSONResponse:
        status_code = _STATUS_BY_CODE.get(exc.error.code, 400)
        return JSONResponse(status_code=status_code, content=error_response(exc.error))

    @app.get("/health", status_code=200)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    register_mcp_handlers(app)
    return app


app = create_app()
