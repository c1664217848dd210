"""JSON envelope helpers and exception handlers for the HTTP API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import GenerationError, SynthesisError, ValidationError
from ..telemetry.logger import RunLogger


def success(data: Any, **extra: Any) -> dict[str, Any]:
    """Return the success envelope."""

    return {"success": True, "data": data, **extra}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Return the error envelope with a status code."""

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, "details": details or []},
        },
    )


def install_exception_handlers(app: FastAPI, run_logger: RunLogger) -> None:
    """Map domain exceptions onto the error envelope."""

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return error_response(400, "VALIDATION_ERROR", exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or "body",
                "message": error.get("msg", "Invalid value"),
            }
            for error in exc.errors()
        ]
        return error_response(400, "VALIDATION_ERROR", "Request validation failed", details)

    @app.exception_handler(GenerationError)
    async def _generation_error(request: Request, exc: GenerationError) -> JSONResponse:
        run_logger.log_stage_failure("api", "GenerationError", path=request.url.path)
        return error_response(502, "GENERATION_ERROR", exc.message)

    @app.exception_handler(SynthesisError)
    async def _synthesis_error(request: Request, exc: SynthesisError) -> JSONResponse:
        run_logger.log_stage_failure("api", "SynthesisError", path=request.url.path, kind=exc.kind)
        return error_response(502, "SYNTHESIS_ERROR", exc.message)

    @app.exception_handler(PermissionError)
    async def _permission_error(request: Request, exc: PermissionError) -> JSONResponse:
        return error_response(403, "ACCESS_DENIED", "Access denied")

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        run_logger.log_stage_failure("api", type(exc).__name__, path=request.url.path)
        return error_response(500, "INTERNAL_ERROR", "Internal server error")
