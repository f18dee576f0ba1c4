"""Global exception handlers. Every error renders as {"error": message}."""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from kubernetes.client.exceptions import ApiException
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        messages = "; ".join(
            f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in exc.errors()
        )
        return error_response(400, messages)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(PyMongoError)
    async def store_error(request: Request, exc: PyMongoError):
        logger.error(
            "Store error on %s %s [%s]: %s",
            request.method, request.url.path, _request_id(request), exc,
        )
        return error_response(500, str(exc))

    @app.exception_handler(ApiException)
    async def cluster_error(request: Request, exc: ApiException):
        logger.error(
            "Kubernetes API error on %s %s [%s]: status=%s reason=%s",
            request.method, request.url.path, _request_id(request), exc.status, exc.reason,
        )
        return error_response(500, f"Kubernetes API error: {exc.reason}")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s [%s]", request.method, request.url.path, _request_id(request))
        return error_response(500, "An unexpected error occurred")
