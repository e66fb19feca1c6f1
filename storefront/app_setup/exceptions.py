"""
Gestionnaires d'exceptions: toute erreur est rendue en {"error": "<message>"}.
- CheckoutError: message métier (4xx) ou message générique (5xx, détail journalisé).
- HTTPException: detail tel quel (405 -> "Method not allowed").
- RequestValidationError: body mal formé -> 400 avant tout appel externe.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.errors import CheckoutError

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg") or "Invalid value"
    return f"Invalid request body: {loc}: {msg}" if loc else f"Invalid request body: {msg}"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error(request: Request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("Upstream failure on %s: %s", request.url.path, exc.message)
            return JSONResponse(status_code=exc.status_code, content={"error": "Upstream service failure"})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        detail = "Method not allowed" if exc.status_code == 405 else exc.detail
        return JSONResponse(status_code=exc.status_code, content={"error": detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})
