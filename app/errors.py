"""Error types surfaced by the alert relay and their JSON rendering."""
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AlertRelayError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AlertRelayError):
    status_code = 400


class TokenNotFoundError(AlertRelayError):
    status_code = 404

    def __init__(self, message: str = "Invalid or expired webhook"):
        super().__init__(message)


class CredentialsNotFoundError(AlertRelayError):
    status_code = 400

    def __init__(self, message: str = "API credentials not found"):
        super().__init__(message)


class ExchangeError(AlertRelayError):
    """Instrument metadata lookup or order submission failed."""
    status_code = 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def alert_relay_error_handler(request: Request, exc: AlertRelayError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) for err in exc.errors())
    return error_response(400, f"Invalid request: {fields}" if fields else "Invalid request")


def register_error_handlers(app):
    app.add_exception_handler(AlertRelayError, alert_relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
