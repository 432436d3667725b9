"""Consistent API response helpers.

Returns plain dicts (not Flask Response objects) because Flask-RESTX
handles JSON serialisation automatically. Every error body carries
``status``, ``error_code`` and ``message``; ``details`` is added when
there is something structured to report (violations, amounts, a failed
accounting result).
"""

from pydantic import ValidationError as PydanticValidationError

from app.domain.exceptions import ERROR_STATUS, AppError


def success_response(data, status_code: int = 200):
    """Return a standardised success dict with HTTP status code.

    Args:
        data: Serialisable payload.
        status_code: HTTP status code (default 200).
    """
    return {"status": "success", "data": data}, status_code


def error_response(
    message: str,
    error_code: str = "INTERNAL_ERROR",
    status_code: int = 500,
    details=None,
):
    """Return a standardised error dict with HTTP status code."""
    body = {
        "status": "error",
        "error_code": error_code,
        "message": message,
    }
    if details:
        body["details"] = details
    return body, status_code


def app_error_response(err: AppError):
    """Render an ``AppError`` with its violations or details, if any."""
    return error_response(
        err.message, err.error_code, err.status_code,
        details=getattr(err, "violations", None) or getattr(err, "details", None),
    )


def invalid_input_response(err: PydanticValidationError):
    # include_context=False keeps the error list JSON-serialisable
    return error_response(
        "Invalid input", "VALIDATION_ERROR", 400,
        details=err.errors(include_url=False, include_context=False),
    )


def result_response(result, status_code: int = 200):
    """Render an accounting result object; failed results become errors."""
    if getattr(result, "allowed", True):
        return success_response(result.to_dict(), status_code)
    return error_response(
        result.message,
        result.error_code,
        ERROR_STATUS.get(result.error_code, 422),
        details=result.to_dict(),
    )
