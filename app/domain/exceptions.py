"""Custom business exception classes and accounting error codes.

Each exception maps to a specific HTTP status code and error code
for consistent API error responses.

Expected accounting outcomes (no credits, wrong status, ...) are *not*
raised by the engine: they come back as result objects carrying one of the
``ErrorCode`` values. Exceptions are reserved for the request-handling
layer and for store failures.
"""


class ErrorCode:
    """Error codes shared by result objects and exceptions."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    INVALID_STATE = "INVALID_STATE"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    NO_ACTIVE_SUBSCRIPTION = "NO_ACTIVE_SUBSCRIPTION"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"


# HTTP status used when a failed result object is surfaced by the API.
ERROR_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.INSUFFICIENT_CREDITS: 402,
    ErrorCode.NO_ACTIVE_SUBSCRIPTION: 402,
    ErrorCode.CONCURRENT_MODIFICATION: 409,
    ErrorCode.PERSISTENCE_FAILURE: 503,
}


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, error_code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(self.message)


class ResourceNotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str, resource_id: int | str):
        super().__init__(
            message=f"{resource} with id {resource_id} not found",
            error_code="RESOURCE_NOT_FOUND",
            status_code=404,
        )


class UnauthorizedError(AppError):
    """Raised when the caller did not identify itself."""

    def __init__(self, message: str = "Missing or invalid X-User-Id header"):
        super().__init__(message=message, error_code="UNAUTHORIZED", status_code=401)


class ForbiddenError(AppError):
    """Raised when the acting user may not touch the resource."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code=ErrorCode.FORBIDDEN,
            status_code=403,
        )


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str, details: dict | None = None):
        self.details = details or {}
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class InvalidStateError(AppError):
    """Raised when a request status does not allow the operation."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_STATE,
            status_code=409,
        )


class ConflictError(AppError):
    """Raised when a write would break a uniqueness rule (e.g. second active subscription)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="CONFLICT", status_code=409)


class RuleViolationError(AppError):
    """Raised when attribute responses violate the service type's questions."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__(
            message="Invalid attribute responses: " + ", ".join(violations),
            error_code="RULE_VIOLATION",
            status_code=422,
        )


class PricingError(AppError):
    """Raised when pricing calculation encounters an unsupported configuration."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="PRICING_ERROR",
            status_code=422,
        )


class AccountingError(AppError):
    """A failed accounting result surfaced to an HTTP caller."""

    def __init__(self, message: str, error_code: str, details: dict | None = None):
        self.details = details or {}
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=ERROR_STATUS.get(error_code, 422),
        )


class InsufficientCreditsError(AccountingError):
    """Raised when request creation cannot be charged; nothing is persisted."""

    def __init__(self, message: str, required: int, available: int):
        super().__init__(
            message,
            ErrorCode.INSUFFICIENT_CREDITS,
            details={"required": required, "available": available},
        )


class PersistenceError(AppError):
    """Raised when the store rejects a read or write.

    Unlike the business outcomes above this is allowed to propagate; callers
    may retry a bounded number of times.
    """

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code=ErrorCode.PERSISTENCE_FAILURE,
            status_code=503,
        )
