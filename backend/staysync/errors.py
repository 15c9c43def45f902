"""Error taxonomy shared by every blueprint.

Handlers raise these; the app factory turns them into the JSON envelope
``{"success": false, "error": ..., "code": ..., "details": ...}``.
"""


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
    message = "internal server error"

    def __init__(self, message=None, code=None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        if code:
            self.code = code
        self.details = details

    def to_dict(self):
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "request validation failed"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    message = "resource not found"


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"
    message = "request conflicts with current state"


class DependencyError(ApiError):
    status_code = 409
    code = "HAS_DEPENDENTS"
    message = "record still has dependent records"


class InternalError(ApiError):
    pass


class RateLimitError(ApiError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "too many requests, try again later"
