"""Typed, recoverable errors raised by the lifecycle, query and favorites services.

Every error carries a stable ``code`` and the HTTP status the API layer maps it
to. Services raise these; ``core.exception_handler`` renders them.
"""


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {
            "success": False,
            "error": {"code": self.code, "message": self.message},
        }


class Unauthorized(DomainError):
    """The actor has no authority over the entity or action."""

    code = "UNAUTHORIZED"
    http_status = 403


class Conflict(DomainError):
    """The entity is not in a state compatible with the action."""

    code = "CONFLICT"
    http_status = 409


class NotFound(DomainError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str, resource_id=None):
        message = (
            f"{resource} '{resource_id}' not found"
            if resource_id is not None
            else f"{resource} not found"
        )
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class InvalidInput(DomainError):
    code = "INVALID_INPUT"
    http_status = 422

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_response(self) -> dict:
        body = super().to_response()
        if self.field:
            body["error"]["field"] = self.field
        return body


class InvalidRange(InvalidInput):
    """A filter range was supplied with min greater than max."""

    code = "INVALID_RANGE"

    def __init__(self, field: str, minimum, maximum):
        super().__init__(
            f"Minimum {field} ({minimum}) cannot be greater than maximum ({maximum})",
            field=field,
        )
        self.minimum = minimum
        self.maximum = maximum


class ServiceUnavailable(DomainError):
    code = "SERVICE_UNAVAILABLE"
    http_status = 503
