"""
Order Service — error taxonomy

Every failure a use case can surface carries a stable error code and the
HTTP status it maps to. The FastAPI exception handlers in main.py render
them into the response envelope:

    {"success": false, "error": {"code": ..., "message": ...}}
"""


class OrderServiceError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(OrderServiceError):
    """No credential (or an empty one) was supplied."""
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Access token required"


class InvalidCredential(OrderServiceError):
    """The credential failed the signature or expiry check."""
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Invalid or expired token"


class ValidationError(OrderServiceError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class NotFound(OrderServiceError):
    code = "ORDER_NOT_FOUND"
    status_code = 404
    default_message = "Order not found"


class Forbidden(OrderServiceError):
    """Authenticated, but not allowed to act on the resource."""
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Access denied"


class InvalidTransition(OrderServiceError):
    code = "INVALID_TRANSITION"
    status_code = 400
    default_message = "Invalid status transition"


class ConcurrentModification(OrderServiceError):
    """The conditional per-order write lost against another writer."""
    code = "CONFLICT"
    status_code = 409
    default_message = "Order was modified concurrently, retry the request"

