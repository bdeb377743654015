"""
Gateway — edge errors

Rendered with the same envelope the services use, so clients see one
error shape whether a request stopped at the edge or upstream.
"""


class GatewayError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": {"code": self.code, "message": self.message}}


class Unauthenticated(GatewayError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Access token required"


class InvalidCredential(GatewayError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Invalid or expired token"


class RateLimitExceeded(GatewayError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
    default_message = "Too many requests, please try again later"


class RouteNotFound(GatewayError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Route not found"


class UpstreamUnavailable(GatewayError):
    """A backing service could not be reached."""
    code = "SERVICE_UNAVAILABLE"
    status_code = 503
