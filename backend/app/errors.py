"""Typed failures raised by the access-control core and the services.

Every failure carries an HTTP status and a stable error code so the
exception handlers in `app.middleware.exceptions` can render it without
knowing where it came from. Nothing here is HTTP-specific beyond those
two attributes.

Taxonomy:
  Unauthenticated     no principal available (401)
  Forbidden           authenticated, but not allowed (403)
  NotFound            referenced user or resource is absent (404)
  InvalidState        business rule violated, e.g. cancelling a shipped order (422)
  ConfigurationError  unrecognized role/permission value, a deployment defect (500)
"""

from fastapi import status


class AccessError(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class Unauthenticated(AccessError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHENTICATED",
        )


class Forbidden(AccessError):
    def __init__(self, message: str = "Permission denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN",
        )


class NotFound(AccessError):
    def __init__(self, resource: str, identifier: object):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
        )


class InvalidState(AccessError):
    """Business rule violation, independent of authorization."""

    def __init__(self, message: str, error_code: str = "INVALID_STATE"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
        )


class ConfigurationError(AccessError):
    """Unrecognized role or permission value reached the core.

    The message is for logs only; clients get a generic internal error.
    """

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="CONFIGURATION_ERROR",
        )
