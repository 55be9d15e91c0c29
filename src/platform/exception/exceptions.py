from typing import Optional


class CustomBaseError(Exception):
    """
    Base class for all custom exceptions - controls logging behavior in @Logger.io

    ``status_code`` is also the HTTP status the exception handlers answer with.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_response_body(self) -> dict[str, str]:
        return {'detail': self.message, 'error': self.error_type}


class DomainError(CustomBaseError):
    status_code = 400


class NotFoundError(CustomBaseError):
    status_code = 404


class ConflictError(CustomBaseError):
    status_code = 409


class AuthenticationError(CustomBaseError):
    status_code = 401


class BadGatewayError(CustomBaseError):
    """An upstream store answered with something we cannot use"""

    status_code = 502


class ServiceUnavailableError(CustomBaseError):
    status_code = 503
