"""Errors raised and reported by the study-space seat reconciler."""

from src.platform.exception.exceptions import (
    AuthenticationError,
    BadGatewayError,
    ConflictError,
    CustomBaseError,
    DomainError,
    ServiceUnavailableError,
)


class UnauthenticatedError(AuthenticationError):
    def __init__(self, message: str = 'Please sign in to book a seat') -> None:
        super().__init__(message)


class SeatNotSelectedError(DomainError):
    def __init__(self, message: str = 'Select a seat first') -> None:
        super().__init__(message)


class InvalidBookingDurationError(DomainError):
    def __init__(self, duration_minutes: int) -> None:
        super().__init__(f'Booking duration must be positive, got {duration_minutes} minutes')


class SeatAlreadyOccupiedError(ConflictError):
    def __init__(self, seat_id: str) -> None:
        self.seat_id = seat_id
        super().__init__(f'Seat {seat_id} is already occupied')


class BookingFailedError(ConflictError):
    """The store rejected the commit; message is the backend's, unchanged."""

    def __init__(self, seat_id: str, message: str) -> None:
        self.seat_id = seat_id
        super().__init__(message)


class SeatSyncError(ServiceUnavailableError):
    def __init__(self, message: str) -> None:
        super().__init__(message)


class SeatCommitRejectedError(ConflictError):
    """Raised by seat stores when a conditional update's precondition does not hold."""

    def __init__(self, seat_id: str, message: str) -> None:
        self.seat_id = seat_id
        super().__init__(message)


class SeatRowDecodeError(BadGatewayError):
    pass


class WatchListStorageError(CustomBaseError):
    """The watch-list could not be written to local storage"""
