# app/core/exceptions.py
"""Domain errors raised by the library services.

Every rule violation is reported to the caller as one of these; none of
them is retried. ``status_code`` is the HTTP status the API maps it to.
"""
from fastapi import status


class LibraryError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(LibraryError):
    status_code = status.HTTP_404_NOT_FOUND


class LimitExceeded(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class Unavailable(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class ReservedByOther(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class AlreadyReturned(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class AlreadyExists(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class InvalidState(LibraryError):
    status_code = status.HTTP_409_CONFLICT


class Unauthorized(LibraryError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidCredentials(LibraryError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidIdentifier(LibraryError):
    status_code = status.HTTP_400_BAD_REQUEST
