"""Exceptions raised by the miiCard consumer library."""

from typing import Optional


class MiiCardError(Exception):
    """Base class for errors raised by the library."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class TransportError(MiiCardError):
    """The HTTP exchange with miiCard failed or returned nothing usable."""

    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        super().__init__(code, message)
        self.status_code = status_code


class AuthorisationError(MiiCardError):
    """The OAuth handshake returned a malformed or empty token reply."""


# Error codes
EMPTY_RESPONSE = "EMPTY_RESPONSE"
HTTP_ERROR = "HTTP_ERROR"
CONNECTION_ERROR = "CONNECTION_ERROR"
INVALID_RESPONSE = "INVALID_RESPONSE"
NO_TOKEN = "NO_TOKEN"
NO_ACCESS_TOKEN = "NO_ACCESS_TOKEN"
NO_REQUEST_TOKEN = "NO_REQUEST_TOKEN"
