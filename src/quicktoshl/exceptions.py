"""Exception hierarchy for quicktoshl.

All exceptions inherit from :class:`QuickToshlError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`quicktoshl.exit_codes`.
:func:`quicktoshl.app.main` catches ``QuickToshlError`` and exits with that
code; anything else produces a crash log.

Failures raised by the HTTP transport derive from :class:`TransportError`.
These are the failures the reference-data cache may answer from a recent
entry (see :mod:`quicktoshl.cache.fetch`); everything else always surfaces.

Subclass hierarchy::

    QuickToshlError (exit 1)
    +-- InvalidUsageError        (exit 2)
    +-- ConfigError              (exit 1)
    +-- ResponseShapeError       (exit 8)
    +-- TransportError           (exit 5)
        +-- BadRequestError      (exit 7)
        +-- AuthError            (exit 3)
        +-- NotFoundError        (exit 4)
        +-- ServerError          (exit 5)
        +-- MalformedResponseError (exit 8)
        +-- ConnectionError_     (exit 6)
"""

from __future__ import annotations

from quicktoshl.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_BAD_REQUEST,
    EXIT_BAD_RESPONSE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class QuickToshlError(Exception):
    """Base exception for all quicktoshl errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    title = "Error"

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(QuickToshlError):
    """Raised for invalid CLI arguments or input that cannot be parsed (e.g. an amount)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(QuickToshlError):
    """Raised for configuration problems (invalid JSON, unresolvable credential source)."""

    exit_code = EXIT_GENERIC_FAILURE


class ResponseShapeError(QuickToshlError):
    """Raised when a decoded API payload does not match the expected resource shape."""

    exit_code = EXIT_BAD_RESPONSE


class TransportError(QuickToshlError):
    """Base class for failures of a request to the Toshl API.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the failed response, or ``None`` when
            no response was received.
    """

    exit_code = EXIT_SERVER_ERROR
    title = "API Error"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BadRequestError(TransportError):
    """Raised when the API returns HTTP 400."""

    exit_code = EXIT_BAD_REQUEST
    title = "Bad Request"


class AuthError(TransportError):
    """Raised when the API key is missing or rejected (HTTP 401 / 403)."""

    exit_code = EXIT_AUTH_FAILURE
    title = "Invalid API Key"


class NotFoundError(TransportError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(TransportError):
    """Raised for HTTP 5xx and any other unexpected error status."""

    exit_code = EXIT_SERVER_ERROR


class MalformedResponseError(TransportError):
    """Raised when a response body cannot be decoded, or a 304 arrives with nothing to revalidate."""

    exit_code = EXIT_BAD_RESPONSE


class ConnectionError_(TransportError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
