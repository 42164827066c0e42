"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant is referenced by the matching
:class:`~quicktoshl.exceptions.QuickToshlError` subclass, so shell wrappers can
tell failure classes apart without parsing stderr.

Example::

    $ quicktoshl categories
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the API key was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unparseable input."""

EXIT_AUTH_FAILURE = 3
"""The API key was missing or rejected."""

EXIT_NOT_FOUND = 4
"""The requested entry does not exist (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The API returned a 5xx or an unexpected error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_BAD_REQUEST = 7
"""The API rejected the request payload (HTTP 400)."""

EXIT_BAD_RESPONSE = 8
"""The API answered with a body that does not match the expected shape."""
