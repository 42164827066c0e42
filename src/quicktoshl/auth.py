"""API key authentication for the Toshl API.

Toshl accepts a personal API key as the user name of an HTTP Basic
credential with an empty password (:rfc:`7617`), so the header sent with
every request is ``Authorization: Basic base64("<key>:")``.
"""

from __future__ import annotations

import base64

from quicktoshl.config import resolve_credential
from quicktoshl.exceptions import AuthError


class AuthResult:
    """Container for the headers to inject into every outgoing request.

    Example::

        result = api_key_auth("abc123")
        assert result.headers["Authorization"].startswith("Basic ")
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers or {}


def api_key_auth(api_key: str) -> AuthResult:
    """Build the Basic auth header for *api_key*.

    Raises:
        AuthError: If the key is empty.
    """
    api_key = api_key.strip()
    if not api_key:
        raise AuthError("Toshl API key is empty")
    encoded = base64.b64encode(f"{api_key}:".encode("utf-8")).decode("ascii")
    return AuthResult(headers={"Authorization": f"Basic {encoded}"})


def authenticate(source: str) -> AuthResult:
    """Resolve the API key from a credential *source* and build its header.

    Args:
        source: A credential source descriptor such as ``"env:TOSHL_API_KEY"``
            (see :func:`~quicktoshl.config.resolve_credential`).
    """
    return api_key_auth(resolve_credential(source))
