"""Identity extraction for throttling.

Throttling is keyed on the username carried in an HTTP Basic
``Authorization`` header. Credentials are NOT verified here; an upstream
authentication layer owns that. This module only answers "who does this
request claim to be", or reports that the header is unusable.
"""

from __future__ import annotations

import base64
import binascii
from typing import Callable

from starlette.requests import Request

from hourly_throttle.core.errors import MalformedIdentity

IdentityResolver = Callable[[Request], "str | None"]


def parse_basic_username(header_value: str) -> str:
    """Extract the username from a Basic ``Authorization`` header value.

    Args:
        header_value: Raw header value, e.g. ``"Basic am9lOnNlY3JldA=="``.

    Returns:
        The username part of the decoded ``user:password`` pair.

    Raises:
        MalformedIdentity: If the scheme is not Basic, the payload is not
            valid base64/UTF-8, or the username is empty.

    Examples:
        >>> parse_basic_username("Basic am9lOnNlY3JldA==")
        'joe'
    """
    scheme, _, encoded = header_value.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        raise MalformedIdentity(
            code="authorization_scheme_unsupported",
            message="Authorization header must use the Basic scheme",
        )

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise MalformedIdentity(
            code="authorization_malformed",
            message="Authorization header payload is not valid base64 credentials",
        ) from exc

    username, separator, _ = decoded.partition(":")
    if not separator or not username:
        raise MalformedIdentity(
            code="authorization_malformed",
            message="Authorization header does not carry a username",
        )
    return username


def basic_auth_identity(request: Request) -> str | None:
    """Resolve the throttling identity of ``request``.

    Returns:
        The Basic auth username, or None when no Authorization header is sent.

    Raises:
        MalformedIdentity: If the header is present but unusable.
    """
    header_value = request.headers.get("Authorization")
    if not header_value:
        return None
    return parse_basic_username(header_value)
