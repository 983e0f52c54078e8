"""Security utilities for the authorization code flow.

Provides state parameter generation and the anti-CSRF state comparison.
"""

from __future__ import annotations

import secrets
import string

from codegrant.models.errors import StateValidationError


def generate_state() -> str:
    """Generate cryptographically secure state parameter.

    The state parameter provides CSRF protection by ensuring the callback
    matches the original authorization request.

    Returns:
        Cryptographically secure random state string (32 characters)
    """
    alphabet = string.ascii_letters + string.digits + "-._~"
    return "".join(secrets.choice(alphabet) for _ in range(32))


def validate_state(expected: str | None, actual: str | None) -> None:
    """Validate state parameter matches expected value.

    Both values absent counts as a match.

    Args:
        expected: State parameter from original authorization request
        actual: State parameter from callback URL

    Raises:
        StateValidationError: If state parameters don't match
    """
    if expected is None and actual is None:
        return

    if expected is None or actual is None:
        raise StateValidationError("State parameter mismatch - possible CSRF attack")

    if not secrets.compare_digest(expected.encode(), actual.encode()):
        raise StateValidationError("State parameter mismatch - possible CSRF attack")
