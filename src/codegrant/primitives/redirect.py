"""URL helpers for recognizing authorization redirects."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx


def query_parameters(url: httpx.URL | str) -> dict[str, str]:
    """Extract single-valued query parameters, keeping the first value per key."""
    query = httpx.URL(url).query.decode("ascii", errors="replace")
    params = parse_qs(query, keep_blank_values=True)
    return {key: values[0] for key, values in params.items() if values}


def matches_redirect_uri(
    candidate: httpx.URL | str, redirect_uri: httpx.URL | str
) -> bool:
    """Check scheme, host and path equality, ignoring the query string."""
    candidate_url = httpx.URL(candidate)
    expected_url = httpx.URL(redirect_uri)
    return (
        candidate_url.scheme == expected_url.scheme
        and candidate_url.host == expected_url.host
        and candidate_url.path == expected_url.path
    )


def is_authorization_redirect(
    candidate: httpx.URL | str, redirect_uri: httpx.URL | str | None
) -> bool:
    """Decide whether a navigation is the authorization server's redirect.

    With a redirect URI configured the candidate must match it (query
    excluded); in all cases its query must carry ``code`` or ``error``.
    """
    if redirect_uri is not None and not matches_redirect_uri(candidate, redirect_uri):
        return False

    params = query_parameters(candidate)
    return "code" in params or "error" in params
