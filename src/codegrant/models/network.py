"""Outcome of a single HTTP exchange, as reported by a transport."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx


@dataclass(frozen=True)
class NetworkResponse:
    """Either a transport failure or a (status, headers, body) triple."""

    status_code: int | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    error: BaseException | None = None

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> NetworkResponse:
        return cls(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    @classmethod
    def from_error(cls, error: BaseException) -> NetworkResponse:
        return cls(error=error)

    @property
    def is_success_status(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300
