from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self

import httpx

from codegrant.models.network import NetworkResponse


class Transport(ABC):
    """Abstract HTTP transport for token endpoint requests.

    Performs one HTTP exchange per call. Network failures are reported
    inside the returned NetworkResponse rather than raised, so the caller
    sees every outcome through a single value. Retry policy, if any,
    belongs here and not in the grant flow.
    """

    @abstractmethod
    async def perform(self, request: httpx.Request) -> NetworkResponse:
        """Send a request and report its outcome.

        Args:
            request: Fully built and authenticated HTTP request

        Returns:
            NetworkResponse: Status, headers and body, or the transport error
        """

    async def close(self) -> None:
        """Release any connections held by the transport."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
        return None
