"""Shared provider adapter contract.

Every external image service is wrapped by one `ImageProvider` subclass. The
subclass owns all vendor-specific wire encoding and response parsing and only
hands the orchestrator a `ProviderOutcome`.
"""

import asyncio
import logging

import httpx

from bagify.core.errors import ProviderResponseError, ProviderTransportError
from bagify.core.types import GenerationMethod, ProviderOutcome


logger = logging.getLogger(__name__)


class ImageProvider:
    """Base class for provider adapters.

    Subclasses implement `_generate` and return raw image bytes, raising
    `ProviderTransportError` / `ProviderResponseError` for failures.

    Args:
        method: Provider slot reported back to API callers.
        timeout: Ceiling in seconds for one whole attempt, covering credential
            refresh, the vendor call, and any follow-up download.
        transport: Optional httpx transport, used to stub the network in tests.
    """

    name = "provider"
    accepts_secondary_image = False

    def __init__(
        self,
        method: GenerationMethod,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.method = method
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def call(
        self,
        primary_image: bytes,
        secondary_image: bytes | None,
        prompt: str,
    ) -> ProviderOutcome:
        """Run one generation attempt and normalize failures into an outcome."""
        if not self.accepts_secondary_image:
            secondary_image = None

        try:
            image = await asyncio.wait_for(
                self._generate(primary_image, secondary_image, prompt),
                self.timeout,
            )
        except asyncio.TimeoutError:
            return ProviderOutcome.failure(f"{self.name} timed out after {self.timeout:g}s")
        except ProviderResponseError as exc:
            return ProviderOutcome.failure(exc.message, malformed=True)
        except ProviderTransportError as exc:
            return ProviderOutcome.failure(exc.message)
        except httpx.TimeoutException:
            return ProviderOutcome.failure(f"{self.name} timed out after {self.timeout:g}s")
        except httpx.HTTPError as exc:
            return ProviderOutcome.failure(f"{self.name} request failed: {exc}")

        if not image:
            return ProviderOutcome.failure(f"{self.name} returned no image data", malformed=True)
        return ProviderOutcome.success(image)

    async def _generate(
        self,
        primary_image: bytes,
        secondary_image: bytes | None,
        prompt: str,
    ) -> bytes:
        raise NotImplementedError
