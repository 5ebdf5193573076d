"""Provider-fallback orchestration for image generation.

Architectural role:
    Given a reference image, an optional secondary image, and a text prompt,
    produce one output image by trying providers in a fixed priority order.

Control-flow model:
    1. Validate required inputs before any provider is touched.
    2. Call the primary provider (Provider A) when it is configured.
    3. On failure, log the reason and call the secondary provider (Provider B).
    4. Return the first success, or the last provider's failure.

Fallback semantics:
    - Each provider is attempted exactly once per request; there is no retry loop.
    - Calls are sequential. Provider B starts only after Provider A completed.
    - An unconfigured provider is skipped silently.
    - Errors from an earlier provider are logged and never returned once a later
      provider has been attempted.

Side effects:
    Outbound provider calls and log records only. The orchestrator holds no
    per-request state, so identical requests route identically.
"""

import logging
from typing import Protocol

from bagify.core.errors import ConfigurationError, ValidationError
from bagify.core.types import (
    GenerationMethod,
    GenerationRequest,
    GenerationResult,
    ProviderOutcome,
)


logger = logging.getLogger(__name__)


class ImageProviderProtocol(Protocol):
    """Minimal async interface required from a provider adapter."""

    name: str
    method: GenerationMethod

    async def call(
        self,
        primary_image: bytes,
        secondary_image: bytes | None,
        prompt: str,
    ) -> ProviderOutcome:
        """Run one generation attempt and normalize the vendor response."""
        ...


class GenerationOrchestrator:
    """Ordered two-tier provider chain.

    Args:
        primary: Provider A adapter, or `None` when its credential is absent.
        secondary: Provider B adapter, or `None` when its credential is absent.
    """

    def __init__(
        self,
        primary: ImageProviderProtocol | None,
        secondary: ImageProviderProtocol | None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary

    @property
    def configured(self) -> bool:
        return self.primary is not None or self.secondary is not None

    async def generate(
        self,
        primary_image: bytes | None,
        secondary_image: bytes | None,
        prompt: str | None,
        use_primary: bool = True,
        fallback_prompt: str | None = None,
    ) -> GenerationResult:
        """Generate one image with primary-then-secondary fallback.

        Args:
            primary_image: Required reference image bytes.
            secondary_image: Optional second image for composition providers.
            prompt: Required text prompt.
            use_primary: When false, the chain starts at Provider B.
            fallback_prompt: Prompt sent to providers after the first one;
                defaults to `prompt`.

        Returns:
            `GenerationResult` describing the first success or the final failure.

        Raises:
            ValidationError: `primary_image` or `prompt` missing/empty.
            ConfigurationError: No provider in the effective chain is configured.
        """
        request = self._validate(primary_image, secondary_image, prompt)

        chain = [self.secondary]
        if use_primary:
            chain.insert(0, self.primary)
        providers = [provider for provider in chain if provider is not None]

        if not providers:
            raise ConfigurationError("No image provider is configured")

        last: tuple[ImageProviderProtocol, ProviderOutcome] | None = None

        for index, provider in enumerate(providers):
            prompt_for_attempt = request.prompt
            if index > 0 and fallback_prompt:
                prompt_for_attempt = fallback_prompt
            outcome = await self._attempt(provider, request, prompt_for_attempt)

            if outcome.ok:
                if index > 0:
                    logger.info("Fallback provider %s succeeded", provider.name)
                return GenerationResult(
                    success=True,
                    method_used=provider.method,
                    image=outcome.image,
                )

            if index < len(providers) - 1:
                logger.warning(
                    "Provider %s failed, falling back: %s",
                    provider.name,
                    outcome.error_message,
                )
            last = (provider, outcome)

        provider, outcome = last
        logger.error("Provider %s failed: %s", provider.name, outcome.error_message)
        return GenerationResult(
            success=False,
            method_used=provider.method,
            error_message=outcome.error_message or f"{provider.name} failed",
            malformed=outcome.malformed,
        )

    async def _attempt(
        self,
        provider: ImageProviderProtocol,
        request: GenerationRequest,
        prompt: str,
    ) -> ProviderOutcome:
        """Run one provider and turn escaping exceptions into a failed outcome."""
        try:
            outcome = await provider.call(
                request.primary_image,
                request.secondary_image,
                prompt,
            )
        except Exception as exc:
            logger.debug("Provider %s raised", provider.name, exc_info=True)
            return ProviderOutcome.failure(str(exc) or exc.__class__.__name__)

        if outcome.ok and not outcome.image:
            return ProviderOutcome.failure(
                f"{provider.name} returned an empty image",
                malformed=True,
            )
        return outcome

    @staticmethod
    def _validate(
        primary_image: bytes | None,
        secondary_image: bytes | None,
        prompt: str | None,
    ) -> GenerationRequest:
        if not primary_image:
            raise ValidationError("primaryImageBase64 is required")
        if not prompt or not prompt.strip():
            raise ValidationError("prompt is required")

        return GenerationRequest(
            primary_image=primary_image,
            prompt=prompt,
            secondary_image=secondary_image or None,
        )
