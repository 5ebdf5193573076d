"""Provider assembly used at application startup.

Role in pipeline:
    - Receives the process-wide `GatewayConfig`.
    - Selects a credential strategy per provider (static key or minted token).
    - Returns a `GenerationOrchestrator` holding the configured adapters.

Size validation:
    - No image size limits are validated here; the API adapter bounds the
      request body.

Error handling strategy:
    - Absent credentials disable the matching provider without an error.
    - Malformed credentials are logged once here and disable the provider.

Determinism:
    - Provider selection is deterministic for a fixed configuration.
"""

import logging

from bagify.core.errors import ConfigurationError
from bagify.core.orchestrator import GenerationOrchestrator
from bagify.image.credentials import ServiceAccountCredentials, StaticKeyCredentials
from bagify.image.gemini_client import GeminiImageProvider
from bagify.image.openai_client import OpenAIImageEditProvider
from bagify.image.provider_config import GatewayConfig


logger = logging.getLogger(__name__)


def build_primary_provider(config: GatewayConfig):
    """Return the OpenAI edit adapter, or `None` when no key is configured."""
    if not config.openai_api_key:
        logger.info("OPENAI_API_KEY not set; primary provider disabled")
        return None

    return OpenAIImageEditProvider(
        credentials=StaticKeyCredentials(config.openai_api_key),
        size=config.openai_size,
        model=config.openai_model,
        timeout=config.provider_timeout_seconds,
    )


def build_secondary_provider(config: GatewayConfig):
    """Return the Gemini adapter, or `None` when it cannot authenticate."""
    if config.service_account_error:
        logger.error(config.service_account_error)

    if config.gemini_uses_service_account:
        try:
            credentials = ServiceAccountCredentials(config.service_account)
        except ConfigurationError as exc:
            logger.error("Secondary provider disabled: %s", exc.message)
            return None
    elif config.gemini_api_key and config.gemini_auth_mode != "service_account":
        credentials = StaticKeyCredentials(
            config.gemini_api_key,
            header="x-goog-api-key",
            scheme=None,
        )
    else:
        logger.warning("No Gemini credential configured; secondary provider disabled")
        return None

    return GeminiImageProvider(
        credentials=credentials,
        model=config.gemini_model,
        region=config.cloud_region,
        timeout=config.provider_timeout_seconds,
    )


def build_orchestrator(config: GatewayConfig) -> GenerationOrchestrator:
    """Assemble the provider chain once for the lifetime of the process."""
    primary = build_primary_provider(config)
    secondary = build_secondary_provider(config)

    if primary is None and secondary is None:
        logger.warning("No image provider configured; generation requests will fail")

    return GenerationOrchestrator(primary=primary, secondary=secondary)
