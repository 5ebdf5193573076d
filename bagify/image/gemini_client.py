"""Gemini multimodal image client (Provider B).

Processing flow:
    1. Embed the primary image, then the optional secondary image, as base64
       `inlineData` parts followed by the text prompt.
    2. Resolve the endpoint and headers from the credential strategy:
       static key -> Generative Language API, service account -> Vertex AI.
    3. Submit `generateContent` and return the first inline image part.

Error handling strategy:
    - Non-2xx responses raise `ProviderTransportError`.
    - Missing candidates, content parts, or image data raise
      `ProviderResponseError`.
    - Token minting failures surface as `ProviderTransportError` from the
      credential strategy.

Determinism:
    Request assembly is deterministic for fixed inputs; output is not.
"""

import base64
import binascii
import logging

import httpx

from bagify.core.errors import ProviderResponseError, ProviderTransportError
from bagify.core.types import GenerationMethod
from bagify.image.base import ImageProvider
from bagify.image.credentials import CredentialStrategy, ServiceAccountCredentials
from bagify.image.encoding import cleanup_base64, encode_image
from bagify.image.provider_config import (
    DEFAULT_GEMINI_MODEL,
    GEMINI_URL_TEMPLATE,
    VERTEX_URL_TEMPLATE,
)


logger = logging.getLogger(__name__)


def vertex_url(project: str, region: str, model: str) -> str:
    """Build the Vertex AI `generateContent` URL for a region."""
    host = "aiplatform.googleapis.com" if region == "global" else f"{region}-aiplatform.googleapis.com"
    return VERTEX_URL_TEMPLATE.format(host=host, project=project, region=region, model=model)


def extract_inline_image(payload: dict) -> bytes:
    """Return decoded bytes of the first inline image part in a response.

    Raises:
        ProviderResponseError: The response carries no usable image.
    """
    candidates = payload.get("candidates") or []
    if not candidates:
        raise ProviderResponseError("Gemini returned no candidates")

    parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
    if not parts:
        raise ProviderResponseError("Gemini returned no content parts")

    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            try:
                image = base64.b64decode(cleanup_base64(inline["data"]))
            except (binascii.Error, ValueError) as exc:
                raise ProviderResponseError("Gemini returned undecodable image data") from exc
            logger.debug("Gemini image part: %d bytes (%s)", len(image), mime_type)
            return image

    raise ProviderResponseError("Gemini response did not contain image data")


class GeminiImageProvider(ImageProvider):
    """Multimodal generative API adapter.

    Args:
        credentials: `StaticKeyCredentials` (header `x-goog-api-key`) or
            `ServiceAccountCredentials` for Vertex AI.
        model: Gemini image model id.
        region: Vertex AI location, only used with service accounts.
    """

    name = "gemini"
    accepts_secondary_image = True

    def __init__(
        self,
        credentials: CredentialStrategy,
        model: str = DEFAULT_GEMINI_MODEL,
        region: str = "global",
        method: GenerationMethod = GenerationMethod.PROVIDER_B,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(method=method, timeout=timeout, transport=transport)
        self.credentials = credentials
        self.model = model
        self.region = region

    @property
    def url(self) -> str:
        if isinstance(self.credentials, ServiceAccountCredentials):
            return vertex_url(self.credentials.project_id, self.region, self.model)
        return GEMINI_URL_TEMPLATE.format(model=self.model)

    def build_payload(
        self,
        primary_image: bytes,
        secondary_image: bytes | None,
        prompt: str,
    ) -> dict:
        parts = [{"inlineData": {"mimeType": "image/png", "data": encode_image(primary_image)}}]
        if secondary_image:
            parts.append({"inlineData": {"mimeType": "image/png", "data": encode_image(secondary_image)}})
        parts.append({"text": prompt})

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    async def _generate(
        self,
        primary_image: bytes,
        secondary_image: bytes | None,
        prompt: str,
    ) -> bytes:
        headers = {"Content-Type": "application/json"}
        headers.update(await self.credentials.headers())
        payload = self.build_payload(primary_image, secondary_image, prompt)

        logger.debug(
            "Gemini request: model=%s parts=%d",
            self.model,
            len(payload["contents"][0]["parts"]),
        )

        async with self._client() as client:
            response = await client.post(self.url, headers=headers, json=payload)

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderTransportError(
                f"Gemini API error ({response.status_code}): {response.text}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderResponseError("Gemini returned a non-JSON response") from exc

        if not isinstance(data, dict):
            raise ProviderResponseError("Gemini returned an unexpected response shape")
        return extract_inline_image(data)
