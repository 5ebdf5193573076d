"""OpenAI image-edit client (Provider A).

Processing flow:
    1. Attach the reference image as a multipart `image` file (`reference.png`).
    2. Submit prompt, `n=1` and the configured size to `/v1/images/edits`.
    3. Read `data[0].b64_json`, or download `data[0].url` when only a URL is given.

Multimodal scope:
    Single-image edit only. A secondary image is ignored.

Error handling strategy:
    - Non-2xx responses raise `ProviderTransportError` with the upstream body.
    - 2xx responses without an image raise `ProviderResponseError`.
    - httpx transport errors and timeouts are normalized by `ImageProvider.call`.

Security considerations:
    - Error messages may include upstream provider response bodies.
"""

import base64
import binascii
import logging

import httpx

from bagify.core.errors import ProviderResponseError, ProviderTransportError
from bagify.core.types import GenerationMethod
from bagify.image.base import ImageProvider
from bagify.image.credentials import CredentialStrategy
from bagify.image.provider_config import DEFAULT_OPENAI_SIZE, OPENAI_IMAGE_EDIT_URL


logger = logging.getLogger(__name__)


class OpenAIImageEditProvider(ImageProvider):
    """Direct image-edit API adapter.

    Args:
        credentials: Strategy yielding the `Authorization` header.
        size: Requested output size.
        model: Optional model id; the API default is used when `None`.
        url: Edit endpoint.
    """

    name = "openai"
    accepts_secondary_image = False

    def __init__(
        self,
        credentials: CredentialStrategy,
        size: str = DEFAULT_OPENAI_SIZE,
        model: str | None = None,
        url: str = OPENAI_IMAGE_EDIT_URL,
        method: GenerationMethod = GenerationMethod.PROVIDER_A,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(method=method, timeout=timeout, transport=transport)
        self.credentials = credentials
        self.size = size
        self.model = model
        self.url = url

    async def _generate(
        self,
        primary_image: bytes,
        secondary_image: bytes | None,
        prompt: str,
    ) -> bytes:
        headers = await self.credentials.headers()

        form = {"prompt": prompt, "n": "1", "size": self.size}
        if self.model:
            form["model"] = self.model
        files = {"image": ("reference.png", primary_image, "image/png")}

        async with self._client() as client:
            logger.debug("OpenAI edit request: size=%s bytes=%d", self.size, len(primary_image))
            response = await client.post(self.url, headers=headers, data=form, files=files)

            if response.status_code < 200 or response.status_code >= 300:
                raise ProviderTransportError(
                    f"OpenAI image edit error ({response.status_code}): {response.text}"
                )

            try:
                data = response.json()
            except ValueError as exc:
                raise ProviderResponseError("OpenAI returned a non-JSON response") from exc

            items = data.get("data") if isinstance(data, dict) else None
            first = items[0] if isinstance(items, list) and items else None
            if not isinstance(first, dict):
                raise ProviderResponseError("OpenAI did not return image data")

            if first.get("b64_json"):
                try:
                    return base64.b64decode(first["b64_json"])
                except (binascii.Error, ValueError) as exc:
                    raise ProviderResponseError("OpenAI returned undecodable b64_json") from exc

            image_url = first.get("url")
            if not image_url:
                raise ProviderResponseError("OpenAI did not return image URL")

            image_response = await client.get(image_url)
            if image_response.status_code < 200 or image_response.status_code >= 300:
                raise ProviderTransportError(
                    f"OpenAI image download failed ({image_response.status_code})"
                )
            return image_response.content
