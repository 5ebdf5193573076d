"""Base64 helpers shared by the API adapter and provider clients."""

import base64
import binascii
import re

from bagify.core.errors import ValidationError

_DATA_URL_PREFIX = re.compile(r"^data:.*?;base64,")


def cleanup_base64(value: str) -> str:
    """Strip a data-URL prefix and map the URL-safe alphabet to the standard one."""
    cleaned = _DATA_URL_PREFIX.sub("", value).strip()
    return cleaned.replace("-", "+").replace("_", "/")


def decode_image(value: str | None, field_name: str) -> bytes | None:
    """Decode an optional base64 image field.

    Returns `None` for absent or blank values so callers can apply their own
    required-field rules.

    Raises:
        ValidationError: The value is not decodable base64.
    """
    if value is None or not value.strip():
        return None

    cleaned = "".join(cleanup_base64(value).split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"{field_name} is not valid base64") from exc


def encode_image(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
