"""Generation data contracts for `bagify.core.orchestrator`.

Architectural role:
    Defines the request shape accepted by the orchestrator, the fixed outcome
    variant every provider adapter maps its vendor response into, and the
    uniform result returned to API adapters.

Lifecycle:
    All objects are created at request start and discarded at response time.
    None of them is shared across requests.
"""

from dataclasses import dataclass
from enum import Enum


class GenerationMethod(str, Enum):
    """Provider slot that produced an image, serialized as the API `method`."""

    PROVIDER_A = "ProviderA"
    PROVIDER_B = "ProviderB"


@dataclass(frozen=True)
class GenerationRequest:
    """Images and prompt forwarded to the provider chain.

    Attributes:
        primary_image: Reference image bytes. Always required.
        prompt: Text instruction. Always required.
        secondary_image: Optional second image, only consumed by providers
            that compose two images.
    """

    primary_image: bytes
    prompt: str
    secondary_image: bytes | None = None


@dataclass(frozen=True)
class ProviderOutcome:
    """Normalized result of one provider call.

    Attributes:
        ok: Whether the provider returned a usable image.
        image: Raw image bytes when `ok`.
        error_message: Descriptive failure reason when not `ok`.
        malformed: Provider answered 2xx but without a usable image.
    """

    ok: bool
    image: bytes | None = None
    error_message: str | None = None
    malformed: bool = False

    @classmethod
    def success(cls, image: bytes) -> "ProviderOutcome":
        return cls(ok=True, image=image)

    @classmethod
    def failure(cls, message: str, malformed: bool = False) -> "ProviderOutcome":
        return cls(ok=False, error_message=message, malformed=malformed)


@dataclass(frozen=True)
class GenerationResult:
    """Uniform orchestrator result surfaced by the HTTP layer.

    `image` is present exactly when `success` is true, `error_message` exactly
    when it is false.
    """

    success: bool
    method_used: GenerationMethod | None = None
    image: bytes | None = None
    error_message: str | None = None
    malformed: bool = False

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return 502 if self.malformed else 500
