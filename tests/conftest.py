import base64

import pytest

from bagify.core.types import GenerationMethod, ProviderOutcome

# 1x1 transparent PNG
PNG_1X1_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_1X1 = base64.b64decode(PNG_1X1_B64)


class FakeProvider:
    """Records calls and replays a fixed outcome or exception."""

    def __init__(self, name, method, outcome=None, error=None):
        self.name = name
        self.method = method
        self.outcome = outcome
        self.error = error
        self.calls = []

    async def call(self, primary_image, secondary_image, prompt):
        self.calls.append((primary_image, secondary_image, prompt))
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def png_bytes():
    return PNG_1X1


@pytest.fixture
def make_primary():
    def _make(outcome=None, error=None):
        return FakeProvider("openai", GenerationMethod.PROVIDER_A, outcome=outcome, error=error)
    return _make


@pytest.fixture
def make_secondary():
    def _make(outcome=None, error=None):
        return FakeProvider("gemini", GenerationMethod.PROVIDER_B, outcome=outcome, error=error)
    return _make


@pytest.fixture
def ok():
    return ProviderOutcome.success


@pytest.fixture
def failed():
    return ProviderOutcome.failure
