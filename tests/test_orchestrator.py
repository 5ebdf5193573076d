import asyncio

import pytest

from bagify.core.errors import ConfigurationError, ValidationError
from bagify.core.orchestrator import GenerationOrchestrator
from bagify.core.types import GenerationMethod


def _run(orchestrator, primary_image, secondary_image, prompt, **kwargs):
    return asyncio.run(orchestrator.generate(primary_image, secondary_image, prompt, **kwargs))


@pytest.mark.parametrize(
    "primary_image, prompt",
    [
        (None, "swap bag"),
        (b"", "swap bag"),
        (b"img", None),
        (b"img", ""),
        (b"img", "   "),
    ],
)
def test_missing_required_input_raises_without_calling_providers(
    make_primary, make_secondary, ok, primary_image, prompt
):
    primary = make_primary(outcome=ok(b"A"))
    secondary = make_secondary(outcome=ok(b"B"))
    orchestrator = GenerationOrchestrator(primary, secondary)

    with pytest.raises(ValidationError):
        _run(orchestrator, primary_image, None, prompt)

    assert primary.calls == []
    assert secondary.calls == []


def test_primary_success_skips_secondary(make_primary, make_secondary, ok):
    primary = make_primary(outcome=ok(b"A"))
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(GenerationOrchestrator(primary, secondary), b"img", b"bag", "swap bag")

    assert result.success
    assert result.image == b"A"
    assert result.method_used is GenerationMethod.PROVIDER_A
    assert result.status_code == 200
    assert len(primary.calls) == 1
    assert secondary.calls == []


def test_primary_failure_falls_back_once(make_primary, make_secondary, ok, failed):
    primary = make_primary(outcome=failed("OpenAI image edit error (500): boom"))
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(GenerationOrchestrator(primary, secondary), b"img", b"bag", "swap bag")

    assert result.success
    assert result.image == b"B"
    assert result.method_used is GenerationMethod.PROVIDER_B
    assert len(primary.calls) == 1
    assert secondary.calls == [(b"img", b"bag", "swap bag")]


def test_primary_exception_falls_back(make_primary, make_secondary, ok):
    primary = make_primary(error=ConnectionError("connection refused"))
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(GenerationOrchestrator(primary, secondary), b"img", None, "swap bag")

    assert result.method_used is GenerationMethod.PROVIDER_B
    assert len(secondary.calls) == 1


def test_unconfigured_primary_goes_straight_to_secondary(make_secondary, ok):
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(GenerationOrchestrator(None, secondary), b"img", None, "swap bag")

    assert result.success
    assert result.method_used is GenerationMethod.PROVIDER_B
    assert len(secondary.calls) == 1


def test_both_failing_reports_last_error_only(make_primary, make_secondary, failed):
    primary = make_primary(outcome=failed("primary exploded"))
    secondary = make_secondary(outcome=failed("Gemini API error (503): overloaded"))

    result = _run(GenerationOrchestrator(primary, secondary), b"img", None, "swap bag")

    assert not result.success
    assert result.image is None
    assert result.status_code == 500
    assert result.error_message == "Gemini API error (503): overloaded"
    assert "primary exploded" not in result.error_message


def test_malformed_final_response_maps_to_502(make_primary, make_secondary, failed):
    primary = make_primary(outcome=failed("primary exploded"))
    secondary = make_secondary(outcome=failed("Gemini returned no candidates", malformed=True))

    result = _run(GenerationOrchestrator(primary, secondary), b"img", None, "swap bag")

    assert result.status_code == 502


def test_ok_outcome_without_image_is_a_failure(make_primary, make_secondary, ok):
    primary = make_primary(outcome=ok(b""))
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(GenerationOrchestrator(primary, secondary), b"img", None, "swap bag")

    assert result.method_used is GenerationMethod.PROVIDER_B


def test_only_primary_configured_surfaces_its_failure(make_primary, failed):
    primary = make_primary(outcome=failed("OpenAI image edit error (401): bad key"))

    result = _run(GenerationOrchestrator(primary, None), b"img", None, "swap bag")

    assert not result.success
    assert result.method_used is GenerationMethod.PROVIDER_A
    assert result.error_message == "OpenAI image edit error (401): bad key"


def test_no_provider_configured_raises():
    with pytest.raises(ConfigurationError):
        _run(GenerationOrchestrator(None, None), b"img", None, "swap bag")


def test_use_primary_false_skips_provider_a(make_primary, make_secondary, ok):
    primary = make_primary(outcome=ok(b"A"))
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(
        GenerationOrchestrator(primary, secondary), b"img", b"bag", "compose", use_primary=False
    )

    assert result.method_used is GenerationMethod.PROVIDER_B
    assert primary.calls == []


def test_routing_is_repeatable(make_primary, make_secondary, ok, failed):
    primary = make_primary(outcome=failed("down"))
    secondary = make_secondary(outcome=ok(b"B"))
    orchestrator = GenerationOrchestrator(primary, secondary)

    first = _run(orchestrator, b"img", None, "swap bag")
    second = _run(orchestrator, b"img", None, "swap bag")

    assert first.method_used == second.method_used == GenerationMethod.PROVIDER_B
    assert len(primary.calls) == 2
    assert len(secondary.calls) == 2


def test_fallback_prompt_goes_to_later_providers_only(make_primary, make_secondary, ok, failed):
    primary = make_primary(outcome=failed("edit API down"))
    secondary = make_secondary(outcome=ok(b"B"))

    result = _run(
        GenerationOrchestrator(primary, secondary),
        b"img",
        b"bag",
        "long edit prompt",
        fallback_prompt="short prompt",
    )

    assert result.success
    assert primary.calls == [(b"img", b"bag", "long edit prompt")]
    assert secondary.calls == [(b"img", b"bag", "short prompt")]


def test_fallback_prompt_unused_when_chain_starts_at_secondary(make_primary, make_secondary, ok):
    primary = make_primary(outcome=ok(b"A"))
    secondary = make_secondary(outcome=ok(b"B"))

    _run(
        GenerationOrchestrator(primary, secondary),
        b"img",
        None,
        "compose prompt",
        use_primary=False,
        fallback_prompt="short prompt",
    )

    assert secondary.calls == [(b"img", None, "compose prompt")]
