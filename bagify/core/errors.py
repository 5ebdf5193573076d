"""Gateway error taxonomy.

Every error carries the HTTP status the API adapter answers with. Provider
errors are normally converted into failed `ProviderOutcome` values by the
adapters and only reach the caller through the orchestrator's final result.
"""


class GatewayError(Exception):
    """Base class for errors with a defined HTTP mapping."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GatewayError):
    """Required request field missing or unreadable. Never retried."""

    status_code = 400


class ProviderTransportError(GatewayError):
    """Network failure, timeout, or non-2xx answer from a provider."""

    status_code = 500


class ProviderResponseError(GatewayError):
    """Provider answered 2xx but the body carried no usable image."""

    status_code = 502


class ConfigurationError(GatewayError):
    """Required credential or environment value absent or malformed."""

    status_code = 500


class StorageError(GatewayError):
    """Remote folder listing, download or upload failed."""

    status_code = 500
