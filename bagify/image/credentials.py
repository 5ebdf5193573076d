"""Credential-resolution strategies for provider clients.

Processing flow:
    Each provider client asks its strategy for request headers right before a
    call. Static keys return a fixed header; service accounts mint a short-lived
    OAuth access token through the google-auth JWT-bearer flow and reuse it until
    it expires.

Error handling strategy:
    - Malformed service-account material raises `ConfigurationError` at
      construction time so it is reported once at startup.
    - Token refresh failures raise `ProviderTransportError` so the orchestrator
      treats them as a provider failure and falls back.

Security considerations:
    - Header values and tokens are never logged.
"""

import asyncio
import logging

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from bagify.core.errors import ConfigurationError, ProviderTransportError
from bagify.image.provider_config import CLOUD_PLATFORM_SCOPE, ServiceAccountInfo


logger = logging.getLogger(__name__)


class CredentialStrategy:
    """Produces authentication headers for one provider."""

    async def headers(self) -> dict:
        raise NotImplementedError


class StaticKeyCredentials(CredentialStrategy):
    """Fixed API key sent in a single header.

    Args:
        key: API key value.
        header: Header name (`Authorization`, `x-goog-api-key`, ...).
        scheme: Optional prefix such as `Bearer`.
    """

    def __init__(self, key: str, header: str = "Authorization", scheme: str | None = "Bearer") -> None:
        if not key:
            raise ConfigurationError(f"Empty API key for header {header}")
        self.key = key
        self.header = header
        self.scheme = scheme

    async def headers(self) -> dict:
        value = f"{self.scheme} {self.key}" if self.scheme else self.key
        return {self.header: value}


class ServiceAccountCredentials(CredentialStrategy):
    """Short-lived bearer token minted from a service-account key.

    Args:
        info: Client email, private key and project id.
        scopes: OAuth scopes requested for the token.
        credentials: Prebuilt google-auth credentials (mainly for tests).
    """

    def __init__(
        self,
        info: ServiceAccountInfo,
        scopes: tuple = (CLOUD_PLATFORM_SCOPE,),
        credentials=None,
    ) -> None:
        self.info = info
        if credentials is None:
            try:
                credentials = service_account.Credentials.from_service_account_info(
                    info.as_info(),
                    scopes=list(scopes),
                )
            except (ValueError, KeyError) as exc:
                raise ConfigurationError(f"Invalid service-account key: {exc}") from exc
        self.credentials = credentials
        self._lock = asyncio.Lock()

    @property
    def project_id(self) -> str:
        return self.info.project_id

    async def token(self) -> str:
        """Return a valid access token, refreshing it when expired."""
        async with self._lock:
            if not self.credentials.valid:
                logger.debug("Minting access token for %s", self.info.client_email)
                try:
                    await asyncio.to_thread(self.credentials.refresh, Request())
                except google.auth.exceptions.GoogleAuthError as exc:
                    raise ProviderTransportError(f"Service-account token refresh failed: {exc}") from exc
            return self.credentials.token

    async def headers(self) -> dict:
        return {"Authorization": f"Bearer {await self.token()}"}
