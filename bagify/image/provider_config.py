"""Provider/runtime configuration for the image gateway.

Architectural role:
    Centralizes provider endpoints, model selection, credential lookup, and
    server settings consumed by `bagify.image.service` and `bagify.api`.

Configuration flow integration:
    - `GatewayConfig.from_env()` is evaluated once at application startup.
    - `service.build_orchestrator` turns the config into provider adapters.
    - `api.http_api` reads server settings (CORS, body limit) and exposes
      credential presence flags on `/health` and `/diag`.

Determinism:
    Deterministic for a fixed process environment and key files.

Failure behavior:
    Missing credentials are represented as `None`; the matching provider is then
    disabled instead of failing startup.
"""

import json
import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()

OPENAI_IMAGE_EDIT_URL = "https://api.openai.com/v1/images/edits"

GEMINI_URL_TEMPLATE = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "{model}:generateContent"
)

VERTEX_URL_TEMPLATE = (
    "https://{host}/v1/projects/{project}/locations/{region}/"
    "publishers/google/models/{model}:generateContent"
)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-image"
DEFAULT_OPENAI_SIZE = "1024x1024"

# Remote folder layout used by the carousel pipeline.
DEFAULT_FOLDER_IDS = {
    "bag_library": "1dToKUgXRvWCL3ao9yyOmS7kC6qfpFHJW",
    "reference_photos": "1CtLqTUbQF7Dg6Dnal4-FrfotizqsF-5j",
    "product_angled": "1vd424znRgB4i3MqxWihCK9y0SdKXI83p",
    "product_front": "1AiB27a190GgB0inSreGH-_S4Gbwch6sk",
    "generated_carousels": "1S0WbIlEBN94P3a1j9b0U0PfxHyGcI-7X",
    "posting_queue": "1fCPlJXlK5avD7AB3l6xWbMnDToKd3ElV",
}

GEMINI_AUTH_MODES = ("auto", "api_key", "service_account")


def load_key(path, environ=None):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/openai.key` -> `OPENAI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.
        environ: Mapping to read instead of `os.environ`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing or empty file returns `None`.
    """
    if not path:
        return None
    environ = os.environ if environ is None else environ
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = (environ.get(key_name) or "").strip()
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def _clean(value):
    value = (value or "").strip()
    return value or None


@dataclass(frozen=True)
class ServiceAccountInfo:
    """Service-account key triple used to mint short-lived OAuth tokens."""

    client_email: str
    private_key: str
    project_id: str

    def as_info(self) -> dict:
        """Return the mapping accepted by `google.oauth2.service_account`."""
        return {
            "type": "service_account",
            "client_email": self.client_email,
            "private_key": self.private_key,
            "project_id": self.project_id,
            "token_uri": GOOGLE_TOKEN_URI,
        }


def load_service_account(environ=None):
    """Resolve service-account material from the environment.

    Resolution order:
        1. `GOOGLE_CLIENT_EMAIL`, `GOOGLE_PRIVATE_KEY`, `GOOGLE_PROJECT_ID`.
        2. The full JSON document in `GOOGLE_SERVICE_ACCOUNT_KEY`.

    Returns:
        `ServiceAccountInfo`, or `None` when the triple is incomplete.

    Raises:
        ValueError: `GOOGLE_SERVICE_ACCOUNT_KEY` is set but is not valid JSON.
    """
    environ = os.environ if environ is None else environ

    client_email = _clean(environ.get("GOOGLE_CLIENT_EMAIL"))
    private_key = _clean(environ.get("GOOGLE_PRIVATE_KEY"))
    project_id = _clean(environ.get("GOOGLE_PROJECT_ID"))

    raw_json = _clean(environ.get("GOOGLE_SERVICE_ACCOUNT_KEY"))
    if raw_json and not (client_email and private_key and project_id):
        data = json.loads(raw_json)
        client_email = client_email or _clean(data.get("client_email"))
        private_key = private_key or _clean(data.get("private_key"))
        project_id = project_id or _clean(data.get("project_id"))

    if not (client_email and private_key and project_id):
        return None

    # Keys pasted into env files usually carry escaped newlines.
    private_key = private_key.replace("\\n", "\n")
    return ServiceAccountInfo(client_email, private_key, project_id)


@dataclass(frozen=True)
class GatewayConfig:
    """Runtime configuration for the gateway.

    Relevant environment variables:
        - `OPENAI_API_KEY` (or `config/openai.key`), `OPENAI_IMAGE_MODEL`,
          `OPENAI_IMAGE_SIZE`
        - `GEMINI_API_KEY` / `VITE_API_KEY`, `GEMINI_IMAGE_MODEL`,
          `GEMINI_AUTH_MODE`
        - `GOOGLE_CLIENT_EMAIL`, `GOOGLE_PRIVATE_KEY`, `GOOGLE_PROJECT_ID`,
          `GOOGLE_SERVICE_ACCOUNT_KEY`, `GOOGLE_CLOUD_REGION`
        - `PROVIDER_TIMEOUT_SECONDS`, `MAX_BODY_MB`, `CORS_ORIGINS`
        - `HOST`, `PORT`, `DEBUG`, `DRIVE_FOLDER_<NAME>`
    """

    openai_api_key: str | None = None
    openai_model: str | None = None
    openai_size: str = DEFAULT_OPENAI_SIZE

    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_auth_mode: str = "auto"

    service_account: ServiceAccountInfo | None = None
    service_account_error: str | None = None
    cloud_region: str = "global"

    provider_timeout_seconds: float = 120.0
    max_body_bytes: int = 50 * 1024 * 1024
    cors_origins: tuple = ("*",)

    host: str = "0.0.0.0"
    port: int = 3001
    debug: bool = False

    folder_ids: dict = field(default_factory=lambda: dict(DEFAULT_FOLDER_IDS))

    @property
    def gemini_uses_service_account(self) -> bool:
        """Whether Provider B authenticates with a minted token."""
        if self.gemini_auth_mode == "service_account":
            return self.service_account is not None
        if self.gemini_auth_mode == "api_key":
            return False
        return self.gemini_api_key is None and self.service_account is not None

    @classmethod
    def from_env(cls, environ=None) -> "GatewayConfig":
        """Build configuration from environment variables.

        Invalid `GOOGLE_SERVICE_ACCOUNT_KEY` JSON does not abort startup; the
        parse error is kept in `service_account_error` for a single startup log.

        Raises:
            ValueError: Numeric settings or `GEMINI_AUTH_MODE` are invalid.
        """
        environ = os.environ if environ is None else environ

        auth_mode = (environ.get("GEMINI_AUTH_MODE") or "auto").strip().lower()
        if auth_mode not in GEMINI_AUTH_MODES:
            raise ValueError(
                f"GEMINI_AUTH_MODE must be one of {', '.join(GEMINI_AUTH_MODES)}"
            )

        service_account = None
        service_account_error = None
        try:
            service_account = load_service_account(environ)
        except ValueError as exc:
            service_account_error = f"GOOGLE_SERVICE_ACCOUNT_KEY is not valid JSON: {exc}"

        folder_ids = {
            name: _clean(environ.get(f"DRIVE_FOLDER_{name.upper()}")) or default
            for name, default in DEFAULT_FOLDER_IDS.items()
        }

        origins = environ.get("CORS_ORIGINS") or "*"

        return cls(
            openai_api_key=load_key("config/openai.key", environ),
            openai_model=_clean(environ.get("OPENAI_IMAGE_MODEL")),
            openai_size=_clean(environ.get("OPENAI_IMAGE_SIZE")) or DEFAULT_OPENAI_SIZE,
            gemini_api_key=_clean(environ.get("GEMINI_API_KEY")) or _clean(environ.get("VITE_API_KEY")),
            gemini_model=_clean(environ.get("GEMINI_IMAGE_MODEL")) or DEFAULT_GEMINI_MODEL,
            gemini_auth_mode=auth_mode,
            service_account=service_account,
            service_account_error=service_account_error,
            cloud_region=_clean(environ.get("GOOGLE_CLOUD_REGION")) or "global",
            provider_timeout_seconds=float(environ.get("PROVIDER_TIMEOUT_SECONDS", "120")),
            max_body_bytes=int(float(environ.get("MAX_BODY_MB", "50")) * 1024 * 1024),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            host=_clean(environ.get("HOST")) or "0.0.0.0",
            port=int(environ.get("PORT", "3001")),
            debug=(environ.get("DEBUG") or "").lower() == "true",
            folder_ids=folder_ids,
        )
