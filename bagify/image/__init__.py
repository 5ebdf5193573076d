"""Image provider adapter package.

Scope:
    Provides the provider clients behind the generation orchestrator, their
    credential strategies, base64 helpers, and environment-driven configuration.

Module split:
    - `provider_config`: endpoints, models, and `GatewayConfig`.
    - `credentials`: static-key and service-account token strategies.
    - `base`: shared adapter contract and failure normalization.
    - `openai_client`: direct image-edit API (Provider A).
    - `gemini_client`: multimodal generative API (Provider B).
    - `service`: startup assembly of the orchestrator.
"""
