"""Core orchestration package.

Architectural role:
    Exposes the provider-fallback layer that sits between the HTTP adapter and
    the individual image provider clients.

Composition:
    - `orchestrator`: Ordered provider chain with single-attempt fallback.
    - `types`: Request/outcome/result contracts shared by providers and API.
    - `errors`: Gateway error taxonomy mapped to HTTP status codes.

Determinism and side effects:
    Package import itself is deterministic and side-effect free.
"""
