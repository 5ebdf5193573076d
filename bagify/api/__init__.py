"""API adapter package.

Architectural role:
    Hosts the FastAPI application (`http_api`) and the uvicorn server entrypoint
    (`main`). Both delegate generation to the core orchestrator.
"""
