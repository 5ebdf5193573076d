"""
Server entrypoint for the Bagify image gateway.

Architectural role:
- Configures process-wide logging.
- Reads bind address and debug flag from `GatewayConfig`.
- Serves the `bagify.api.http_api.create_app` factory with uvicorn.

Side effects:
- Loads `.env` through `bagify.image.provider_config` at import time.
- Binds a TCP port until interrupted.
"""

import logging

import uvicorn

from bagify.image.provider_config import GatewayConfig


def main():
    """Run the HTTP server until interrupted."""
    config = GatewayConfig.from_env()

    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Starting Bagify gateway on %s:%d", config.host, config.port)

    uvicorn.run(
        "bagify.api.http_api:create_app",
        factory=True,
        host=config.host,
        port=config.port,
    )


if __name__ == "__main__":
    main()
