"""Server entry point: ``python -m herstel.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from herstel.core.config.settings import get_settings
from herstel.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the recovery MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.herstel_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.herstel_allow_insecure_bind and not _is_loopback_host(settings.herstel_host):
        raise RuntimeError(
            "Refusing to bind to a non-loopback host without an auth layer. "
            "Set HERSTEL_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting Herstel Recovery server on %s:%d",
        settings.herstel_host,
        settings.herstel_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.herstel_host,
        port=settings.herstel_port,
    )


if __name__ == "__main__":
    run()
