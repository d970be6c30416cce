"""Network Insight server entry point: ``python -m netinsight.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from netinsight.core.config.settings import get_settings
from netinsight.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the Network Insight MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.insight_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.insight_allow_insecure_bind and not _is_loopback_host(settings.insight_host):
        raise RuntimeError(
            "Refusing to bind Network Insight server to a non-loopback host without an auth layer. "
            "Set INSIGHT_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting Network Insight server on %s:%d",
        settings.insight_host,
        settings.insight_port,
    )

    mcp = create_app()
    try:
        mcp.run(
            transport="streamable-http",
            host=settings.insight_host,
            port=settings.insight_port,
        )
    finally:
        mcp.baseline.close()
        logger.info("Baseline store flushed")


if __name__ == "__main__":
    run()
