"""Run the Aura Wellness server: ``aura-wellness`` or ``python -m aura.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from aura.core.config.settings import Settings, get_settings
from aura.core.server.app import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind_address(settings: Settings) -> None:
    """Refuse to expose wellness data beyond this machine unless explicitly allowed.

    Raises:
        RuntimeError: If ``aura_host`` is not loopback and the override is off.
    """
    if _is_loopback_host(settings.aura_host):
        return
    if not settings.aura_allow_insecure_bind:
        raise RuntimeError(
            f"Refusing to serve wellness data on non-loopback host {settings.aura_host!r}: "
            "the server has no auth layer. Set AURA_ALLOW_INSECURE_BIND=true to override."
        )
    logger.warning(
        "Serving on non-loopback host %s without authentication (AURA_ALLOW_INSECURE_BIND)",
        settings.aura_host,
    )


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.aura_log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    check_bind_address(settings)

    if not settings.encryption_key:
        logger.warning("ENCRYPTION_KEY is not set; only health_check will be available")
    logger.info(
        "Pattern analysis: %d-day window, %d point minimum, time zone %s",
        settings.history_window_days,
        settings.min_data_points,
        settings.analysis_timezone,
    )
    logger.info("Aura Wellness listening on %s:%d", settings.aura_host, settings.aura_port)

    create_app().run(
        transport="streamable-http",
        host=settings.aura_host,
        port=settings.aura_port,
    )


if __name__ == "__main__":
    run()
