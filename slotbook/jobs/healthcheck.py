"""
Health probe entry point for container and orchestrator checks.

    slotbook-health

Calls the running API's /api/v1/health on SERVER_ADDRESS and exits 0 on a
2xx answer, 1 when the server is unreachable or reports itself unhealthy.
"""

import sys
from typing import Optional

import httpx

from slotbook.core.config import get_settings
from slotbook.core.logging import get_logger, setup_logging

HEALTH_PATH = "/api/v1/health"


def check_health(
    address: str,
    timeout: float = 5.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> bool:
    logger = get_logger(__name__).bind(component="health")
    url = f"http://{address}{HEALTH_PATH}"

    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url)
    except httpx.HTTPError as exc:
        logger.error("health_server_unreachable", url=url, error=str(exc))
        return False

    if not response.is_success:
        logger.error("health_check_failed", url=url, status_code=response.status_code)
        return False
    return True


def main() -> None:
    setup_logging()
    if not check_health(get_settings().SERVER_ADDRESS):
        sys.exit(1)


if __name__ == "__main__":
    main()
