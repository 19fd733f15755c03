"""Run the facilitator service: ``python -m railbridge``."""

import logging
import sys

import uvicorn

from .config import ConfigError, FacilitatorSettings
from .http import create_app
from .service import build_facilitator

logger = logging.getLogger("railbridge")


def main() -> None:
    try:
        settings = FacilitatorSettings.from_env()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    service = build_facilitator(settings)
    app = create_app(service.facilitator, service)

    supported_networks = [k.network for k in service.facilitator.get_supported().kinds]
    logger.info("RailBridge facilitator listening on http://0.0.0.0:%d", settings.port)
    logger.info("Supported networks: %s", ", ".join(supported_networks))
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
