from __future__ import annotations

import logging


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # matplotlib's font manager is chatty at DEBUG.
    logging.getLogger("matplotlib").setLevel(max(logging.INFO, logging.getLogger().level))
