import logging
import os


def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or os.getenv("CARPOOLMAP_LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
