"""Logging setup shared by the API process and scripts."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    root.setLevel(level.upper())

    # SQLAlchemy engine logging is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
