"""Process-wide logging setup."""
from __future__ import annotations
import logging

from eligibility.core import config

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or config.LOG_LEVEL).upper(), format=_FORMAT)
