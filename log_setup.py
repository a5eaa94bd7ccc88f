"""Logging bootstrap for the Streamlit app."""

from __future__ import annotations

import logging
import sys

from config import LOG_LEVEL


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
