"""Logging configuration; call setup_logging() once at startup."""

import logging
import sys


def setup_logging(level="INFO"):
    root = logging.getLogger()
    # Repeated calls (e.g. Streamlit reruns) must not stack handlers
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    ))
    root.addHandler(handler)

    logging.getLogger("streamlit").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
