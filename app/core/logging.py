"""
Logging setup shared by the API process and the maintenance command.
"""
import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once with a consistent line format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


__all__ = ["configure_logging"]
