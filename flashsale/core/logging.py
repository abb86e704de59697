import logging
import sys


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure standard library logging for the whole process.
    Everything under `flashsale.*` goes to stdout.
    """
    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
