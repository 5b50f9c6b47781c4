import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Route iotail log records to stderr (or ``stream``).
    verbose=True shows the per-iteration DEBUG state dumps; otherwise only
    warnings, so a piped ``iotail`` prints nothing but lines on stdout.
    """
    log = logging.getLogger("iotail")
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    log.handlers = [handler]
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    log.propagate = False
    return log
