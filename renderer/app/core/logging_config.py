import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Route service logs to stderr.

    Idempotent: an existing handler installed by the ASGI server or by a
    previous call is left in place and only the level is updated.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            stream=sys.stderr,
            format=LOG_FORMAT,
        )
    logging.getLogger("renderer").setLevel(level)
