# localpress/logger.py
import logging

from localpress.config import LOG_LEVEL


class CustomFormatter(logging.Formatter):
    """Colour the level prefix of each record for terminal output."""

    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    fmt = "[%(levelname)s] %(asctime)s %(name)s - %(message)s"

    FORMATS = {
        logging.DEBUG: dark_grey + fmt + reset,
        logging.INFO: grey + fmt + reset,
        logging.WARNING: yellow + fmt + reset,
        logging.ERROR: red + fmt + reset,
        logging.CRITICAL: bold_red + fmt + reset,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.fmt)
        return logging.Formatter(log_fmt).format(record)


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """
    Attach a console handler to the "localpress" logger.

    Safe to call more than once; the handler is only added the first time.
    """
    log = logging.getLogger("localpress")
    log.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not any(getattr(h, "_localpress", False) for h in log.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(CustomFormatter())
        ch._localpress = True
        log.addHandler(ch)
    return log


def log_event(logger: logging.Logger, level: int, event: str, **fields) -> None:
    parts = [f"event={event}"]
    for key, value in fields.items():
        parts.append(f"{key}={value}")
    logger.log(level, " ".join(parts))
