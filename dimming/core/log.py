import logging
from logging.handlers import RotatingFileHandler
from typing import Optional


def configure_logging(level: str = "INFO", log_file: Optional[str] = "dimming.log") -> None:
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s - %(message)s"
    )

    # Reconfiguring (e.g. app restarted in the same process) must not stack handlers
    for h in list(logger.handlers):
        if getattr(h, "_dimming_handler", False):
            logger.removeHandler(h)
            h.close()

    # Console
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch._dimming_handler = True
    logger.addHandler(ch)

    # Rotating file (the service runs for the device lifetime)
    if log_file:
        fh = RotatingFileHandler(
            log_file, maxBytes=2_000_000, backupCount=5
        )
        fh.setFormatter(fmt)
        fh._dimming_handler = True
        logger.addHandler(fh)

    # Silence noisy library logging
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
