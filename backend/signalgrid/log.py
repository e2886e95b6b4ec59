import logging


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str = "signalgrid", level: int = logging.INFO) -> logging.Logger:
    """
    Sets up a logger with a standard format.

    Module loggers (signalgrid.control.*, signalgrid.emergency.*, ...)
    propagate to this one, so configuring the package root is enough.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(level)
    return logger
