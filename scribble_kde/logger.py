"""
Logger factory shared by every module of the package.
"""

import logging
import os

from scribble_kde.cste import GeneralPath

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Return a logger writing to the console and to GeneralPath.LOG_PATH.

    Handlers are attached only the first time a given name is requested.

    Args:
        name: Logger name, also used as the log file stem
        level: Logging level

    Returns:
        Configured logger
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    log.addHandler(console)

    try:
        os.makedirs(GeneralPath.LOG_PATH, exist_ok=True)
        stem = os.path.splitext(name)[0]
        file_handler = logging.FileHandler(
            os.path.join(GeneralPath.LOG_PATH, f"{stem}.log")
        )
    except OSError as e:
        log.warning(f"File logging disabled for {name}: {e}")
    else:
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)

    return log
