"""Logging setup shared by the pipeline scripts."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(log_file: Optional[Union[str, Path]] = None,
                      level: int = logging.INFO) -> logging.Logger:
    """
    Install the stdout handler (plus a file handler when log_file is given)
    on the root logger and return it.

    The library itself only creates module loggers; call this from scripts.
    """
    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT,
                        handlers=handlers, force=True)
    return logging.getLogger()
