"""Logger helpers for workspace_runner.

All loggers live under the ``workspace_runner`` namespace. Log records go to the
handlers of the process-wide logging tree and never to the output channel of an
executed workspace.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO, Union

ROOT_LOGGER_NAME = "workspace_runner"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger in the workspace_runner namespace.

    Parameters
    ----------
    name : Optional[str]
        Suffix of the logger name (e.g. "Sandbox"). If None, the package root logger is
        returned.

    Returns
    -------
    logging.Logger
        The logger ``workspace_runner.<name>``.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    level: Union[int, str] = "INFO", stream: Optional[TextIO] = None
) -> logging.Logger:
    """Install a stream handler on the package root logger.

    Calling this more than once replaces the previously installed handler instead of
    adding another one.

    Parameters
    ----------
    level : Union[int, str]
        Logging level name or number.
    stream : Optional[TextIO]
        Destination stream, stderr by default.

    Returns
    -------
    logging.Logger
        The configured package root logger.
    """
    global _handler

    root = get_logger()
    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)

    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_handler)
    return root
