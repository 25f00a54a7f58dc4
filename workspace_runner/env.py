"""Environment variables read by workspace_runner."""

import os
import tempfile
from pathlib import Path

WORK_PATH_ENV = "WSR_WORK_PATH"
DEFAULT_TIMEOUT_ENV = "WSR_DEFAULT_TIMEOUT"
PYTHON_ENV = "WSR_PYTHON"
LOG_LEVEL_ENV = "WSR_LOG_LEVEL"
COMPILE_CACHE_SIZE_ENV = "WSR_COMPILE_CACHE_SIZE"


def get_work_path() -> Path:
    """Return the directory under which per-run sandbox directories are created.

    Reads ``WSR_WORK_PATH`` and falls back to ``<tmp>/workspace_runner``. Relative values
    are resolved against the current directory. The directory is created if it does not
    exist.
    """
    value = os.environ.get(WORK_PATH_ENV)
    path = Path(value) if value else Path(tempfile.gettempdir()) / "workspace_runner"
    path = path.resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path
