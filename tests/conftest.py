from pathlib import Path

import pytest

from workspace_runner.compile import CompilerRegistry


@pytest.fixture
def tmp_work_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Use isolated temporary directory for sandbox runs.

    This fixture sets WSR_WORK_PATH to a unique temporary directory for each test,
    so per-run directories of different tests never share a parent.
    """
    work_dir = tmp_path / "work"
    monkeypatch.setenv("WSR_WORK_PATH", str(work_dir))
    return work_dir


@pytest.fixture
def fresh_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset the CompilerRegistry singleton so each test builds its own."""
    monkeypatch.setattr(CompilerRegistry, "_instance", None)
