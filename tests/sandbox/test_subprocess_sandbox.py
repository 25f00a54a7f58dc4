import asyncio
import signal
import sys
from pathlib import Path

import pytest

from workspace_runner.budget import Budget
from workspace_runner.compile import Artifact, PythonCompiler
from workspace_runner.config import RunnerConfig
from workspace_runner.data import Workspace
from workspace_runner.sandbox import SandboxError, SubprocessSandbox
from workspace_runner.sandbox import subprocess_sandbox as sandbox_module


@pytest.fixture(autouse=True)
def _use_tmp_work_dir(tmp_work_dir: Path) -> None:
    """Automatically use tmp_work_dir for all tests in this module."""


def _artifact(source: str, kind: str = "fragment") -> Artifact:
    out = PythonCompiler().compile(Workspace.from_source(source, kind=kind))
    assert out.succeeded, out.diagnostics.format()
    return out.artifact


def _execute(artifact: Artifact, budget: Budget = None, config: RunnerConfig = None):
    sandbox = SubprocessSandbox(config)
    return asyncio.run(sandbox.execute(artifact, budget or Budget(30)))


def test_captures_output_lines():
    outcome = _execute(_artifact('print("a")\nprint("b")'))
    assert outcome.completed
    assert outcome.exception is None
    assert outcome.output_lines == ["a", "b", ""]


def test_no_output():
    outcome = _execute(_artifact("x = 1"))
    assert outcome.completed
    assert outcome.output_lines == []


def test_exception_keeps_prior_output():
    outcome = _execute(_artifact('print("1")\nprint("2")\nraise Exception("oops!")'))
    assert outcome.completed
    assert outcome.output_lines == ["1", "2"]
    assert outcome.exception == "Exception: oops!"


def test_system_exit_is_completion():
    outcome = _execute(_artifact('import sys\nprint("x")\nsys.exit(3)'))
    assert outcome.completed
    assert outcome.exception is None
    assert outcome.output_lines == ["x", ""]


def test_stdin_is_closed():
    outcome = _execute(_artifact("input()"))
    assert outcome.exception is not None
    assert outcome.exception.startswith("EOFError")


def test_entry_point_rebound_at_run_time():
    outcome = _execute(_artifact("def main():\n    pass\nmain = None\n", kind="program"))
    assert outcome.exception is not None
    assert "EntryPointNotFoundError" in outcome.exception


def test_stderr_is_not_output():
    outcome = _execute(_artifact('import sys\nsys.stderr.write("noise\\n")\nprint("ok")'))
    assert outcome.output_lines == ["ok", ""]


def test_budget_expiry_keeps_partial_output():
    source = 'import time\nprint("started")\nwhile True:\n    time.sleep(0.01)'
    budget = Budget(2.0)
    outcome = _execute(_artifact(source), budget=budget)
    assert not outcome.completed
    assert outcome.exception is None
    assert outcome.output_lines == ["started"]
    assert budget.elapsed < 10


def test_cancelled_budget_stops_run():
    budget = Budget()
    budget.cancel()
    outcome = _execute(_artifact("while True:\n    pass"), budget=budget)
    assert not outcome.completed


def test_run_directory_removed(tmp_work_dir: Path):
    _execute(_artifact('print("x")'))
    assert list(tmp_work_dir.iterdir()) == []


def test_process_exit_by_user_code_is_an_exception():
    outcome = _execute(_artifact('import os\nprint("a")\nos._exit(3)'))
    assert outcome.completed
    assert outcome.output_lines == ["a"]
    assert outcome.exception == "ProcessExit: worker exited with code 3"


def test_process_killed_by_signal_is_an_exception():
    source = 'import os, signal\nprint("a")\nos.kill(os.getpid(), signal.SIGKILL)'
    outcome = _execute(_artifact(source))
    assert outcome.output_lines == ["a"]
    expected = f"ProcessExit: worker was terminated by signal {int(signal.SIGKILL)}"
    assert outcome.exception == expected


def test_relative_work_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WSR_WORK_PATH", "relwork")
    outcome = _execute(_artifact('print("hi")'))
    assert outcome.exception is None
    assert outcome.output_lines == ["hi", ""]
    assert list((tmp_path / "relwork").iterdir()) == []


def test_unloadable_artifact_raises():
    artifact = _artifact('print("x")')
    broken = Artifact(b"not marshal data", artifact.metadata)
    with pytest.raises(SandboxError, match="before running the artifact"):
        _execute(broken)


def test_missing_report_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    fake_worker = tmp_path / "fake_worker.py"
    fake_worker.write_text("import sys\nsys.stderr.write('worker crashed')\nsys.exit(1)\n")
    monkeypatch.setattr(sandbox_module, "WORKER_PATH", fake_worker)

    with pytest.raises(SandboxError, match="worker crashed"):
        _execute(_artifact('print("x")'))


def test_unstartable_interpreter_raises(tmp_path: Path):
    config = RunnerConfig(python_executable=str(tmp_path / "no-such-python"))
    with pytest.raises(SandboxError):
        _execute(_artifact('print("x")'), config=config)


if __name__ == "__main__":
    pytest.main(sys.argv)
