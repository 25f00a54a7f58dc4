import asyncio
import sys
from pathlib import Path

import pytest

from workspace_runner.budget import Budget
from workspace_runner.compile import Compiler, CompilerError, CompileOutput
from workspace_runner.config import RunnerConfig
from workspace_runner.data import (
    Diagnostics,
    DiagnosticSeverity,
    ExecutionStatus,
    Workspace,
)
from workspace_runner.errors import SandboxError
from workspace_runner.execution import WorkspaceRunner
from workspace_runner.logging import configure_logging, get_logger
from workspace_runner.sandbox import Sandbox, SandboxOutcome


@pytest.fixture(autouse=True)
def _use_tmp_work_dir(tmp_work_dir: Path) -> None:
    """Automatically use tmp_work_dir for all tests in this module."""


@pytest.fixture
def runner() -> WorkspaceRunner:
    return WorkspaceRunner(config=RunnerConfig(default_timeout_seconds=30.0))


def _fragment(source: str) -> Workspace:
    return Workspace.from_source(source, kind="fragment")


def _program(source: str) -> Workspace:
    return Workspace.from_source(source, kind="program")


def test_multiple_lines_of_output(runner):
    result = runner.run_sync(_fragment('print("1")\nprint("2")\nprint("3")'))
    assert result.status == ExecutionStatus.SUCCEEDED
    assert result.succeeded
    assert result.exception is None
    assert result.output == ("1", "2", "3", "")


def test_whitespace_is_preserved(runner):
    result = runner.run_sync(_fragment('print("  padded  ")\nprint()\nprint("\\tx")'))
    assert result.output == ("  padded  ", "", "\tx", "")


def test_exception_after_output(runner):
    source = 'print("1")\nprint("2")\nraise Exception("oops!")'
    result = runner.run_sync(_fragment(source))
    assert result.status == ExecutionStatus.RUNTIME_ERROR
    assert not result.succeeded
    assert result.output == ("1", "2")
    assert "Exception: oops!" in result.exception


def test_exception_on_first_line(runner):
    result = runner.run_sync(_fragment('raise ValueError("first")'))
    assert result.status == ExecutionStatus.RUNTIME_ERROR
    assert result.output == ()
    assert result.exception == "ValueError: first"


def test_compile_error_has_no_exception(runner):
    result = runner.run_sync(_fragment("\nprint(banana)"))
    assert result.status == ExecutionStatus.COMPILE_ERROR
    assert not result.succeeded
    assert result.exception is None
    assert any(
        line.endswith(
            "(2,7): error PY0103: The name 'banana' does not exist in the current context"
        )
        for line in result.output
    )
    assert result.get_feature(Diagnostics).has_errors()


@pytest.mark.parametrize(
    "source",
    [
        'def main():\n    print("hello")\n',
        'def main(args):\n    print("hello")\n',
        'async def main():\n    print("hello")\n',
        'class Hello:\n    @staticmethod\n    def main():\n        print("hello")\n',
        'class Hello:\n    @classmethod\n    def main(cls, args):\n        print("hello")\n',
    ],
)
def test_entry_point_shapes(runner, source):
    result = runner.run_sync(_program(source))
    assert result.succeeded, result.output
    assert result.output == ("hello", "")


def test_main_receives_empty_argument_list(runner):
    result = runner.run_sync(_program("def main(args):\n    print(repr(args))\n"))
    assert result.output == ("[]", "")


def test_main_guard_does_not_run_twice(runner):
    source = (
        'def main():\n    print("once")\n\nif __name__ == "__main__":\n    main()\n'
    )
    result = runner.run_sync(_program(source))
    assert result.output == ("once", "")


def test_fragment_matches_explicit_main(runner):
    body = 'for i in range(3):\n    print(i * "ab")\n'
    as_fragment = runner.run_sync(_fragment(body))
    indented = "".join(f"    {line}\n" for line in body.splitlines())
    as_program = runner.run_sync(_program(f"def main():\n{indented}"))
    assert as_fragment.succeeded and as_program.succeeded
    assert as_fragment.output == as_program.output == ("", "ab", "abab", "")


def test_warnings_reported_on_success(runner):
    result = runner.run_sync(_fragment("import os\nimport os\nprint(os.sep)"))
    assert result.status == ExecutionStatus.SUCCEEDED
    diagnostics = result.get_feature(Diagnostics)
    assert [d.severity for d in diagnostics] == [DiagnosticSeverity.WARNING]


def test_warnings_reported_on_failure(runner):
    result = runner.run_sync(_fragment("import os\nimport os\nprint(banana)"))
    assert result.status == ExecutionStatus.COMPILE_ERROR
    diagnostics = result.get_feature(Diagnostics)
    assert len(diagnostics.warnings()) == 1
    assert len(diagnostics.errors()) == 1
    assert list(result.output) == diagnostics.format()


def test_warnings_reported_when_compilation_fails(runner):
    result = runner.run_sync(_fragment("import os\nimport os\nprint(os.sep"))
    assert result.status == ExecutionStatus.COMPILE_ERROR
    diagnostics = result.get_feature(Diagnostics)
    assert len(diagnostics.warnings()) == 1
    [error] = diagnostics.errors()
    assert error.code == "PY1001"
    assert [d.code for d in diagnostics] == ["PY0105", "PY1001"]
    assert list(result.output) == diagnostics.format()


def test_fragment_helper_updates_fragment_variable(runner):
    source = (
        "count = 0\n"
        "def inc():\n"
        "    global count\n"
        "    count += 1\n"
        "inc()\n"
        "inc()\n"
        "print(count)\n"
    )
    result = runner.run_sync(_fragment(source))
    assert result.succeeded, result.output
    assert result.output == ("2", "")


def test_process_exit_keeps_output(runner):
    result = runner.run_sync(_fragment('import os\nprint("a")\nos._exit(3)'))
    assert result.status == ExecutionStatus.RUNTIME_ERROR
    assert result.output == ("a",)
    assert result.exception == "ProcessExit: worker exited with code 3"


def test_diagnostics_always_present(runner):
    result = runner.run_sync(_fragment('print("x")'))
    diagnostics = result.get_feature(Diagnostics)
    assert diagnostics is not None
    assert len(diagnostics) == 0
    assert result.features.frozen


def test_logging_does_not_reach_output(runner, capsys):
    root = configure_logging("DEBUG", stream=sys.stdout)
    try:
        source = (
            "import logging\n"
            "logging.getLogger('workspace_runner').warning('from inside')\n"
            'print("payload")\n'
        )
        result = runner.run_sync(_fragment(source))
    finally:
        from workspace_runner import logging as wsr_logging

        root.removeHandler(wsr_logging._handler)
        wsr_logging._handler = None
        root.setLevel("NOTSET")

    assert result.output == ("payload", "")
    captured = capsys.readouterr().out
    assert "Ran main.py (fragment): SUCCEEDED" in captured
    assert "payload" not in captured


def test_concurrent_runs_do_not_mix(runner):
    async def run_all():
        workspaces = [
            _fragment(f"import time\nfor _ in range(3):\n    print({n})\n    time.sleep(0.01)")
            for n in range(5)
        ]
        return await asyncio.gather(*(runner.run(ws) for ws in workspaces))

    results = asyncio.run(run_all())
    for n, result in enumerate(results):
        assert result.output == (str(n), str(n), str(n), "")


def test_infinite_loop_times_out(runner):
    budget = Budget(1.5)
    result = runner.run_sync(_fragment('print("before")\nwhile True:\n    pass'), budget)
    assert result.status == ExecutionStatus.TIMEOUT
    assert not result.succeeded
    assert result.exception is None
    assert result.output == ("before",)


def test_cancelled_budget_stops_run(runner):
    async def run_and_cancel():
        budget = Budget()
        asyncio.get_running_loop().call_later(0.5, budget.cancel)
        return await runner.run(_fragment("while True:\n    pass"), budget)

    result = asyncio.run(run_and_cancel())
    assert result.status == ExecutionStatus.TIMEOUT


def test_exhausted_budget_before_compile(runner):
    result = runner.run_sync(_fragment('print("x")'), Budget(0))
    assert result.status == ExecutionStatus.TIMEOUT
    assert result.output == ()
    assert result.get_feature(Diagnostics) is not None


def test_budget_records_phases(runner):
    budget = Budget(30)
    runner.run_sync(_fragment('print("x")'), budget)
    assert [name for name, _ in budget.entries] == ["compile", "execute"]


def test_none_workspace_rejected(runner):
    with pytest.raises(ValueError):
        runner.run_sync(None)


class _FailingCompiler(Compiler):
    def __init__(self) -> None:
        super().__init__("failing")

    @staticmethod
    def is_available() -> bool:
        return True

    def can_compile(self, workspace: Workspace) -> bool:
        return True

    def compile(self, workspace: Workspace) -> CompileOutput:
        raise CompilerError("compiler crashed")


class _FailingSandbox(Sandbox):
    async def execute(self, artifact, budget) -> SandboxOutcome:
        raise SandboxError("sandbox crashed")


class _RecordingSandbox(Sandbox):
    def __init__(self) -> None:
        self.calls = 0

    async def execute(self, artifact, budget) -> SandboxOutcome:
        self.calls += 1
        return SandboxOutcome(output_lines=["fake", ""])


def test_compiler_failure_propagates():
    runner = WorkspaceRunner(compiler=_FailingCompiler(), sandbox=_RecordingSandbox())
    with pytest.raises(CompilerError, match="compiler crashed"):
        runner.run_sync(_fragment('print("x")'))


def test_sandbox_failure_propagates():
    runner = WorkspaceRunner(sandbox=_FailingSandbox())
    with pytest.raises(SandboxError, match="sandbox crashed"):
        runner.run_sync(_fragment('print("x")'))


def test_sandbox_not_called_on_compile_error():
    sandbox = _RecordingSandbox()
    runner = WorkspaceRunner(sandbox=sandbox)
    result = runner.run_sync(_fragment("print(banana)"))
    assert result.status == ExecutionStatus.COMPILE_ERROR
    assert sandbox.calls == 0


def test_uses_injected_sandbox():
    sandbox = _RecordingSandbox()
    result = WorkspaceRunner(sandbox=sandbox).run_sync(_fragment('print("x")'))
    assert result.output == ("fake", "")
    assert sandbox.calls == 1
    assert get_logger("WorkspaceRunner").name == "workspace_runner.WorkspaceRunner"


if __name__ == "__main__":
    pytest.main(sys.argv)
