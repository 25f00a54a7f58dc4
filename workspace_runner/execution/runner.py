"""Execution orchestrator: compile, execute, capture and assemble one workspace run."""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from workspace_runner.budget import Budget
from workspace_runner.compile import CompileOutput, Compiler, CompilerRegistry
from workspace_runner.config import RunnerConfig
from workspace_runner.data import (
    Diagnostics,
    ExecutionResult,
    ExecutionStatus,
    FeatureBag,
    Workspace,
)
from workspace_runner.errors import BudgetExceededError
from workspace_runner.logging import get_logger
from workspace_runner.sandbox import Sandbox, SubprocessSandbox

LOGGER = get_logger("WorkspaceRunner")


class WorkspaceRunner:
    """Drives one workspace from source text to an ExecutionResult.

    Each call to run() is independent: the runner keeps no per-run state, so concurrent
    runs of different workspaces are safe. Expected failures (compile errors, uncaught
    exceptions, budget expiry) come back as result data. Failures of the compiler or
    sandbox themselves propagate to the caller.

    Usage:
        runner = WorkspaceRunner()
        result = await runner.run(Workspace.from_source('print("hi")', kind="fragment"))
        result.output  # ("hi", "")
    """

    def __init__(
        self,
        compiler: Optional[Compiler] = None,
        sandbox: Optional[Sandbox] = None,
        config: Optional[RunnerConfig] = None,
    ) -> None:
        """Initialize the runner with its collaborators.

        Parameters
        ----------
        compiler : Optional[Compiler]
            Turns workspaces into artifacts. Defaults to the shared CompilerRegistry.
        sandbox : Optional[Sandbox]
            Executes artifacts. Defaults to a SubprocessSandbox using config.
        config : Optional[RunnerConfig]
            Supplies the default timeout and compile cache size. Defaults to RunnerConfig().
        """
        self._config = config or RunnerConfig()
        self._compiler = compiler or CompilerRegistry.get_instance(self._config)
        self._sandbox = sandbox or SubprocessSandbox(self._config)

    @property
    def config(self) -> RunnerConfig:
        return self._config

    async def run(self, workspace: Workspace, budget: Optional[Budget] = None) -> ExecutionResult:
        """Compile and execute a workspace within a budget.

        Parameters
        ----------
        workspace : Workspace
            The code to run.
        budget : Optional[Budget]
            Bounds the whole run. When None, a budget with the configured default timeout
            is used.

        Returns
        -------
        ExecutionResult
            The outcome. The Diagnostics feature is always present.

        Raises
        ------
        ValueError
            If workspace is None.
        CompilerError, SandboxError
            If a collaborator fails for reasons unrelated to the user's code.
        """
        if workspace is None:
            raise ValueError("workspace must not be None")
        if budget is None:
            budget = Budget.default(self._config)

        diagnostics = Diagnostics()
        try:
            budget.check("compile")
            compiled = await self._compile(workspace, budget)
            budget.record_entry("compile")
            diagnostics = compiled.diagnostics

            if compiled.artifact is None:
                return self._finish(
                    workspace,
                    budget,
                    ExecutionStatus.COMPILE_ERROR,
                    diagnostics.format(),
                    None,
                    diagnostics,
                )

            budget.check("execute")
            outcome = await self._sandbox.execute(compiled.artifact, budget)
            budget.record_entry("execute")
        except BudgetExceededError as e:
            LOGGER.debug("%s", e)
            return self._finish(workspace, budget, ExecutionStatus.TIMEOUT, (), None, diagnostics)

        if not outcome.completed:
            status = ExecutionStatus.TIMEOUT
        elif outcome.exception is not None:
            status = ExecutionStatus.RUNTIME_ERROR
        else:
            status = ExecutionStatus.SUCCEEDED
        return self._finish(
            workspace, budget, status, outcome.output_lines, outcome.exception, diagnostics
        )

    def run_sync(self, workspace: Workspace, budget: Optional[Budget] = None) -> ExecutionResult:
        """Run a workspace from synchronous code. Must not be called from a running loop."""
        return asyncio.run(self.run(workspace, budget))

    async def _compile(self, workspace: Workspace, budget: Budget) -> CompileOutput:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._compiler.compile, workspace), timeout=budget.remaining
            )
        except asyncio.TimeoutError:
            raise BudgetExceededError("compile", budget.elapsed) from None

    @staticmethod
    def _finish(
        workspace: Workspace,
        budget: Budget,
        status: ExecutionStatus,
        output: Sequence[str],
        exception: Optional[str],
        diagnostics: Diagnostics,
    ) -> ExecutionResult:
        features = FeatureBag()
        features.set(diagnostics)
        result = ExecutionResult(
            status=status,
            output=tuple(output),
            exception=exception,
            features=features.freeze(),
        )
        LOGGER.info(
            "Ran %s (%s): %s in %.3fs",
            workspace.name,
            workspace.kind.value,
            status.value,
            budget.elapsed,
        )
        LOGGER.debug("Budget entries: %s", budget.entries)
        return result
