"""Error classes for workspace_runner.

Expected failures of user code (compile errors, uncaught exceptions, budget expiry,
missing packages) are reported as data on results. The classes below are raised only
for infrastructure failures and API misuse.
"""


class WorkspaceRunnerError(RuntimeError):
    """Base exception for workspace_runner."""


class CompilerError(WorkspaceRunnerError):
    """Raised when the compiler collaborator fails for reasons unrelated to the user's code."""


class SandboxError(WorkspaceRunnerError):
    """Raised when the sandbox collaborator fails to execute an artifact and report back."""


class BudgetExceededError(WorkspaceRunnerError):
    """Raised by Budget.check when the budget has expired or was cancelled.

    The orchestrator converts it into a TIMEOUT result; it never reaches callers of run().
    """

    def __init__(self, phase: str, elapsed: float) -> None:
        super().__init__(f"Budget exceeded during '{phase}' after {elapsed:.3f}s")
        self.phase = phase
        self.elapsed = elapsed


class FeatureNotFoundError(KeyError):
    """Raised by FeatureBag.require when no feature of the requested type is stored."""
