from workspace_runner.budget import Budget
from workspace_runner.compile import (
    Artifact,
    CompileOutput,
    Compiler,
    CompilerRegistry,
    PythonCompiler,
)
from workspace_runner.config import RunnerConfig
from workspace_runner.data import (
    Diagnostic,
    Diagnostics,
    DiagnosticSeverity,
    ExecutionResult,
    ExecutionStatus,
    FeatureBag,
    Workspace,
    WorkspaceKind,
)
from workspace_runner.errors import (
    BudgetExceededError,
    CompilerError,
    FeatureNotFoundError,
    SandboxError,
    WorkspaceRunnerError,
)
from workspace_runner.execution import WorkspaceRunner
from workspace_runner.logging import configure_logging, get_logger
from workspace_runner.packaging import (
    CreatesWorkspace,
    HasDirectory,
    Package,
    PackageDescriptor,
    PackageFinder,
    PackageRegistry,
    ProvidesCompiler,
    find_package,
)
from workspace_runner.sandbox import Sandbox, SandboxOutcome, SubprocessSandbox

__all__ = [
    # Main classes
    "WorkspaceRunner",
    "RunnerConfig",
    "Budget",
    # Data types
    "Workspace",
    "WorkspaceKind",
    "Diagnostic",
    "Diagnostics",
    "DiagnosticSeverity",
    "ExecutionResult",
    "ExecutionStatus",
    "FeatureBag",
    # Collaborators
    "Artifact",
    "CompileOutput",
    "Compiler",
    "CompilerRegistry",
    "PythonCompiler",
    "Sandbox",
    "SandboxOutcome",
    "SubprocessSandbox",
    # Package resolution
    "Package",
    "PackageDescriptor",
    "PackageFinder",
    "PackageRegistry",
    "CreatesWorkspace",
    "HasDirectory",
    "ProvidesCompiler",
    "find_package",
    # Errors
    "WorkspaceRunnerError",
    "CompilerError",
    "SandboxError",
    "BudgetExceededError",
    "FeatureNotFoundError",
    # Logging
    "configure_logging",
    "get_logger",
]
