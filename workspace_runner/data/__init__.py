"""Data layer with strongly-typed models for workspace_runner."""

from .diagnostic import Diagnostic, Diagnostics, DiagnosticSeverity
from .features import FeatureBag
from .result import ExecutionResult, ExecutionStatus
from .workspace import Workspace, WorkspaceKind

__all__ = [
    # Workspace types
    "Workspace",
    "WorkspaceKind",
    # Diagnostic types
    "Diagnostic",
    "Diagnostics",
    "DiagnosticSeverity",
    # Result types
    "ExecutionResult",
    "ExecutionStatus",
    "FeatureBag",
]
