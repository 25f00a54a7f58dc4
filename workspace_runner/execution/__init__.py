from .runner import WorkspaceRunner

__all__ = ["WorkspaceRunner"]
