"""Strong-typed data definitions for submitted workspaces."""

import hashlib
from enum import Enum
from pathlib import Path
from typing import Union

from pydantic import Field, StrictStr, model_validator

from .utils import FrozenModelWithDocstrings, NonEmptyString


class WorkspaceKind(str, Enum):
    """Entry-point conventions a workspace can follow.

    The kind tells the compiler how to interpret the source text.
    """

    PROGRAM = "program"
    """A full program that defines its own ``main`` entry point."""
    FRAGMENT = "fragment"
    """Bare statements. The compiler wraps them into an implicit ``main``."""


class Workspace(FrozenModelWithDocstrings):
    """The unit of submitted code: source text plus its entry-point convention.

    A workspace is constructed per request and never mutated; one orchestration
    pass consumes it.
    """

    source_text: StrictStr
    """The user-supplied Python code. May be empty."""
    kind: WorkspaceKind = Field(default=WorkspaceKind.PROGRAM)
    """Selects the entry-point convention."""
    name: NonEmptyString = Field(default="main.py")
    """The relative file name reported in diagnostics and tracebacks. The name should not
    contain parent directory traversal ("..")."""

    @model_validator(mode="after")
    def _validate_name(self) -> "Workspace":
        """Validate the workspace file name for security.

        Raises
        ------
        ValueError
            If the name is an absolute path or contains path traversal.
        """
        name_path = Path(self.name)
        if name_path.is_absolute():
            raise ValueError(f"Invalid workspace name (absolute path not allowed): {self.name}")
        if ".." in name_path.parts:
            raise ValueError(
                f"Invalid workspace name (parent directory traversal not allowed): {self.name}"
            )
        return self

    @classmethod
    def from_source(
        cls,
        source_text: str,
        kind: Union[WorkspaceKind, str] = WorkspaceKind.PROGRAM,
        name: str = "main.py",
    ) -> "Workspace":
        """Create a workspace from source text.

        Parameters
        ----------
        source_text : str
            The Python code.
        kind : Union[WorkspaceKind, str]
            The entry-point convention, either the enum member or its string value.
        name : str
            The file name used in diagnostics.

        Returns
        -------
        Workspace
            The new workspace.
        """
        return cls(source_text=source_text, kind=WorkspaceKind(kind), name=name)

    def hash(self) -> str:
        """Return a stable digest of the source text, kind and name."""
        h = hashlib.sha1()
        h.update(self.kind.value.encode())
        h.update(b"\0")
        h.update(self.name.encode())
        h.update(b"\0")
        h.update(self.source_text.encode())
        return h.hexdigest()
