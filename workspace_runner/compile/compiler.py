"""Abstract base class for workspace compilers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from workspace_runner.data import Diagnostics, Workspace
from workspace_runner.errors import CompilerError

from .artifact import Artifact

__all__ = ["Compiler", "CompileOutput", "CompilerError"]


@dataclass
class CompileOutput:
    """What a compiler reports for one workspace.

    ``artifact`` is None whenever the diagnostics contain an error.
    """

    artifact: Optional[Artifact]
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def __post_init__(self):
        if self.artifact is not None and self.diagnostics.has_errors():
            raise ValueError("CompileOutput cannot carry an artifact alongside errors")

    @property
    def succeeded(self) -> bool:
        return self.artifact is not None


class Compiler(ABC):
    """Abstract base class for turning workspaces into executable artifacts.

    A Compiler transforms the source text of a Workspace, interpreted according to its
    kind, into an Artifact plus the ordered diagnostics it emitted. Problems in the
    user's code are reported as diagnostics. Subclasses raise CompilerError only when
    the compiler itself fails.
    """

    def __init__(self, name: str) -> None:
        """Initialize the compiler.

        Parameters
        ----------
        name : str
            The name recorded in the metadata of produced artifacts. This should be
            unique for each compiler type.
        """
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @staticmethod
    @abstractmethod
    def is_available() -> bool:
        """Check if this compiler is available in the current environment.

        Returns
        -------
        bool
            True if the compiler can be used, False otherwise.
        """
        ...

    @abstractmethod
    def can_compile(self, workspace: Workspace) -> bool:
        """Check if this compiler can handle the given workspace.

        Parameters
        ----------
        workspace : Workspace
            The workspace to check.

        Returns
        -------
        bool
            True if this compiler can compile the workspace, False otherwise.
        """
        ...

    @abstractmethod
    def compile(self, workspace: Workspace) -> CompileOutput:
        """Compile a workspace.

        Parameters
        ----------
        workspace : Workspace
            The workspace to compile.

        Returns
        -------
        CompileOutput
            The artifact (absent on errors) and the diagnostics in emission order.

        Raises
        ------
        CompilerError
            If the compiler fails for reasons unrelated to the user's code.
        """
        ...
