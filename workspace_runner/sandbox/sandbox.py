"""Abstract base class and common types for sandboxes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from workspace_runner.budget import Budget
from workspace_runner.compile import Artifact
from workspace_runner.errors import SandboxError

__all__ = ["Sandbox", "SandboxOutcome", "SandboxError", "split_output"]


@dataclass
class SandboxOutcome:
    """What a sandbox reports for one execution.

    ``completed`` is False only when the budget expired or was cancelled first; such an
    outcome never carries an exception.
    """

    output_lines: List[str] = field(default_factory=list)
    exception: Optional[str] = None
    completed: bool = True

    def __post_init__(self):
        if not self.completed and self.exception is not None:
            raise ValueError("An interrupted execution cannot carry an exception")


def split_output(text: str, ran_to_completion: bool) -> List[str]:
    """Split captured stdout text into output lines.

    The text is split on newlines the way the stream delimits them, so a run that ends its
    last write with a newline yields a final empty entry. Runs cut short by an exception
    or by budget expiry drop that trailing entry and report only the lines written.

    Parameters
    ----------
    text : str
        Everything captured from the output channel.
    ran_to_completion : bool
        Whether the entry point returned normally.

    Returns
    -------
    List[str]
        The output lines; empty when nothing was written.
    """
    if not text:
        return []
    lines = text.replace("\r\n", "\n").split("\n")
    if not ran_to_completion and lines[-1] == "":
        lines.pop()
    return lines


class Sandbox(ABC):
    """Executes compiled artifacts and captures their output channel."""

    @abstractmethod
    async def execute(self, artifact: Artifact, budget: Budget) -> SandboxOutcome:
        """Execute an artifact's entry point.

        Parameters
        ----------
        artifact : Artifact
            The compiled workspace.
        budget : Budget
            Bounds the execution. Expiry ends the run with ``completed=False``.

        Returns
        -------
        SandboxOutcome
            Output lines, the exception summary if the entry point raised or ended its
            process, and whether the run completed within the budget.

        Raises
        ------
        SandboxError
            If the sandbox itself fails to run the artifact or to report its outcome.
        """
        ...

    async def close(self) -> None:
        """Release sandbox resources."""
        return None
