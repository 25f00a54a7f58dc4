"""Strong-typed data definitions for compiler diagnostics."""

from enum import Enum
from typing import Iterator, List, Sequence, Tuple

from pydantic import ConfigDict, Field, RootModel

from .utils import FrozenModelWithDocstrings, NonEmptyString


class DiagnosticSeverity(str, Enum):
    """Severity of a compiler message."""

    INFO = "INFO"
    """Informational message."""
    WARNING = "WARNING"
    """Suspicious code that still compiles."""
    ERROR = "ERROR"
    """Code that cannot be compiled. Any error prevents execution."""


class Diagnostic(FrozenModelWithDocstrings):
    """One compiler message attached to a position in the user's source text."""

    severity: DiagnosticSeverity
    """How serious the message is."""
    line: int = Field(ge=1)
    """1-based line in the user's source text."""
    column: int = Field(ge=1)
    """1-based column in the user's source text."""
    message: str
    """Human-readable text of the message."""
    code: NonEmptyString
    """Stable identifier of the message kind (e.g., 'PY0103')."""
    file_name: NonEmptyString = Field(default="main.py")
    """Name of the file the position refers to."""

    def format(self) -> str:
        """Render the message the way the compiler prints it.

        Returns
        -------
        str
            A line such as ``main.py(2,7): error PY0103: The name 'banana' does not exist
            in the current context``.
        """
        return (
            f"{self.file_name}({self.line},{self.column}): "
            f"{self.severity.value.lower()} {self.code}: {self.message}"
        )

    def __str__(self) -> str:
        return self.format()


class Diagnostics(RootModel[Tuple[Diagnostic, ...]]):
    """The ordered diagnostics of one compilation.

    Order is compiler-emission order and is never re-sorted. This is the feature type
    the orchestrator stores on every execution result.
    """

    model_config = ConfigDict(frozen=True)

    root: Tuple[Diagnostic, ...] = ()

    @classmethod
    def of(cls, diagnostics: Sequence[Diagnostic]) -> "Diagnostics":
        return cls(tuple(diagnostics))

    def __iter__(self) -> Iterator[Diagnostic]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, index: int) -> Diagnostic:
        return self.root[index]

    def errors(self) -> List[Diagnostic]:
        return [d for d in self.root if d.severity == DiagnosticSeverity.ERROR]

    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.root if d.severity == DiagnosticSeverity.WARNING]

    def has_errors(self) -> bool:
        return any(d.severity == DiagnosticSeverity.ERROR for d in self.root)

    def format(self) -> List[str]:
        """Return the formatted text line of every diagnostic, in emission order."""
        return [d.format() for d in self.root]
