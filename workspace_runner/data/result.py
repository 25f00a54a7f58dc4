"""Strong-typed data definitions for execution results."""

from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from pydantic import ConfigDict, Field, model_validator

from .diagnostic import Diagnostics
from .features import FeatureBag
from .utils import BaseModelWithDocstrings

T = TypeVar("T")


class ExecutionStatus(str, Enum):
    """Status codes for execution results.

    Enumeration of all possible outcomes of running a workspace.
    """

    SUCCEEDED = "SUCCEEDED"
    """The workspace compiled and its entry point returned normally."""
    COMPILE_ERROR = "COMPILE_ERROR"
    """The compiler reported at least one error; nothing was executed."""
    RUNTIME_ERROR = "RUNTIME_ERROR"
    """An uncaught exception propagated out of the entry point."""
    TIMEOUT = "TIMEOUT"
    """The budget expired or was cancelled before the run completed."""


class ExecutionResult(BaseModelWithDocstrings):
    """The outcome of one orchestration pass over a workspace.

    Holds the captured output lines, the optional exception summary and a feature bag of
    optional typed artifacts. Results are immutable once constructed.
    """

    model_config = ConfigDict(
        use_attribute_docstrings=True, frozen=True, arbitrary_types_allowed=True
    )

    status: ExecutionStatus
    """The overall outcome of the run."""
    output: Tuple[str, ...] = Field(default=())
    """Captured output, one entry per line. A run that completes with output ending in a
    newline carries a final empty entry. For compile errors this holds the formatted
    diagnostics instead."""
    exception: Optional[str] = Field(default=None)
    """Type and message of the uncaught exception (present only for RUNTIME_ERROR)."""
    features: FeatureBag = Field(default_factory=FeatureBag)
    """Optional artifacts keyed by type."""

    @model_validator(mode="after")
    def _validate_status_exception(self) -> "ExecutionResult":
        """Validate that the exception summary is present exactly for runtime errors.

        Raises
        ------
        ValueError
            If exception presence doesn't match the status.
        """
        if self.status == ExecutionStatus.RUNTIME_ERROR:
            if self.exception is None:
                raise ValueError("exception must be present for RUNTIME_ERROR status")
        elif self.exception is not None:
            raise ValueError(f"exception must be absent for {self.status.value} status")
        return self

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.SUCCEEDED

    def get_feature(self, feature_type: Type[T]) -> Optional[T]:
        """Return the feature of the given type, or None if the result does not carry one."""
        return self.features.get(feature_type)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dict.

        Returns
        -------
        Dict[str, Any]
            Dict with status, succeeded, output, exception and, when present, the
            formatted diagnostics.
        """
        result: Dict[str, Any] = {
            "status": self.status.value,
            "succeeded": self.succeeded,
            "output": list(self.output),
            "exception": self.exception,
        }
        diagnostics = self.get_feature(Diagnostics)
        if diagnostics is not None:
            result["diagnostics"] = diagnostics.format()
        return result

    def __str__(self) -> str:
        lines = [f"ExecutionResult({self.status.value})"]
        lines.extend(f"  | {line}" for line in self.output)
        if self.exception is not None:
            lines.append(f"  ! {self.exception}")
        return "\n".join(lines)
