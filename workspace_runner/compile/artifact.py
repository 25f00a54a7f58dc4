"""Executable artifact produced by a compiler."""

from __future__ import annotations

import marshal
from pathlib import Path
from types import CodeType
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from workspace_runner.data import WorkspaceKind


class ArtifactMetadata(BaseModel):
    """Metadata about a compiled artifact.

    This class stores information about how an artifact was built, including the compiler
    that produced it, the workspace it came from and compiler-specific data.
    """

    compiler: str
    """Name of the compiler that produced this artifact (e.g., 'python')."""
    kind: WorkspaceKind
    """Entry-point convention of the source workspace."""
    file_name: str
    """File name the code object was compiled under."""
    source_hash: str
    """Digest of the source workspace."""
    entry_point: Optional[str] = None
    """Statically located entry point (e.g., 'main' or 'Hello.main'), if the compiler found
    one. The sandbox still resolves the entry point at run time."""
    misc: Dict[str, Any] = Field(default_factory=dict)
    """Miscellaneous metadata. Contents vary by compiler."""


class Artifact:
    """A compiled workspace ready to be handed to a sandbox.

    The artifact holds a marshalled module code object. It is produced and consumed by
    the same interpreter version, which is the only version marshal data is valid for.
    """

    metadata: ArtifactMetadata
    """Metadata about the build process and source workspace."""

    _code: bytes
    """Marshalled module code object."""

    def __init__(self, code: bytes, metadata: ArtifactMetadata) -> None:
        """Constructor for the Artifact class.

        Parameters
        ----------
        code : bytes
            The marshalled module code object.
        metadata : ArtifactMetadata
            The metadata for the artifact.
        """
        self._code = code
        self.metadata = metadata

    @classmethod
    def from_code(cls, code: CodeType, metadata: ArtifactMetadata) -> "Artifact":
        return cls(marshal.dumps(code), metadata)

    @property
    def code(self) -> bytes:
        return self._code

    def load(self) -> CodeType:
        """Unmarshal the module code object."""
        return marshal.loads(self._code)

    def write_to(self, path: Path) -> Path:
        """Write the marshalled code to path, creating parent directories as needed.

        Returns
        -------
        Path
            The path written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self._code)
        return path

    def __repr__(self) -> str:
        return (
            f"Artifact(compiler={self.metadata.compiler}, kind={self.metadata.kind.value}, "
            f"entry_point={self.metadata.entry_point})"
        )
