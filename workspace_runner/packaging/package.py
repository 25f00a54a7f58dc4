"""Packages, their descriptors and the capabilities they may implement."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

from pydantic import Field

from workspace_runner.compile import Compiler
from workspace_runner.data import Workspace, WorkspaceKind
from workspace_runner.data.utils import FrozenModelWithDocstrings, NonEmptyString


class PackageDescriptor(FrozenModelWithDocstrings):
    """Identifies a logical package by name and, optionally, version."""

    name: NonEmptyString
    """The package name (e.g., 'console')."""
    version: Optional[NonEmptyString] = None
    """Exact version to match. None matches any version."""
    metadata: Dict[str, str] = Field(default_factory=dict)
    """Free-form hints for finders. Finders that do not understand a key ignore it."""


class Package:
    """A concrete installed unit that finders can return.

    What a package can do is expressed by the capability protocols it satisfies, not by its
    name.
    """

    def __init__(self, name: str, version: Optional[str] = None) -> None:
        if not name:
            raise ValueError("Package name must not be empty")
        self._name = name
        self._version = version

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> Optional[str]:
        return self._version

    def matches(self, descriptor: PackageDescriptor) -> bool:
        """Whether this package satisfies the descriptor's name and version."""
        if descriptor.name != self._name:
            return False
        return descriptor.version is None or descriptor.version == self._version

    def __repr__(self) -> str:
        version = f"@{self._version}" if self._version else ""
        return f"{type(self).__name__}({self._name}{version})"


@runtime_checkable
class HasDirectory(Protocol):
    """Capability: the package is materialized in a directory."""

    @property
    def directory(self) -> Path: ...


@runtime_checkable
class CreatesWorkspace(Protocol):
    """Capability: the package turns source text into a workspace of its convention."""

    def create_workspace(self, source_text: str, name: str = "main.py") -> Workspace: ...


class WorkspacePackage(Package):
    """A package that creates workspaces of one kind (e.g. 'console' for programs)."""

    def __init__(
        self, name: str, kind: WorkspaceKind, version: Optional[str] = None
    ) -> None:
        super().__init__(name, version)
        self._kind = kind

    @property
    def kind(self) -> WorkspaceKind:
        return self._kind

    def create_workspace(self, source_text: str, name: str = "main.py") -> Workspace:
        return Workspace.from_source(source_text, kind=self._kind, name=name)


class DirectoryPackage(Package):
    """A package materialized on disk."""

    def __init__(self, name: str, directory: Path, version: Optional[str] = None) -> None:
        super().__init__(name, version)
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory


@runtime_checkable
class ProvidesCompiler(Protocol):
    """Capability: the package brings the compiler for its workspaces."""

    @property
    def compiler(self) -> Compiler: ...


class CompilerPackage(Package):
    """A package that contributes a compiler."""

    def __init__(self, name: str, compiler: Compiler, version: Optional[str] = None) -> None:
        super().__init__(name, version)
        self._compiler = compiler

    @property
    def compiler(self) -> Compiler:
        return self._compiler
