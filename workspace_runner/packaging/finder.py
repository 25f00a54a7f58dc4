"""Asynchronous, capability-based package resolution."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Type, TypeVar

from workspace_runner.budget import Budget
from workspace_runner.data import WorkspaceKind
from workspace_runner.logging import get_logger

from .package import Package, PackageDescriptor, WorkspacePackage

T = TypeVar("T")

logger = get_logger("PackageFinder")


class PackageFinder(ABC):
    """Resolves a package descriptor to an installed package implementing a capability.

    Resolution may involve I/O, so it is asynchronous. "Not found" is a normal, completed
    result: ``find`` returns None and never raises for it. Running out of budget is also
    reported as None.
    """

    async def find(
        self,
        capability: Type[T],
        descriptor: PackageDescriptor,
        budget: Optional[Budget] = None,
    ) -> Optional[T]:
        """Find a package that implements a capability.

        Parameters
        ----------
        capability : Type[T]
            The capability type the returned package must be an instance of.
        descriptor : PackageDescriptor
            Identifies the wanted package.
        budget : Optional[Budget]
            Bounds the resolution. Expiry or cancellation yields None.

        Returns
        -------
        Optional[T]
            The package, or None if none was found in time.
        """
        if budget is None:
            return await self._find(capability, descriptor)
        if budget.is_exceeded:
            logger.warning("Budget exhausted before resolving %s", descriptor.name)
            return None
        try:
            return await asyncio.wait_for(
                self._find(capability, descriptor), timeout=budget.remaining
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Resolving %s as %s ran out of budget after %.3fs",
                descriptor.name,
                capability.__name__,
                budget.elapsed,
            )
            return None

    @abstractmethod
    async def _find(self, capability: Type[T], descriptor: PackageDescriptor) -> Optional[T]:
        """Resolve without a budget. Implementations return None when nothing matches."""
        ...

    @staticmethod
    def from_instance(package: Package) -> "PackageFinder":
        """Create a finder that always answers with one already-known package."""
        return InstancePackageFinder(package)


class InstancePackageFinder(PackageFinder):
    """Identity finder wrapping one package instance.

    The descriptor is ignored; the only question asked is whether the wrapped package
    implements the requested capability.
    """

    def __init__(self, package: Package) -> None:
        if package is None:
            raise ValueError("package must not be None")
        self._package = package

    @property
    def package(self) -> Package:
        return self._package

    async def _find(self, capability: Type[T], descriptor: PackageDescriptor) -> Optional[T]:
        if isinstance(self._package, capability):
            return self._package
        return None


class PackageRegistry(PackageFinder):
    """In-memory finder keyed by package name.

    Usage:
        registry = PackageRegistry()
        registry.register(WorkspacePackage("console", WorkspaceKind.PROGRAM))

        package = await registry.find(CreatesWorkspace, PackageDescriptor(name="console"))

        # Or use factory with the built-in workspace packages
        registry = PackageRegistry.create_default()
    """

    def __init__(self) -> None:
        self._packages: Dict[str, List[Package]] = {}

    def register(self, package: Package) -> "PackageRegistry":
        """Register a package. Packages with the same name are tried in registration order.

        Returns
        -------
        PackageRegistry
            Self, for method chaining.
        """
        self._packages.setdefault(package.name, []).append(package)
        return self

    def list_packages(self) -> List[str]:
        return list(self._packages.keys())

    async def _find(self, capability: Type[T], descriptor: PackageDescriptor) -> Optional[T]:
        for package in self._packages.get(descriptor.name, []):
            if package.matches(descriptor) and isinstance(package, capability):
                return package
        return None

    @classmethod
    def create_default(cls) -> "PackageRegistry":
        """Create a registry with the built-in workspace packages.

        - console: full programs with a ``main`` entry point
        - script: statement fragments wrapped into an implicit ``main``
        """
        registry = cls()
        registry.register(WorkspacePackage("console", WorkspaceKind.PROGRAM))
        registry.register(WorkspacePackage("script", WorkspaceKind.FRAGMENT))
        return registry


class CompositePackageFinder(PackageFinder):
    """Tries several finders in order and returns the first package found."""

    def __init__(self, finders: Iterable[PackageFinder]) -> None:
        self._finders = list(finders)
        if not self._finders:
            raise ValueError("CompositePackageFinder requires at least one finder")

    async def _find(self, capability: Type[T], descriptor: PackageDescriptor) -> Optional[T]:
        for finder in self._finders:
            package = await finder.find(capability, descriptor)
            if package is not None:
                return package
        return None


async def find_package(
    finder: PackageFinder,
    capability: Type[T],
    name: str,
    budget: Optional[Budget] = None,
) -> Optional[T]:
    """Find a package by name alone, forwarding the budget to the finder."""
    return await finder.find(capability, PackageDescriptor(name=name), budget)
