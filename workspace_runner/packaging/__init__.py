"""Capability-based package resolution.

Finders map a PackageDescriptor and a capability type to an installed package that
implements the capability:
- PackageFinder: abstract, budget-aware base
- InstancePackageFinder: identity finder over one known package (PackageFinder.from_instance)
- PackageRegistry: in-memory finder keyed by name
- CompositePackageFinder: chains finders, first match wins
"""

from .finder import (
    CompositePackageFinder,
    InstancePackageFinder,
    PackageFinder,
    PackageRegistry,
    find_package,
)
from .package import (
    CompilerPackage,
    CreatesWorkspace,
    DirectoryPackage,
    HasDirectory,
    Package,
    PackageDescriptor,
    ProvidesCompiler,
    WorkspacePackage,
)

__all__ = [
    "CompilerPackage",
    "CompositePackageFinder",
    "CreatesWorkspace",
    "DirectoryPackage",
    "HasDirectory",
    "InstancePackageFinder",
    "Package",
    "PackageDescriptor",
    "PackageFinder",
    "PackageRegistry",
    "ProvidesCompiler",
    "WorkspacePackage",
    "find_package",
]
