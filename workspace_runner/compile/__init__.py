"""Compiler subsystem package.

This package turns workspaces into executable artifacts. It includes:
- Compiler: Abstract base class for compiler implementations
- CompileOutput: Artifact plus ordered diagnostics of one compilation
- CompilerRegistry: Central registry for dispatching and caching compilations
- Artifact: Marshalled code object handed to a sandbox
- ArtifactMetadata: Metadata about the compilation and source workspace

The typical workflow is:
1. Get the singleton registry: registry = CompilerRegistry.get_instance()
2. Compile a workspace: output = registry.compile(workspace)
3. Execute output.artifact in a sandbox when it is present
"""

from .artifact import Artifact, ArtifactMetadata
from .compiler import CompileOutput, Compiler, CompilerError
from .compilers import PythonCompiler
from .registry import CompilerRegistry

__all__ = [
    "Artifact",
    "ArtifactMetadata",
    "CompileOutput",
    "Compiler",
    "CompilerError",
    "CompilerRegistry",
    "PythonCompiler",
]
