"""Compiler registry for dispatching and caching compilations."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import TYPE_CHECKING, ClassVar, List, Optional, Type

from workspace_runner.data import Workspace

from .compiler import CompileOutput, Compiler, CompilerError
from .compilers import PythonCompiler

if TYPE_CHECKING:
    from workspace_runner.config import RunnerConfig

DEFAULT_CACHE_SIZE = 256

_COMPILER_PRIORITY: List[Type[Compiler]] = [PythonCompiler]
"""Compiler types in priority order for automatic selection."""


class CompilerRegistry(Compiler):
    """Central registry for managing and dispatching compilers.

    The CompilerRegistry maintains a list of available compilers and selects the first one
    that can compile each workspace. It caches compile outputs by workspace digest, so
    submitting the same workspace twice compiles it once. The cache keeps at most
    ``cache_size`` outputs and evicts the least recently used one first.

    The registry is itself a Compiler and can be handed to a WorkspaceRunner directly. Use
    get_instance() to obtain the shared registry.
    """

    _instance: ClassVar["CompilerRegistry" | None] = None
    """Singleton instance of the CompilerRegistry."""

    _compilers: List[Compiler]
    """List of available compilers in priority order."""

    _cache: "OrderedDict[str, CompileOutput]"
    """Cache mapping workspace hashes to compile outputs, least recently used first."""

    def __init__(self, compilers: List[Compiler], cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        """Initialize the registry with a list of compilers.

        Parameters
        ----------
        compilers : List[Compiler]
            List of compiler instances to use. Must contain at least one compiler.
        cache_size : int
            Maximum number of cached compile outputs. 0 disables caching.

        Raises
        ------
        ValueError
            If the compilers list is empty or cache_size is negative.
        """
        if len(compilers) == 0:
            raise ValueError("CompilerRegistry requires at least one compiler")
        if cache_size < 0:
            raise ValueError("cache_size must be >= 0")
        super().__init__("registry")
        self._compilers = list(compilers)
        self._cache = OrderedDict()
        self._cache_size = cache_size
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls, config: Optional["RunnerConfig"] = None) -> "CompilerRegistry":
        """Get the singleton registry instance.

        On first call, this method initializes the registry by instantiating all
        available compilers (those whose is_available() returns True) in priority order.
        Subsequent calls return the same instance.

        Parameters
        ----------
        config : Optional[RunnerConfig]
            Supplies the cache size when the instance is created. Ignored afterwards.

        Returns
        -------
        CompilerRegistry
            The shared registry instance.
        """
        if cls._instance is None:
            compilers = []
            for compiler_type in _COMPILER_PRIORITY:
                if compiler_type.is_available():
                    compilers.append(compiler_type())
            cache_size = DEFAULT_CACHE_SIZE if config is None else config.compile_cache_size
            cls._instance = CompilerRegistry(compilers, cache_size=cache_size)
        return cls._instance

    @staticmethod
    def is_available() -> bool:
        return True

    def can_compile(self, workspace: Workspace) -> bool:
        return any(c.can_compile(workspace) for c in self._compilers)

    def compile(self, workspace: Workspace) -> CompileOutput:
        """Compile a workspace, using the cache if available.

        Parameters
        ----------
        workspace : Workspace
            The workspace to compile.

        Returns
        -------
        CompileOutput
            The artifact and diagnostics of the first compiler that accepts the workspace.

        Raises
        ------
        CompilerError
            If no registered compiler can compile the workspace, or if it fails.
        """
        key = workspace.hash()
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
                return self._cache[key]

        for compiler in self._compilers:
            # Choose the first compiler that can compile the workspace
            if compiler.can_compile(workspace):
                output = compiler.compile(workspace)
                self._store(key, output)
                return output
        raise CompilerError(f"No registered compiler can compile workspace '{workspace.name}'")

    def _store(self, key: str, output: CompileOutput) -> None:
        if self._cache_size == 0:
            return
        with self._lock:
            self._cache[key] = output
            self._cache.move_to_end(key)
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)

    def cleanup(self) -> None:
        """Drop all cached compile outputs."""
        with self._lock:
            self._cache.clear()
