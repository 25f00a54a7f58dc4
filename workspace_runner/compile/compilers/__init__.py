from .python_compiler import PythonCompiler, wrap_fragment

__all__ = ["PythonCompiler", "wrap_fragment"]
