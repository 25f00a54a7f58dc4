from __future__ import annotations

import ast
import logging
from typing import List, Set

from workspace_runner.compile import analysis
from workspace_runner.compile.artifact import Artifact, ArtifactMetadata
from workspace_runner.compile.compiler import CompileOutput, Compiler, CompilerError
from workspace_runner.data import (
    Diagnostic,
    Diagnostics,
    DiagnosticSeverity,
    Workspace,
    WorkspaceKind,
)

logger = logging.getLogger(__name__)


class _GlobalToNonlocal(ast.NodeTransformer):
    """Point ``global`` declarations of fragment variables at the enclosing ``main``.

    Once a fragment is wrapped, its top-level variables are locals of ``main``, so helpers
    defined in the fragment must reach them with ``nonlocal``. A name stays ``global`` when
    the fragment never binds it or an intermediate helper binds it itself.
    """

    def __init__(self, fragment_names: Set[str]) -> None:
        self._fragment_names = fragment_names
        self._enclosing: List[Set[str]] = []

    def _visit_function(self, node: ast.AST) -> ast.AST:
        self._enclosing.append(analysis.function_locals(node))
        self.generic_visit(node)
        self._enclosing.pop()
        return node

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def visit_Global(self, node: ast.Global):
        if not self._enclosing:
            return node
        shadowing = set().union(*self._enclosing[:-1])
        moved = [n for n in node.names if n in self._fragment_names and n not in shadowing]
        if not moved:
            return node
        kept = [n for n in node.names if n not in moved]
        replacement = [ast.copy_location(ast.Nonlocal(names=moved), node)]
        if kept:
            replacement.append(ast.copy_location(ast.Global(names=kept), node))
        return replacement


def wrap_fragment(tree: ast.Module) -> ast.Module:
    """Move the statements of a fragment into a synthesized ``def main():``.

    The statements keep their original positions. Leading ``from __future__`` imports stay
    at module level, where the language requires them. Helpers declaring ``global`` for a
    fragment variable get ``nonlocal`` instead.
    """
    body = list(tree.body)
    future: List[ast.stmt] = []
    while body and isinstance(body[0], ast.ImportFrom) and body[0].module == "__future__":
        future.append(body.pop(0))

    rewriter = _GlobalToNonlocal(analysis.scope_bindings(body))
    body = [rewriter.visit(stmt) for stmt in body]

    fields = dict(
        name=analysis.ENTRY_POINT_NAME,
        args=ast.arguments(
            posonlyargs=[],
            args=[],
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=[],
        ),
        body=body or [ast.Pass()],
        decorator_list=[],
        returns=None,
    )
    if "type_params" in ast.FunctionDef._fields:
        fields["type_params"] = []
    main = ast.FunctionDef(**fields)
    main.lineno, main.col_offset = 1, 0

    wrapped = ast.Module(body=future + [main], type_ignores=[])
    return ast.fix_missing_locations(wrapped)


class PythonCompiler(Compiler):
    """Compile Python workspaces into marshalled module code objects."""

    def __init__(self) -> None:
        super().__init__("python")

    @staticmethod
    def is_available() -> bool:
        return True

    def can_compile(self, workspace: Workspace) -> bool:
        return workspace.name.endswith(".py")

    def compile(self, workspace: Workspace) -> CompileOutput:
        source = workspace.source_text
        file_name = workspace.name

        try:
            tree = ast.parse(source, filename=file_name)
        except SyntaxError as e:
            error = analysis.syntax_error(e, file_name)
            warnings = analysis.find_duplicate_imports_before(source, error.line, file_name)
            return self._failed(warnings + [error])
        except ValueError as e:
            # Null bytes in the source
            raise CompilerError(f"Cannot parse workspace '{file_name}': {e}") from e

        diagnostics: List[Diagnostic] = []
        try:
            diagnostics.extend(analysis.find_duplicate_imports(tree, source, file_name))
            diagnostics.extend(analysis.find_undefined_names(tree, source, file_name))
        except SyntaxError as e:
            diagnostics.append(analysis.syntax_error(e, file_name))
            return self._failed(diagnostics)

        entry_point = None
        if workspace.kind == WorkspaceKind.FRAGMENT:
            tree = wrap_fragment(tree)
            entry_point = analysis.ENTRY_POINT_NAME
        else:
            entry_point = analysis.find_entry_point(tree)
            if entry_point is None:
                diagnostics.append(analysis.missing_entry_point(file_name))

        if any(d.severity == DiagnosticSeverity.ERROR for d in diagnostics):
            return self._failed(diagnostics)

        try:
            code = compile(tree, file_name, "exec", dont_inherit=True)
        except SyntaxError as e:
            diagnostics.append(analysis.syntax_error(e, file_name))
            return self._failed(diagnostics)

        metadata = ArtifactMetadata(
            compiler=self.name,
            kind=workspace.kind,
            file_name=file_name,
            source_hash=workspace.hash(),
            entry_point=entry_point,
        )
        logger.debug(
            "Compiled %s (%s) with %d diagnostic(s)",
            file_name,
            workspace.kind.value,
            len(diagnostics),
        )
        return CompileOutput(
            artifact=Artifact.from_code(code, metadata), diagnostics=Diagnostics.of(diagnostics)
        )

    @staticmethod
    def _failed(diagnostics: List[Diagnostic]) -> CompileOutput:
        return CompileOutput(artifact=None, diagnostics=Diagnostics.of(diagnostics))
