"""Static checks run by the Python compiler before code generation.

The checks work on the user's text as written, so reported positions are positions in
that text regardless of how a fragment is later wrapped.
"""

from __future__ import annotations

import ast
import builtins
import io
import symtable
import tokenize
from typing import Iterator, List, Optional, Set, Tuple

from workspace_runner.data import Diagnostic, DiagnosticSeverity

UNDEFINED_NAME = "PY0103"
DUPLICATE_IMPORT = "PY0105"
SYNTAX_ERROR = "PY1001"
MISSING_ENTRY_POINT = "PY5001"

ENTRY_POINT_NAME = "main"

_BUILTIN_NAMES: Set[str] = set(dir(builtins))
_MODULE_NAMES: Set[str] = {
    "__name__",
    "__file__",
    "__doc__",
    "__builtins__",
    "__spec__",
    "__loader__",
    "__package__",
    "__annotations__",
    "__cached__",
}

_ScopeNode = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)


def char_column(lines: List[str], lineno: int, col_offset: int) -> int:
    """Convert an AST UTF-8 byte offset into a 1-based character column."""
    if 1 <= lineno <= len(lines):
        prefix = lines[lineno - 1].encode("utf-8")[:col_offset]
        return len(prefix.decode("utf-8", errors="replace")) + 1
    return col_offset + 1


def _has_star_import(tree: ast.AST) -> bool:
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and any(a.name == "*" for a in node.names):
            return True
    return False


def _global_names(source: str, file_name: str) -> Tuple[Set[str], Set[str]]:
    """Return (names bound at module level, names looked up in the global scope)."""
    top = symtable.symtable(source, file_name, "exec")
    bound: Set[str] = set()
    referenced: Set[str] = set()

    def visit(table: symtable.SymbolTable, is_module: bool) -> None:
        for sym in table.get_symbols():
            name = sym.get_name()
            binds = sym.is_assigned() or sym.is_imported() or sym.is_namespace()
            if is_module:
                if binds:
                    bound.add(name)
                if sym.is_referenced():
                    referenced.add(name)
            else:
                if sym.is_declared_global() and binds:
                    bound.add(name)
                if sym.is_global() and sym.is_referenced():
                    referenced.add(name)
        for child in table.get_children():
            visit(child, False)

    visit(top, True)
    return bound, referenced


_ComprehensionNode = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)


def scope_bindings(body: List[ast.stmt]) -> Set[str]:
    """Names a function or class body binds in its own scope.

    Nested function, class, lambda and comprehension scopes are not entered, except for
    the parts the enclosing scope evaluates (decorators, defaults, first iterables).
    Names declared ``global`` or ``nonlocal`` in the body are excluded.
    """
    bound: Set[str] = set()
    declared: Set[str] = set()
    stack: List[ast.AST] = list(body)
    while stack:
        node = stack.pop()
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            bound.add(node.name)
            stack.extend(node.decorator_list)
            if isinstance(node, ast.ClassDef):
                stack.extend(node.bases)
                stack.extend(node.keywords)
            else:
                stack.extend(node.args.defaults)
                stack.extend(d for d in node.args.kw_defaults if d is not None)
            continue
        if isinstance(node, ast.Lambda):
            stack.extend(node.args.defaults)
            continue
        if isinstance(node, _ComprehensionNode):
            stack.append(node.generators[0].iter)
            continue
        if isinstance(node, (ast.Global, ast.Nonlocal)):
            declared.update(node.names)
        elif isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            bound.add(node.id)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                if alias.name != "*":
                    bound.add((alias.asname or alias.name).split(".")[0])
        elif isinstance(node, ast.ExceptHandler) and node.name:
            bound.add(node.name)
        elif getattr(node, "name", None) and type(node).__name__ in ("MatchAs", "MatchStar"):
            bound.add(node.name)
        elif getattr(node, "rest", None) and type(node).__name__ == "MatchMapping":
            bound.add(node.rest)
        stack.extend(ast.iter_child_nodes(node))
    return bound - declared


def function_locals(node: ast.AST) -> Set[str]:
    """Names a function or lambda binds in its own scope (parameters and stores)."""
    names: Set[str] = set()
    args = node.args
    for arg in args.posonlyargs + args.args + args.kwonlyargs:
        names.add(arg.arg)
    if args.vararg is not None:
        names.add(args.vararg.arg)
    if args.kwarg is not None:
        names.add(args.kwarg.arg)
    if isinstance(node, ast.Lambda):
        return names
    return names | scope_bindings(node.body)


def _comprehension_targets(node: ast.AST) -> Set[str]:
    return {
        target.id
        for generator in node.generators
        for target in ast.walk(generator.target)
        if isinstance(target, ast.Name)
    }


def _name_loads(tree: ast.AST, names: Set[str]) -> Iterator[ast.Name]:
    """Yield Load sites of the given names that no enclosing local scope binds.

    Function and comprehension scopes shadow for everything nested in them. A class body
    shadows only its own statements, since functions and comprehensions nested in it do
    not see class-level names.
    """

    def visit(node: ast.AST, shadowed: Set[str], class_names: Set[str]) -> Iterator[ast.Name]:
        if isinstance(node, ast.Name):
            if (
                isinstance(node.ctx, ast.Load)
                and node.id in names
                and node.id not in shadowed
                and node.id not in class_names
            ):
                yield node
            return
        if isinstance(node, _ScopeNode):
            args = node.args
            outer: List[ast.AST] = list(getattr(node, "decorator_list", []))
            outer += args.defaults + [d for d in args.kw_defaults if d is not None]
            for arg in args.posonlyargs + args.args + args.kwonlyargs + [args.vararg, args.kwarg]:
                if arg is not None and arg.annotation is not None:
                    outer.append(arg.annotation)
            if getattr(node, "returns", None) is not None:
                outer.append(node.returns)
            for child in outer:
                yield from visit(child, shadowed, class_names)
            inner = shadowed | function_locals(node)
            body = node.body if isinstance(node.body, list) else [node.body]
            for child in body:
                yield from visit(child, inner, set())
            return
        if isinstance(node, _ComprehensionNode):
            inner = shadowed | _comprehension_targets(node)
            for index, generator in enumerate(node.generators):
                if index == 0:
                    # Evaluated in the enclosing scope
                    yield from visit(generator.iter, shadowed, class_names)
                else:
                    yield from visit(generator.iter, inner, set())
                for condition in generator.ifs:
                    yield from visit(condition, inner, set())
            for part in ("elt", "key", "value"):
                if hasattr(node, part):
                    yield from visit(getattr(node, part), inner, set())
            return
        if isinstance(node, ast.ClassDef):
            for child in node.decorator_list + node.bases + node.keywords:
                yield from visit(child, shadowed, class_names)
            body_names = scope_bindings(node.body)
            for stmt in node.body:
                yield from visit(stmt, shadowed, body_names)
            return
        for child in ast.iter_child_nodes(node):
            yield from visit(child, shadowed, class_names)

    yield from visit(tree, set(), set())


def find_undefined_names(
    tree: ast.Module, source: str, file_name: str
) -> List[Diagnostic]:
    """Report every load of a name that no scope defines.

    Parameters
    ----------
    tree : ast.Module
        The parsed user text.
    source : str
        The user text the tree was parsed from.
    file_name : str
        File name reported in the diagnostics.

    Returns
    -------
    List[Diagnostic]
        One PY0103 error per offending load site, in source order. Empty when the
        module contains a star import, since its bindings cannot be known statically.
    """
    if _has_star_import(tree):
        return []

    bound, referenced = _global_names(source, file_name)
    undefined = {
        name
        for name in referenced
        if name not in bound and name not in _BUILTIN_NAMES and name not in _MODULE_NAMES
    }
    if not undefined:
        return []

    lines = source.splitlines()
    sites = sorted(_name_loads(tree, undefined), key=lambda n: (n.lineno, n.col_offset))
    return [
        Diagnostic(
            severity=DiagnosticSeverity.ERROR,
            line=site.lineno,
            column=char_column(lines, site.lineno, site.col_offset),
            message=f"The name '{site.id}' does not exist in the current context",
            code=UNDEFINED_NAME,
            file_name=file_name,
        )
        for site in sites
    ]


def find_duplicate_imports(tree: ast.Module, source: str, file_name: str) -> List[Diagnostic]:
    """Report top-level imports that repeat an earlier import of the same name."""
    lines = source.splitlines()
    seen: Set[Tuple] = set()
    diagnostics: List[Diagnostic] = []
    for stmt in tree.body:
        if isinstance(stmt, ast.Import):
            keys = [(("import", a.name, a.asname), a.name) for a in stmt.names]
        elif isinstance(stmt, ast.ImportFrom):
            module = "." * stmt.level + (stmt.module or "")
            keys = [
                (("from", module, a.name, a.asname), f"{module}.{a.name}") for a in stmt.names
            ]
        else:
            continue
        for key, display in keys:
            if key in seen:
                diagnostics.append(
                    Diagnostic(
                        severity=DiagnosticSeverity.WARNING,
                        line=stmt.lineno,
                        column=char_column(lines, stmt.lineno, stmt.col_offset),
                        message=f"The import of '{display}' appeared previously in this module",
                        code=DUPLICATE_IMPORT,
                        file_name=file_name,
                    )
                )
            seen.add(key)
    return diagnostics


def _top_level_statements(prefix: str) -> Iterator[Tuple[int, str]]:
    """Yield (first line, text) of each complete unindented logical line in ``prefix``.

    Tokenizing stops quietly at the first token error, so text cut off inside a bracket
    or string yields only the statements before it.
    """
    lines = prefix.splitlines()
    depth = 0
    start: Optional[int] = None
    start_depth = 0
    skipped = (tokenize.COMMENT, tokenize.NL, tokenize.ENCODING, tokenize.ENDMARKER)
    try:
        for token in tokenize.generate_tokens(io.StringIO(prefix).readline):
            if token.type == tokenize.INDENT:
                depth += 1
            elif token.type == tokenize.DEDENT:
                depth -= 1
            elif token.type in skipped:
                continue
            elif token.type == tokenize.NEWLINE:
                if start is not None and start_depth == 0:
                    yield start, "\n".join(lines[start - 1 : token.end[0]])
                start = None
            elif start is None:
                start, start_depth = token.start[0], depth
    except (tokenize.TokenError, SyntaxError):
        return


def find_duplicate_imports_before(source: str, line: int, file_name: str) -> List[Diagnostic]:
    """Report duplicate top-level imports in the text preceding a syntax error.

    Parameters
    ----------
    source : str
        The full user text, which does not parse.
    line : int
        The 1-based line the syntax error was reported on. Only lines before it are read.
    file_name : str
        File name reported in the diagnostics.

    Returns
    -------
    List[Diagnostic]
        PY0105 warnings with positions in ``source``, in source order.
    """
    prefix = "".join(source.splitlines(keepends=True)[: max(line - 1, 0)])
    imports: List[ast.stmt] = []
    for start, text in _top_level_statements(prefix):
        try:
            parsed = ast.parse(text)
        except (SyntaxError, ValueError):
            continue
        for stmt in parsed.body:
            if isinstance(stmt, (ast.Import, ast.ImportFrom)):
                ast.increment_lineno(stmt, start - 1)
                imports.append(stmt)
    return find_duplicate_imports(ast.Module(body=imports, type_ignores=[]), source, file_name)


def _accepts_entry_arguments(args: ast.arguments, skip_first: bool = False) -> bool:
    """Whether a function with these parameters can be called as main() or main(args)."""
    positional = args.posonlyargs + args.args
    if skip_first:
        positional = positional[1:]
    required = len(positional) - len(args.defaults)
    required_kwonly = sum(1 for d in args.kw_defaults if d is None)
    if required_kwonly:
        return False
    return required <= 1


def _decorator_names(node: ast.FunctionDef) -> Set[str]:
    return {d.id for d in node.decorator_list if isinstance(d, ast.Name)}


def find_entry_point(tree: ast.Module) -> Optional[str]:
    """Locate a statically visible entry point.

    Module-level functions named ``main`` come first, then ``main`` static or class methods
    of module-level classes.

    Returns
    -------
    Optional[str]
        The qualified entry point name (``main`` or ``Class.main``), or None.
    """
    functions = (ast.FunctionDef, ast.AsyncFunctionDef)
    for stmt in tree.body:
        if isinstance(stmt, functions) and stmt.name == ENTRY_POINT_NAME:
            if _accepts_entry_arguments(stmt.args):
                return stmt.name
    for stmt in tree.body:
        if not isinstance(stmt, ast.ClassDef):
            continue
        for member in stmt.body:
            if not (isinstance(member, functions) and member.name == ENTRY_POINT_NAME):
                continue
            decorators = _decorator_names(member)
            if "staticmethod" in decorators and _accepts_entry_arguments(member.args):
                return f"{stmt.name}.{member.name}"
            if "classmethod" in decorators and _accepts_entry_arguments(
                member.args, skip_first=True
            ):
                return f"{stmt.name}.{member.name}"
    return None


def missing_entry_point(file_name: str) -> Diagnostic:
    return Diagnostic(
        severity=DiagnosticSeverity.ERROR,
        line=1,
        column=1,
        message=(
            f"Program does not contain a '{ENTRY_POINT_NAME}' entry point suitable "
            "for execution"
        ),
        code=MISSING_ENTRY_POINT,
        file_name=file_name,
    )


def syntax_error(error: SyntaxError, file_name: str) -> Diagnostic:
    """Convert a SyntaxError raised by the parser into a diagnostic."""
    line = error.lineno or 1
    column = error.offset or 1
    message = error.msg or "invalid syntax"
    return Diagnostic(
        severity=DiagnosticSeverity.ERROR,
        line=max(line, 1),
        column=max(column, 1),
        message=message,
        code=SYNTAX_ERROR,
        file_name=file_name,
    )
