import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from workspace_runner.budget import Budget
from workspace_runner.compile import CompilerRegistry
from workspace_runner.config import RunnerConfig
from workspace_runner.data import ExecutionStatus, Workspace
from workspace_runner.errors import WorkspaceRunnerError
from workspace_runner.execution import WorkspaceRunner
from workspace_runner.logging import configure_logging
from workspace_runner.packaging import CreatesWorkspace, PackageRegistry, find_package

# Built-in workspace package backing each --kind
_KIND_PACKAGES = {"program": "console", "fragment": "script"}


def run(args: argparse.Namespace) -> int:
    """Compile and execute a file, printing its output."""
    config = _load_config(args)
    workspace = _load_workspace(args, config)
    if workspace is None:
        return 1

    budget = Budget(args.timeout) if args.timeout is not None else Budget.default(config)
    result = WorkspaceRunner(config=config).run_sync(workspace, budget)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.succeeded else 1

    text = "\n".join(result.output)
    sys.stdout.write(text)
    if text and not text.endswith("\n"):
        sys.stdout.write("\n")
    if result.exception is not None:
        print(result.exception, file=sys.stderr)
    elif result.status == ExecutionStatus.TIMEOUT:
        print(f"Timed out after {budget.elapsed:.2f}s", file=sys.stderr)
    return 0 if result.succeeded else 1


def check(args: argparse.Namespace) -> int:
    """Compile a file without executing it, printing its diagnostics."""
    config = _load_config(args)
    workspace = _load_workspace(args, config)
    if workspace is None:
        return 1

    compiled = CompilerRegistry.get_instance(config).compile(workspace)
    for line in compiled.diagnostics.format():
        print(line)
    if compiled.succeeded:
        print(f"{workspace.name}: OK ({len(compiled.diagnostics)} diagnostic(s))")
    return 0 if compiled.succeeded else 1


def _load_config(args: argparse.Namespace) -> RunnerConfig:
    config = RunnerConfig.from_env()
    configure_logging(args.log_level or config.log_level)
    return config


def _load_workspace(args: argparse.Namespace, config: RunnerConfig) -> Optional[Workspace]:
    path: Path = args.file
    if not path.is_file():
        print(f"No such file: {path}", file=sys.stderr)
        return None
    source_text = path.read_text(encoding=config.encoding)

    package_name = args.package or _KIND_PACKAGES[args.kind]
    package = asyncio.run(
        find_package(PackageRegistry.create_default(), CreatesWorkspace, package_name)
    )
    if package is None:
        print(f"Unknown workspace package: {package_name}", file=sys.stderr)
        return None
    return package.create_workspace(source_text, name=path.name)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", type=Path, help="Python source file to process.")
    parser.add_argument(
        "--kind",
        choices=sorted(_KIND_PACKAGES),
        default="program",
        help="program: the file defines main(). fragment: the file is a statement list.",
    )
    parser.add_argument(
        "--package",
        default=None,
        help="Name of the workspace package to use instead of --kind (e.g. console, script).",
    )
    parser.add_argument("--log-level", default=None, help="Defaults to WSR_LOG_LEVEL or INFO.")


def cli(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Workspace Runner CLI", formatter_class=argparse.RawTextHelpFormatter
    )

    command_subparsers = parser.add_subparsers(
        dest="command", required=True, help="Primary commands"
    )

    run_parser = command_subparsers.add_parser("run", help="Compile and execute a file.")
    _add_common_arguments(run_parser)
    run_parser.add_argument(
        "--timeout", type=float, default=None, help="Seconds allowed for the whole run."
    )
    run_parser.add_argument(
        "--json", action="store_true", help="Print the result as a JSON document."
    )
    run_parser.set_defaults(func=run)

    check_parser = command_subparsers.add_parser(
        "check", help="Compile a file and print its diagnostics."
    )
    _add_common_arguments(check_parser)
    check_parser.set_defaults(func=check)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except WorkspaceRunnerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(cli())
