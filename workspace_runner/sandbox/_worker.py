"""Child-process entry for SubprocessSandbox.

Usage: python -u _worker.py ARTIFACT_PATH REPORT_PATH FILE_NAME

The worker loads the marshalled module code, executes it, locates the entry point and
calls it. Everything the user's code writes to stdout goes to this process's stdout,
which the parent reads as the output channel. The outcome is written as JSON to
REPORT_PATH. A "started" report is written once the artifact is loaded, so the parent can
tell a process ended by user code from a worker that never ran it. This module imports
only the standard library and never logs, so nothing but user output reaches stdout.
"""

import asyncio
import builtins
import inspect
import json
import marshal
import os
import sys
import traceback

WORKSPACE_MODULE_NAME = "__workspace__"
ENTRY_POINT_NAME = "main"


def _candidates(namespace):
    """Callables named main: module-level functions first, then static/class methods."""
    fn = namespace.get(ENTRY_POINT_NAME)
    if callable(fn) and not isinstance(fn, type):
        yield fn
    for value in list(namespace.values()):
        if not isinstance(value, type) or value.__module__ != WORKSPACE_MODULE_NAME:
            continue
        raw = inspect.getattr_static(value, ENTRY_POINT_NAME, None)
        if isinstance(raw, (staticmethod, classmethod)):
            yield getattr(value, ENTRY_POINT_NAME)


def _accepts(fn, count):
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return count == 0
    try:
        signature.bind(*([[]] * count))
    except TypeError:
        return False
    return True


def resolve_entry_point(namespace):
    """Return (callable, args) for the entry point, or None.

    A main taking no arguments wins over a main taking one; the single argument is an
    empty argument list.
    """
    candidates = list(_candidates(namespace))
    for fn in candidates:
        if _accepts(fn, 0):
            return fn, ()
    for fn in candidates:
        if _accepts(fn, 1):
            return fn, ([],)
    return None


def _summarize(exc):
    return "".join(traceback.format_exception_only(type(exc), exc)).strip()


def _write_report(path, report):
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(report, f)
    os.replace(tmp, path)


def run(artifact_path, report_path, file_name):
    with open(artifact_path, "rb") as f:
        code = marshal.load(f)
    # Replaced by the final report unless user code ends the process first
    _write_report(report_path, {"status": "started"})

    sys.argv = [file_name]
    # Imports resolve against the run directory, not the directory of this file
    sys.path[0] = os.getcwd()
    namespace = {
        "__name__": WORKSPACE_MODULE_NAME,
        "__file__": file_name,
        "__builtins__": builtins,
    }
    try:
        exec(code, namespace)
        entry = resolve_entry_point(namespace)
        if entry is None:
            return {
                "status": "exception",
                "exception": (
                    f"EntryPointNotFoundError: No callable '{ENTRY_POINT_NAME}' entry point "
                    "was found"
                ),
                "traceback": "",
            }
        fn, args = entry
        result = fn(*args)
        if inspect.iscoroutine(result):
            asyncio.run(result)
    except SystemExit:
        pass
    except BaseException as e:
        return {
            "status": "exception",
            "exception": _summarize(e),
            "traceback": traceback.format_exc(),
        }
    return {"status": "completed"}


def main(argv):
    artifact_path, report_path, file_name = argv[1:4]
    try:
        report = run(artifact_path, report_path, file_name)
    finally:
        try:
            sys.stdout.flush()
        except (OSError, ValueError):
            pass
    _write_report(report_path, report)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
