from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from workspace_runner.budget import Budget
from workspace_runner.compile import Artifact
from workspace_runner.config import RunnerConfig
from workspace_runner.env import get_work_path
from workspace_runner.logging import get_logger

from .sandbox import Sandbox, SandboxError, SandboxOutcome, split_output

LOGGER = get_logger("SubprocessSandbox")

WORKER_PATH = Path(__file__).with_name("_worker.py")
"""Script executed in the child interpreter."""

_READ_CHUNK = 64 * 1024
_POLL_INTERVAL = 0.1
_MIN_DRAIN_SECONDS = 1.0


def _process_exit_summary(returncode: Optional[int]) -> str:
    if returncode is not None and returncode < 0:
        return f"ProcessExit: worker was terminated by signal {-returncode}"
    return f"ProcessExit: worker exited with code {returncode}"


class SubprocessSandbox(Sandbox):
    """Each execution starts an independent interpreter process for strong isolation.

    The child's stdout is the output channel and is read through a pipe owned by this
    execution alone. Log records of this process go through the logging tree and the
    worker never logs, so the two channels cannot mix, even across concurrent runs.
    The outcome of the entry point is returned through a JSON report file written next to
    the artifact in a per-run directory.
    """

    def __init__(self, config: Optional[RunnerConfig] = None) -> None:
        """Initialize the sandbox.

        Parameters
        ----------
        config : Optional[RunnerConfig]
            Interpreter, encoding and kill grace period. Defaults to RunnerConfig().
        """
        self._config = config or RunnerConfig()

    async def execute(self, artifact: Artifact, budget: Budget) -> SandboxOutcome:
        """Run an artifact in a new worker process.

        Parameters
        ----------
        artifact : Artifact
            The compiled workspace.
        budget : Budget
            Checked while waiting for output; expiry kills the worker.

        Returns
        -------
        SandboxOutcome
            Output lines, exception summary and completion flag.

        Raises
        ------
        SandboxError
            If the worker cannot be started or exits before running the artifact.
        """
        run_dir = Path(tempfile.mkdtemp(prefix="run_", dir=get_work_path()))
        try:
            return await self._execute_in(run_dir, artifact, budget)
        finally:
            shutil.rmtree(run_dir, ignore_errors=True)

    async def _execute_in(
        self, run_dir: Path, artifact: Artifact, budget: Budget
    ) -> SandboxOutcome:
        # The worker runs inside run_dir, so its arguments must not be relative to ours
        run_dir = run_dir.resolve()
        artifact_path = artifact.write_to(run_dir / "artifact.bin")
        report_path = run_dir / "report.json"

        env = dict(os.environ)
        env["PYTHONIOENCODING"] = self._config.encoding
        env["PYTHONUNBUFFERED"] = "1"

        try:
            proc = await asyncio.create_subprocess_exec(
                self._config.python_executable,
                "-u",
                str(WORKER_PATH),
                str(artifact_path),
                str(report_path),
                artifact.metadata.file_name,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(run_dir),
                env=env,
            )
        except OSError as e:
            raise SandboxError(f"Failed to start worker process: {e}") from e

        LOGGER.debug("Started worker pid=%s for %s", proc.pid, artifact.metadata.file_name)
        stderr_task = asyncio.ensure_future(proc.stderr.read())
        chunks: List[bytes] = []
        try:
            finished = await self._pump_output(proc, chunks, budget)
            if finished:
                finished = await self._wait_exit(proc, budget)
        finally:
            if proc.returncode is None:
                await self._kill(proc)
                # Keep what was written before the kill but not yet read
                chunks.append(await self._drain(proc.stdout.read()))
            stderr = await self._drain(stderr_task)

        text = b"".join(chunks).decode(self._config.encoding, errors="replace")
        if stderr:
            LOGGER.debug(
                "Worker pid=%s stderr:\n%s",
                proc.pid,
                stderr.decode(self._config.encoding, errors="replace"),
            )

        if not finished:
            LOGGER.info("Execution of %s ran out of budget", artifact.metadata.file_name)
            return SandboxOutcome(
                output_lines=split_output(text, ran_to_completion=False), completed=False
            )

        report = self._read_report(report_path)
        if report is None:
            tail = stderr.decode(self._config.encoding, errors="replace")[-2000:]
            raise SandboxError(
                f"Worker exited with code {proc.returncode} before running the artifact"
                + (f": {tail}" if tail else "")
            )

        if report.get("status") == "started":
            # User code ended the worker process itself (os._exit, a crash, a kill)
            return SandboxOutcome(
                output_lines=split_output(text, ran_to_completion=False),
                exception=_process_exit_summary(proc.returncode),
            )
        if report.get("status") == "exception":
            LOGGER.debug("Entry point raised:\n%s", report.get("traceback", ""))
            return SandboxOutcome(
                output_lines=split_output(text, ran_to_completion=False),
                exception=report.get("exception") or "Exception",
            )
        return SandboxOutcome(output_lines=split_output(text, ran_to_completion=True))

    @staticmethod
    def _wait_timeout(budget: Budget) -> float:
        remaining = budget.remaining
        if remaining is None:
            return _POLL_INTERVAL
        return min(remaining, _POLL_INTERVAL)

    async def _pump_output(
        self, proc: asyncio.subprocess.Process, chunks: List[bytes], budget: Budget
    ) -> bool:
        """Read stdout until EOF. Returns False if the budget ran out first."""
        while True:
            if budget.is_exceeded:
                return False
            try:
                chunk = await asyncio.wait_for(
                    proc.stdout.read(_READ_CHUNK), timeout=self._wait_timeout(budget)
                )
            except asyncio.TimeoutError:
                continue
            if not chunk:
                return True
            chunks.append(chunk)

    async def _wait_exit(self, proc: asyncio.subprocess.Process, budget: Budget) -> bool:
        """Wait for the worker to exit after closing stdout. Returns False on expiry."""
        while True:
            if budget.is_exceeded:
                return False
            try:
                await asyncio.wait_for(proc.wait(), timeout=self._wait_timeout(budget))
                return True
            except asyncio.TimeoutError:
                continue

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._config.kill_grace_seconds)
        except asyncio.TimeoutError:
            LOGGER.warning("Worker pid=%s did not exit after kill", proc.pid)

    async def _drain(self, awaitable) -> bytes:
        """Await a pending pipe read, giving up after the grace period."""
        try:
            return await asyncio.wait_for(
                awaitable, timeout=max(self._config.kill_grace_seconds, _MIN_DRAIN_SECONDS)
            )
        except asyncio.TimeoutError:
            return b""

    @staticmethod
    def _read_report(path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.error("Unreadable worker report at %s", path, exc_info=True)
            return None
