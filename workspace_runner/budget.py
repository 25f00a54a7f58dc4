"""Wall-clock time budget with cooperative cancellation."""

from __future__ import annotations

import time
from typing import List, Optional, Tuple

from workspace_runner.errors import BudgetExceededError


class Budget:
    """A caller-supplied bound on the wall-clock time of an operation.

    The clock starts when the budget is constructed. A budget without a timeout only
    expires when it is cancelled. Consumers check the budget at their suspension points;
    nothing is interrupted preemptively.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        """Create a budget.

        Parameters
        ----------
        timeout : Optional[float]
            Total allowed wall-clock seconds. None means unbounded.

        Raises
        ------
        ValueError
            If timeout is negative.
        """
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be >= 0")
        self._timeout = timeout
        self._started = time.monotonic()
        self._cancelled = False
        self._entries: List[Tuple[str, float]] = []

    @classmethod
    def default(cls, config=None) -> "Budget":
        """Create a budget bounded by the configured default timeout."""
        from workspace_runner.config import RunnerConfig

        config = config or RunnerConfig()
        return cls(config.default_timeout_seconds)

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    @property
    def remaining(self) -> Optional[float]:
        """Seconds left before expiry, 0.0 once exceeded, None for unbounded budgets."""
        if self._cancelled:
            return 0.0
        if self._timeout is None:
            return None
        return max(0.0, self._timeout - self.elapsed)

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_exceeded(self) -> bool:
        if self._cancelled:
            return True
        return self._timeout is not None and self.elapsed >= self._timeout

    def cancel(self) -> None:
        self._cancelled = True

    def record_entry(self, name: str) -> None:
        """Record a named checkpoint at the current elapsed time."""
        self._entries.append((name, self.elapsed))

    @property
    def entries(self) -> List[Tuple[str, float]]:
        return list(self._entries)

    def check(self, phase: str) -> None:
        """Raise if the budget is exhausted.

        Parameters
        ----------
        phase : str
            Name of the phase about to start, reported in the error.

        Raises
        ------
        BudgetExceededError
            If the budget has expired or was cancelled.
        """
        if self.is_exceeded:
            raise BudgetExceededError(phase, self.elapsed)

    def __repr__(self) -> str:
        return (
            f"Budget(timeout={self._timeout}, elapsed={self.elapsed:.3f}, "
            f"cancelled={self._cancelled})"
        )
