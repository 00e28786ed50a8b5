"""Progress reporting for transfer jobs.

This module provides:
- ProgressCallback / CancelCheck: callback type aliases
- ProgressTracker: aggregates per-chunk progress of an upload job
"""

from __future__ import annotations

from collections.abc import Callable

# Receives overall progress as a fraction in [0, 1]
ProgressCallback = Callable[[float], None]

# Returns True when the caller wants the job to stop
CancelCheck = Callable[[], bool]


class ProgressTracker:
    """Aggregate progress of a job made of ``count`` equally weighted chunks.

    Workers report per-chunk fractions through ``callback_for``; the tracker
    owns the per-chunk values and emits ``sum / count`` whenever one of them
    moves forward. A reported value lower than the stored one is ignored,
    which keeps the aggregate non-decreasing even when a chunk restarts on
    another transport path.
    """

    def __init__(self, count: int, callback: ProgressCallback | None = None) -> None:
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        self._count = count
        self._callback = callback
        self._progress = [0.0] * count

    @property
    def value(self) -> float:
        """Current overall progress."""
        return sum(self._progress) / self._count

    def start(self) -> None:
        """Emit the initial 0 progress."""
        self._emit()

    def update(self, index: int, fraction: float) -> None:
        """Record progress for one chunk."""
        fraction = min(max(fraction, 0.0), 1.0)
        if fraction <= self._progress[index]:
            return
        self._progress[index] = fraction
        self._emit()

    def complete(self, index: int) -> None:
        """Mark one chunk as fully transferred."""
        self.update(index, 1.0)

    def callback_for(self, index: int) -> Callable[[float], None]:
        """Per-chunk callback handed to the transport."""

        def report(fraction: float) -> None:
            self.update(index, fraction)

        return report

    def _emit(self) -> None:
        if self._callback:
            self._callback(self.value)
