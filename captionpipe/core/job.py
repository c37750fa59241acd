"""
Export job state.

An ExportJob is the mutable record shared between a running export and
whoever may want to cancel it. Cancellation only raises a flag; the export
loop reads it at its checkpoints and tears down its own resources.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ExportState(Enum):
    """Lifecycle of an export."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    DECODING_SETUP = "decoding_setup"
    RENDERING = "rendering"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportState.COMPLETE, ExportState.CANCELLED, ExportState.FAILED)


# listener(job) is called after every progress, status or state change
JobListener = Callable[["ExportJob"], None]


@dataclass
class ExportJob:
    """
    Run state of a single export.

    Holds the cancellation flag, the live handles that must be released on
    every exit path, and the progress/status reported to the caller.
    """
    cancel_requested: bool = False
    progress: float = 0.0
    status: str = ""
    state: ExportState = ExportState.IDLE

    # Live resources owned by the running export
    output: Optional[Any] = None
    cursor: Optional[Any] = None

    _listeners: list[JobListener] = field(default_factory=list, repr=False)

    @property
    def is_active(self) -> bool:
        return self.state != ExportState.IDLE and not self.state.is_terminal

    def add_listener(self, callback: JobListener) -> ExportJob:
        """Register a callback for progress, status and state changes."""
        self._listeners.append(callback)
        return self

    def _notify(self):
        for callback in self._listeners:
            try:
                callback(self)
            except Exception as e:
                logger.warning(f"Export listener failed: {e}")

    def request_cancel(self) -> bool:
        """
        Ask the running export to stop at its next checkpoint.

        Returns False when no export is running.
        """
        if not self.is_active:
            return False
        self.cancel_requested = True
        self.status = "Cancelling download..."
        logger.info("Export cancellation requested")
        self._notify()
        return True

    def set_state(self, state: ExportState):
        logger.debug(f"Export state: {self.state.value} -> {state.value}")
        self.state = state
        self._notify()

    def update(self, progress: Optional[float] = None, status: Optional[str] = None):
        """Report progress (never decreasing) and/or a status message."""
        if progress is not None:
            self.progress = max(self.progress, min(100.0, float(progress)))
        if status is not None:
            self.status = status
        self._notify()

    def reset_progress(self):
        self.progress = 0.0
        self._notify()

    def start(self):
        """Reset run state for a fresh export."""
        self.cancel_requested = False
        self.progress = 0.0
        self.status = ""
        self.output = None
        self.cursor = None

    def release(self):
        """Drop the live resource handles."""
        self.output = None
        self.cursor = None
        self.cancel_requested = False


@dataclass
class ExportResult:
    """Terminal result of an export."""
    state: ExportState
    data: Optional[bytes] = None
    mime_type: Optional[str] = None
    filename: Optional[str] = None
    error: Optional[Exception] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.state == ExportState.COMPLETE

    @property
    def cancelled(self) -> bool:
        return self.state == ExportState.CANCELLED

    @classmethod
    def complete_result(
        cls,
        data: bytes,
        mime_type: str,
        filename: str,
        **metadata,
    ) -> ExportResult:
        return cls(
            state=ExportState.COMPLETE,
            data=data,
            mime_type=mime_type,
            filename=filename,
            metadata=metadata,
        )

    @classmethod
    def cancelled_result(cls, **metadata) -> ExportResult:
        return cls(state=ExportState.CANCELLED, metadata=metadata)

    @classmethod
    def failure_result(cls, error: Exception, **metadata) -> ExportResult:
        return cls(state=ExportState.FAILED, error=error, metadata=metadata)

    def save(self, directory: Path | str) -> Path:
        """Write the exported video into ``directory`` under its generated name."""
        if not self.success or self.data is None:
            raise ValueError(f"No video to save (export {self.state.value})")

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / self.filename
        path.write_bytes(self.data)
        logger.info(f"Saved video to: {path}")
        return path
