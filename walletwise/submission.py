"""
Expense submission state machine.

    idle -> processing -> success -> (after reset_seconds) idle
                       -> idle      (on failure)

While processing, a second submission is rejected instead of queued,
so a double click can never record the same expense twice.
"""

import threading
from enum import Enum
from typing import Optional

import structlog


logger = structlog.get_logger(__name__)


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"


_TRANSITIONS = {
    SubmissionStatus.IDLE: {SubmissionStatus.PROCESSING},
    SubmissionStatus.PROCESSING: {SubmissionStatus.SUCCESS, SubmissionStatus.IDLE},
    SubmissionStatus.SUCCESS: {SubmissionStatus.IDLE},
}


class SubmissionInProgressError(Exception):
    """A submission was attempted while another one is processing."""


class SubmissionTracker:
    """
    Thread-safe holder of one form's submission status.
    
    Streamlit reruns scripts on worker threads, so state changes are
    guarded by a lock and the success reset runs on a timer thread.
    """
    
    def __init__(self, reset_seconds: float = 2.0):
        self._reset_seconds = reset_seconds
        self._status = SubmissionStatus.IDLE
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        # Bumped on every succeed(); a timer only resets its own generation
        self._generation = 0
    
    @property
    def status(self) -> SubmissionStatus:
        with self._lock:
            return self._status
    
    @property
    def is_busy(self) -> bool:
        return self.status is SubmissionStatus.PROCESSING
    
    def _move(self, target: SubmissionStatus) -> None:
        # Caller holds the lock
        if target not in _TRANSITIONS[self._status]:
            raise ValueError(f"Cannot move from {self._status.value} to {target.value}")
        self._status = target
    
    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
    
    def begin(self) -> None:
        """
        Enter processing.
        
        Raises SubmissionInProgressError if a submission is already running.
        """
        with self._lock:
            if self._status is SubmissionStatus.PROCESSING:
                raise SubmissionInProgressError("A submission is already in progress")
            self._cancel_timer()
            if self._status is SubmissionStatus.SUCCESS:
                # A new submission ends the success display early
                self._move(SubmissionStatus.IDLE)
            self._move(SubmissionStatus.PROCESSING)
    
    def succeed(self) -> None:
        """Show success, then fall back to idle after reset_seconds."""
        with self._lock:
            self._move(SubmissionStatus.SUCCESS)
            self._cancel_timer()
            if self._reset_seconds <= 0:
                self._status = SubmissionStatus.IDLE
                return
            self._generation += 1
            self._timer = threading.Timer(
                self._reset_seconds, self._reset, args=(self._generation,)
            )
            self._timer.daemon = True
            self._timer.start()
    
    def fail(self) -> None:
        """Return to idle without showing success."""
        with self._lock:
            self._move(SubmissionStatus.IDLE)
    
    def _reset(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                # Superseded by a later succeed()
                return
            if self._status is SubmissionStatus.SUCCESS:
                self._status = SubmissionStatus.IDLE
                logger.debug("submission_reset")
            self._timer = None
    
    def close(self) -> None:
        """Cancel any pending reset."""
        with self._lock:
            self._cancel_timer()
