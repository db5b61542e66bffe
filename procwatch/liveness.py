"""
Process liveness checks.

Liveness is decided from the PID recorded in the state directory and the OS
alone, so it works from any supervisor instance, not only the one that
launched the process. The null signal is sent to the PID and its outcome is
classified by ``classify``: a permission error means the process exists under
another identity and still counts as alive.
"""

import logging
from enum import Enum

import psutil

from .state import StateStore

logger = logging.getLogger(__name__)


class Liveness(Enum):
    ALIVE = "alive"
    FOREIGN = "foreign"  # exists, but we may not signal it
    FINISHED = "finished"  # exited, not yet reaped
    GONE = "gone"
    UNKNOWN = "unknown"

    @property
    def is_alive(self) -> bool:
        return self in (Liveness.ALIVE, Liveness.FOREIGN)


def classify(error: BaseException | None) -> Liveness:
    """Map the outcome of a null-signal probe to a Liveness value.

    ``error`` is None when the signal was delivered, otherwise the exception
    raised while resolving or signalling the process.
    """
    if error is None:
        return Liveness.ALIVE
    # ZombieProcess subclasses NoSuchProcess, so it must be checked first
    if isinstance(error, psutil.ZombieProcess):
        return Liveness.FINISHED
    if isinstance(error, (psutil.AccessDenied, PermissionError)):
        return Liveness.FOREIGN
    if isinstance(error, (psutil.NoSuchProcess, ProcessLookupError)):
        return Liveness.GONE
    return Liveness.UNKNOWN


def probe(pid: int) -> Liveness:
    """Send the null signal to ``pid`` and classify the result."""
    if pid <= 0:
        return Liveness.GONE
    try:
        proc = psutil.Process(pid)
        proc.send_signal(0)
        if proc.status() == psutil.STATUS_ZOMBIE:
            raise psutil.ZombieProcess(pid)
    except Exception as e:
        result = classify(e)
        if result is Liveness.UNKNOWN:
            logger.debug(f"Unexpected error probing pid {pid}: {e!r}")
        return result
    return Liveness.ALIVE


def parse_pid(value: str | None) -> int | None:
    """Parse a recorded PID, returning None if it is absent or malformed."""
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def is_alive(store: StateStore) -> bool:
    """Check whether the process recorded in ``store`` is running.

    Never raises: an absent, unreadable or malformed PID reads as not alive.
    """
    try:
        recorded = store.read_pid()
    except Exception as e:
        logger.debug(f"Cannot read pid from {store.state_dir}: {e}")
        return False

    pid = parse_pid(recorded)
    if pid is None:
        return False
    return probe(pid).is_alive
