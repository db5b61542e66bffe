"""
Exit monitoring for launched processes.

Each successful launch starts one monitor: a daemon thread blocked on the
child's wait() that writes the outcome to the state directory. Monitors are
tracked in a process-wide registry keyed by state directory so they can be
inspected and waited on, but they cannot be cancelled. If the supervisor exits
before the child does, the outcome is never recorded. A monitor whose state
directory has since been relaunched under another run token leaves the record
alone.
"""

import logging
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import settings
from .errors import StateIOError, WaitError
from .state import StateStore

logger = logging.getLogger(__name__)


class MonitorStatus(Enum):
    RUNNING = "running"
    EXITED = "exited"
    FAILED = "failed"


@dataclass
class MonitorTask:
    """A monitor watching one launched process."""

    state_dir: str
    pid: int
    run_id: Optional[str] = None
    status: MonitorStatus = MonitorStatus.RUNNING
    exit_code: Optional[int] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the outcome is recorded. Returns False on timeout."""
        return self._done.wait(timeout)

    def to_dict(self) -> dict:
        return {
            "state_dir": self.state_dir,
            "pid": self.pid,
            "run_id": self.run_id,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def _key(state_dir) -> str:
    return str(Path(state_dir).resolve())


class MonitorRegistry:
    """Tracks the monitors started by this supervisor."""

    def __init__(self, max_completed: int = 100):
        self._tasks: dict[str, MonitorTask] = {}
        self._lock = threading.Lock()
        self._max_completed = max_completed

    def start(self, process: subprocess.Popen, store: StateStore, run_id: Optional[str] = None) -> MonitorTask:
        """Start watching ``process`` and record its outcome in ``store``.

        With a ``run_id`` the outcome is only written while the state
        directory still carries that token, so a late exit never lands in the
        record of a newer launch.
        """
        task = MonitorTask(state_dir=_key(store.state_dir), pid=process.pid, run_id=run_id)

        with self._lock:
            self._tasks[task.state_dir] = task
            self._cleanup_old_tasks()

        thread = threading.Thread(
            target=self._watch,
            args=(task, process, store),
            name=f"procwatch-monitor-{process.pid}",
            daemon=True,
        )
        thread.start()
        logger.debug(f"Monitor started for pid {process.pid} in {task.state_dir}")
        return task

    def get(self, state_dir) -> Optional[MonitorTask]:
        with self._lock:
            return self._tasks.get(_key(state_dir))

    def list_tasks(self, status: Optional[MonitorStatus] = None) -> list[MonitorTask]:
        """List monitors, newest first, optionally filtered by status."""
        with self._lock:
            tasks = list(self._tasks.values())

        if status:
            tasks = [t for t in tasks if t.status == status]

        return sorted(tasks, key=lambda t: t.started_at, reverse=True)

    def wait(self, state_dir, timeout: Optional[float] = None) -> bool:
        """Wait for the monitor of ``state_dir``.

        Returns True once its outcome is recorded, False on timeout or if this
        supervisor never monitored that directory.
        """
        task = self.get(state_dir)
        if task is None:
            return False
        return task.wait(timeout)

    def _owns_record(self, task: MonitorTask, store: StateStore) -> bool:
        """Whether the state directory still belongs to the run ``task`` watches."""
        if task.run_id is None:
            return True
        current = store.read_run_id()
        if current != task.run_id:
            logger.warning(
                f"Not recording outcome of pid {task.pid}: {task.state_dir} was relaunched (run {current})"
            )
            return False
        return True

    def _watch(self, task: MonitorTask, process: subprocess.Popen, store: StateStore):
        try:
            returncode = process.wait()
        except Exception as e:
            error = WaitError(f"wait for pid {task.pid} failed: {e}")
            logger.error(f"{error} ({task.state_dir})")
            try:
                if self._owns_record(task, store):
                    store.write_error(str(error))
                    store.clear_pid()
            except StateIOError as io_err:
                logger.error(f"Could not record wait failure for pid {task.pid}: {io_err}")
            task.error = str(error)
            task.status = MonitorStatus.FAILED
        else:
            logger.info(f"Process {task.pid} exited with code {returncode}")
            try:
                if self._owns_record(task, store):
                    store.write_exit_code(returncode)
            except StateIOError as io_err:
                logger.error(f"Could not record exit code for pid {task.pid}: {io_err}")
            task.exit_code = returncode
            task.status = MonitorStatus.EXITED
        finally:
            task.completed_at = datetime.now()
            task._done.set()

    def _cleanup_old_tasks(self):
        """Drop the oldest finished monitors beyond the retention limit."""
        finished = [t for t in self._tasks.values() if t.done]

        if len(finished) > self._max_completed:
            finished.sort(key=lambda t: t.completed_at or datetime.min)
            for task in finished[: len(finished) - self._max_completed]:
                del self._tasks[task.state_dir]


# Global monitor registry
monitor_registry = MonitorRegistry(max_completed=settings.monitor_retention)
