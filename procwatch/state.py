"""
Persistent process record.

Each supervised process owns a state directory holding a few small text files:
``pid``, ``exitcode``, ``error`` and the ``run`` token of the latest launch,
plus the ``stdout``/``stderr`` sinks the
child writes to. Any StateStore pointed at the same directory sees the same
record, which is what lets a fresh supervisor re-attach to a process it did
not start.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path

from .errors import AlreadyRunning, StateIOError

logger = logging.getLogger(__name__)

PID_FILE = "pid"
EXIT_CODE_FILE = "exitcode"
ERROR_FILE = "error"
RUN_FILE = "run"
STDOUT_FILE = "stdout"
STDERR_FILE = "stderr"
LOCK_FILE = "launch.lock"


class StateStore:
    """Reads and writes the record files of one state directory."""

    def __init__(self, state_dir):
        self.state_dir = Path(state_dir)

    def path(self, name: str) -> Path:
        return self.state_dir / name

    @property
    def stdout_path(self) -> Path:
        return self.path(STDOUT_FILE)

    @property
    def stderr_path(self) -> Path:
        return self.path(STDERR_FILE)

    def exists(self) -> bool:
        return self.state_dir.is_dir()

    def ensure_dir(self):
        """Create the state directory (and parents) if it is missing."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StateIOError(f"cannot create state directory {self.state_dir}: {e}") from e

    def _read(self, name: str) -> str | None:
        try:
            return self.path(name).read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StateIOError(f"cannot read {self.path(name)}: {e}") from e

    def _write(self, name: str, value: str):
        try:
            self.path(name).write_text(value)
        except OSError as e:
            raise StateIOError(f"cannot write {self.path(name)}: {e}") from e

    def _remove(self, name: str):
        try:
            self.path(name).unlink(missing_ok=True)
        except OSError as e:
            raise StateIOError(f"cannot remove {self.path(name)}: {e}") from e

    def read_pid(self) -> str | None:
        """Return the recorded PID, or None if none is recorded."""
        pid = self._read(PID_FILE)
        if pid is None:
            return None
        pid = pid.strip()
        return pid or None

    def write_pid(self, pid: int):
        self._write(PID_FILE, str(pid))

    def clear_pid(self):
        self._remove(PID_FILE)

    def read_run_id(self) -> str | None:
        """Return the token of the most recent launch in this directory."""
        run_id = self._read(RUN_FILE)
        return run_id.strip() if run_id is not None else None

    def write_run_id(self, run_id: str):
        self._write(RUN_FILE, run_id)

    def read_exit_code(self) -> str | None:
        code = self._read(EXIT_CODE_FILE)
        return code.strip() if code is not None else None

    def write_exit_code(self, code: int):
        self._write(EXIT_CODE_FILE, str(code))

    def read_error(self) -> str | None:
        return self._read(ERROR_FILE)

    def write_error(self, message: str):
        self._write(ERROR_FILE, message)

    def clear_outcome(self):
        """Remove the exit code and error left behind by a previous run."""
        self._remove(EXIT_CODE_FILE)
        self._remove(ERROR_FILE)

    @contextmanager
    def launch_lock(self):
        """Hold the advisory launch lock for the duration of the block.

        The lock is a file created with O_EXCL. If another launch holds it,
        AlreadyRunning is raised immediately rather than waiting.
        """
        lock_path = self.path(LOCK_FILE)
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as e:
            logger.warning(f"Launch lock {lock_path} is held by another launcher")
            raise AlreadyRunning(self.state_dir) from e
        except OSError as e:
            raise StateIOError(f"cannot create lock {lock_path}: {e}") from e

        try:
            try:
                os.write(fd, str(os.getpid()).encode())
            finally:
                os.close(fd)
            yield
        finally:
            try:
                lock_path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to remove launch lock {lock_path}: {e}")
