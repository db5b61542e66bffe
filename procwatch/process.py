"""
Process handle for supervised processes.

A ProcessHandle launches a process and answers questions about it. Only the
handle that launched holds the in-memory subprocess reference; liveness, stop
and exit status work from the state directory alone, so a handle created with
``ProcessHandle.attach(state_dir)`` in a later supervisor run can control a
process it did not start.
"""

import subprocess
from pathlib import Path
from typing import Optional

from . import launcher, liveness, terminator
from .errors import AlreadyRunning, ExitCodeNotFound, InvalidConfig, StateIOError
from .models import ProcessConfig, ProcessStatus
from .monitor import MonitorRegistry, MonitorTask, monitor_registry
from .state import StateStore

OUTPUT_STREAMS = ("stdout", "stderr")


class ProcessHandle:
    """Launch, inspect and stop one process identified by its state directory."""

    def __init__(self, config: ProcessConfig, registry: Optional[MonitorRegistry] = None):
        self._config = config
        self._registry = registry or monitor_registry
        self._process: Optional[subprocess.Popen] = None
        self._monitor: Optional[MonitorTask] = None

    @classmethod
    def attach(cls, state_dir, **kwargs) -> "ProcessHandle":
        """Build a handle for an existing state directory."""
        return cls(ProcessConfig(state_dir=str(state_dir), **kwargs))

    @property
    def config(self) -> ProcessConfig:
        return self._config

    @property
    def store(self) -> StateStore:
        if not self._config.state_dir:
            raise InvalidConfig("state directory must not be empty")
        return StateStore(self._config.state_dir)

    @property
    def state_dir(self) -> Path:
        return self.store.state_dir

    @property
    def stdout_path(self) -> Path:
        return self.store.stdout_path

    @property
    def stderr_path(self) -> Path:
        return self.store.stderr_path

    @property
    def pid(self) -> Optional[str]:
        """The PID recorded in the state directory, if any."""
        return self.store.read_pid()

    @property
    def process(self) -> Optional[subprocess.Popen]:
        """The subprocess started by this handle, if it launched one."""
        return self._process

    def launch(self):
        """Start the process. Raises AlreadyRunning, SpawnError or StateIOError."""
        self._process, self._monitor = launcher.launch(self._config, self.store, self._registry)

    def is_alive(self) -> bool:
        """Check whether the recorded process is running. Never raises."""
        if not self._config.state_dir:
            return False
        return liveness.is_alive(self.store)

    def stop(self):
        """Send the kill signal to the recorded process and clear its PID."""
        terminator.stop(self.store, self._config.kill_signal)
        self._process = None

    def release(self):
        """Forget a recorded PID whose process has already exited.

        The PID is left in place when a process exits on its own, which blocks
        further launches in the same state directory until it is released.
        """
        store = self.store
        recorded = store.read_pid()
        if recorded is not None and liveness.is_alive(store):
            raise AlreadyRunning(store.state_dir, recorded)
        store.clear_pid()
        self._process = None

    def exit_code(self) -> str:
        """Return the recorded exit code. Raises ExitCodeNotFound if there is none."""
        code = self.store.read_exit_code()
        if code is None:
            raise ExitCodeNotFound(self.state_dir)
        return code

    def error(self) -> Optional[str]:
        """Return the recorded wait failure, if any."""
        return self.store.read_error()

    def read_output(self, stream: str = "stdout") -> bytes:
        """Return everything the process has written to ``stream`` so far."""
        if stream not in OUTPUT_STREAMS:
            raise ValueError(f"unknown stream {stream!r}, expected one of {OUTPUT_STREAMS}")
        path = self.store.path(stream)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return b""
        except OSError as e:
            raise StateIOError(f"cannot read {path}: {e}") from e

    def status(self) -> ProcessStatus:
        store = self.store
        return ProcessStatus(
            state_dir=store.state_dir,
            pid=store.read_pid(),
            alive=liveness.is_alive(store),
            exit_code=store.read_exit_code(),
            error=store.read_error(),
        )

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until the monitor of this handle's launch has finished.

        A handle that launched waits on its own monitor, even if the state
        directory has been relaunched since. Otherwise the wait falls back to
        whatever monitor this supervisor has for the directory, and returns
        False if there is none (for example after re-attaching) or on timeout.
        """
        if self._monitor is not None:
            return self._monitor.wait(timeout)
        return self._registry.wait(self.state_dir, timeout)

    def __repr__(self):
        return f"ProcessHandle(executable={self._config.executable!r}, state_dir={self._config.state_dir!r})"
