"""
procwatch - durable supervision of a single external process.

Launches a process with its output redirected into a state directory, records
its PID and exit status there, and lets any later supervisor re-attach to the
state directory to check liveness, read output or stop the process.
"""

__version__ = "0.1.0"

from .errors import (  # noqa: E402
    AlreadyRunning,
    ExitCodeNotFound,
    InvalidConfig,
    NotRunning,
    ProcwatchError,
    SignalError,
    SpawnError,
    StateIOError,
    WaitError,
)
from .models import ProcessConfig, ProcessStatus  # noqa: E402
from .process import ProcessHandle  # noqa: E402

__all__ = [
    "AlreadyRunning",
    "ExitCodeNotFound",
    "InvalidConfig",
    "NotRunning",
    "ProcessConfig",
    "ProcessHandle",
    "ProcessStatus",
    "ProcwatchError",
    "SignalError",
    "SpawnError",
    "StateIOError",
    "WaitError",
]
