"""
Error types raised by procwatch.

Launch, stop and exit-code lookups raise these synchronously. Wait failures
inside a monitor have no caller, so they are recorded in the state directory's
``error`` file instead of being raised.
"""


class ProcwatchError(Exception):
    """Base class for all procwatch errors."""


class InvalidConfig(ProcwatchError, ValueError):
    """Raised when a process configuration cannot be used."""


class AlreadyRunning(ProcwatchError):
    """Raised when a PID is already recorded for the state directory."""

    def __init__(self, state_dir, pid: str | None = None):
        self.state_dir = str(state_dir)
        self.pid = pid
        if pid:
            message = f"process already started in {self.state_dir} (pid {pid})"
        else:
            message = f"launch already in progress in {self.state_dir}"
        super().__init__(message)


class NotRunning(ProcwatchError):
    """Raised when an operation needs a recorded PID and there is none."""

    def __init__(self, state_dir, message: str = "no pid recorded"):
        self.state_dir = str(state_dir)
        super().__init__(f"{message} in {self.state_dir}")


class ExitCodeNotFound(NotRunning):
    """Raised when no exit code has been recorded yet."""

    def __init__(self, state_dir):
        super().__init__(state_dir, "no exit code recorded")


class StateIOError(ProcwatchError):
    """Raised when the state directory or one of its files cannot be accessed."""


class SpawnError(ProcwatchError):
    """Raised when the OS refuses to start the process."""


class SignalError(ProcwatchError):
    """Raised when the termination signal cannot be delivered."""

    def __init__(self, pid: int, signum: int, reason: str):
        self.pid = pid
        self.signum = signum
        super().__init__(f"failed to send signal {signum} to pid {pid}: {reason}")


class WaitError(ProcwatchError):
    """The OS could not report a child's termination.

    Only ever recorded by a monitor, never raised to a caller.
    """
