"""
Data models for procwatch.

ProcessConfig describes what to run and where its state lives. ProcessStatus
is a point-in-time view of a state directory, built from the persistent record
and a liveness probe.
"""

import dataclasses
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Optional, Union

from .errors import InvalidConfig


def _inherited_environment() -> dict[str, str]:
    return dict(os.environ)


@dataclass(frozen=True)
class ProcessConfig:
    """A fully resolved process definition. Immutable once built."""

    executable: str = ""
    args: tuple[str, ...] = ()
    environment: dict[str, str] = field(default_factory=_inherited_environment)
    working_dir: Optional[str] = None  # None runs in the supervisor's cwd
    state_dir: str = ""
    kill_signal: Union[str, int, None] = None  # None means SIGKILL
    stdin: Union[IO, int, None] = None  # None means /dev/null

    def __post_init__(self):
        # Accept any iterable of args but store a tuple
        object.__setattr__(self, "args", tuple(str(a) for a in self.args))
        if self.state_dir:
            object.__setattr__(self, "state_dir", str(self.state_dir))

    def validate(self):
        """Raise InvalidConfig unless the config can be launched."""
        if not self.executable:
            raise InvalidConfig("executable path must not be empty")
        if not self.state_dir:
            raise InvalidConfig("state directory must not be empty")

    def with_temporary_state_dir(self) -> "ProcessConfig":
        """Return a copy pointing at a newly created temporary state directory."""
        state_dir = tempfile.mkdtemp(prefix="procwatch-")
        return dataclasses.replace(self, state_dir=state_dir)

    @property
    def argv(self) -> list[str]:
        """Argument vector, prefixed with the executable name."""
        return [self.executable, *self.args]


@dataclass
class ProcessStatus:
    """Snapshot of a state directory."""

    state_dir: Path
    pid: Optional[str] = None
    alive: bool = False
    exit_code: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "state_dir": str(self.state_dir),
            "pid": self.pid,
            "alive": self.alive,
            "exit_code": self.exit_code,
            "error": self.error,
        }
