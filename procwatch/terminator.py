"""
Stopping recorded processes.

A stop only needs the state directory: the PID comes from the persistent
record and the signal is delivered by PID, so any supervisor instance can stop
a process another instance launched.
"""

import logging
import os
import signal

from .errors import InvalidConfig, NotRunning, SignalError
from .liveness import parse_pid
from .state import StateStore

logger = logging.getLogger(__name__)

DEFAULT_KILL_SIGNAL = signal.SIGKILL


def parse_signal(value) -> signal.Signals:
    """Resolve a signal identifier such as 9, "9", "TERM" or "SIGTERM"."""
    if value is None or value == "":
        return DEFAULT_KILL_SIGNAL
    if isinstance(value, str):
        name = value.strip().upper()
        if name.lstrip("-").isdigit():
            value = int(name.lstrip("-"))
        else:
            if not name.startswith("SIG"):
                name = f"SIG{name}"
            try:
                return signal.Signals[name]
            except KeyError:
                raise InvalidConfig(f"unknown signal {value!r}") from None
    try:
        return signal.Signals(value)
    except ValueError:
        raise InvalidConfig(f"unknown signal {value!r}") from None


def stop(store: StateStore, kill_signal=None) -> int:
    """Signal the recorded process and clear its PID.

    Returns the PID that was signalled. Raises NotRunning if no PID is
    recorded and SignalError if the signal could not be delivered, in which
    case the PID stays recorded.
    """
    sig = parse_signal(kill_signal)
    recorded = store.read_pid()
    if recorded is None:
        raise NotRunning(store.state_dir)

    pid = parse_pid(recorded)
    if pid is None or pid <= 0:
        raise SignalError(-1, int(sig), f"invalid pid {recorded!r} recorded")

    try:
        os.kill(pid, sig)
    except (OSError, OverflowError) as e:
        logger.warning(f"Failed to send {sig.name} to pid {pid}: {e}")
        raise SignalError(pid, int(sig), getattr(e, "strerror", None) or str(e)) from e

    store.clear_pid()
    logger.info(f"Sent {sig.name} to pid {pid}, cleared {store.state_dir}")
    return pid
