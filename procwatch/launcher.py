"""
Process launcher.

Starts the configured executable with stdout/stderr appended to files in the
state directory, records its PID and hands it to a monitor. The "no PID
recorded" check and the PID write run under the state directory's launch lock,
so two launchers racing on one directory cannot both succeed. Every launch also
writes a fresh run token next to the PID; a monitor only records an outcome
while its token is still the current one.
"""

import logging
import subprocess
import uuid

from . import liveness
from .errors import AlreadyRunning, SpawnError, StateIOError
from .models import ProcessConfig
from .monitor import MonitorRegistry, MonitorTask
from .state import StateStore

logger = logging.getLogger(__name__)

# How long a launch waits for the monitor of an exited child to finish recording
MONITOR_SETTLE_TIMEOUT = 2.0


def _open_log(path):
    try:
        return open(path, "ab")
    except OSError as e:
        raise StateIOError(f"cannot open log {path}: {e}") from e


def _settled(task: MonitorTask) -> bool:
    """Whether an earlier monitor in this directory has finished with the record."""
    if task.done:
        return True
    if liveness.probe(task.pid).is_alive:
        return False
    return task.wait(MONITOR_SETTLE_TIMEOUT)


def spawn(config: ProcessConfig, store: StateStore) -> subprocess.Popen:
    """Start the OS process. Raises SpawnError if the OS refuses."""
    stdout_log = _open_log(store.stdout_path)
    try:
        stderr_log = _open_log(store.stderr_path)
    except StateIOError:
        stdout_log.close()
        raise

    # The child keeps its own descriptors; ours are closed once it has started
    with stdout_log, stderr_log:
        try:
            return subprocess.Popen(
                config.argv,
                stdin=config.stdin if config.stdin is not None else subprocess.DEVNULL,
                stdout=stdout_log,
                stderr=stderr_log,
                cwd=config.working_dir,
                env=config.environment,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to start {config.executable}: {e}")
            raise SpawnError(str(e)) from e


def launch(config: ProcessConfig, store: StateStore, registry: MonitorRegistry) -> tuple[subprocess.Popen, MonitorTask]:
    """Launch ``config`` and start monitoring it.

    Raises AlreadyRunning if a PID is already recorded, whether or not that
    process is still alive, or if this supervisor is still monitoring an
    earlier launch in the same directory. A failed spawn leaves the record
    untouched. Returns the child and the monitor watching it.
    """
    config.validate()
    store.ensure_dir()

    with store.launch_lock():
        recorded = store.read_pid()
        if recorded is not None:
            logger.warning(f"Refusing to launch in {store.state_dir}: pid {recorded} is recorded")
            raise AlreadyRunning(store.state_dir, recorded)

        previous = registry.get(store.state_dir)
        if previous is not None and not _settled(previous):
            logger.warning(f"Refusing to launch in {store.state_dir}: pid {previous.pid} has not exited yet")
            raise AlreadyRunning(store.state_dir, str(previous.pid))

        process = spawn(config, store)
        run_id = uuid.uuid4().hex

        try:
            store.clear_outcome()
            store.write_run_id(run_id)
            store.write_pid(process.pid)
        except StateIOError:
            # An unrecorded child could never be found again
            process.kill()
            process.wait()
            raise

        task = registry.start(process, store, run_id)

    logger.info(f"Started {config.executable} with PID {process.pid} in {store.state_dir}")
    return process, task
