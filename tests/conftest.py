"""Shared fixtures for procwatch tests."""

import time

import pytest

from procwatch.models import ProcessConfig
from procwatch.monitor import MonitorRegistry
from procwatch.process import ProcessHandle
from procwatch.state import StateStore

SH = "/bin/sh"


def _eventually(predicate, timeout: float = 10.0, interval: float = 0.05) -> bool:
    """Poll ``predicate`` until it returns truthy or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while True:
        if predicate():
            return True
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)


@pytest.fixture
def eventually():
    return _eventually


@pytest.fixture
def state_dir(tmp_path):
    return tmp_path / "state"


@pytest.fixture
def store(state_dir):
    return StateStore(state_dir)


@pytest.fixture
def registry():
    return MonitorRegistry()


@pytest.fixture
def make_handle(state_dir, registry):
    """Build handles running /bin/sh scripts; kills anything left running."""
    handles = []

    def factory(script: str, **kwargs) -> ProcessHandle:
        kwargs.setdefault("state_dir", str(state_dir))
        config = ProcessConfig(executable=SH, args=["-c", script], **kwargs)
        handle = ProcessHandle(config, registry=registry)
        handles.append(handle)
        return handle

    yield factory

    for handle in handles:
        process = handle.process
        if process is not None and process.poll() is None:
            process.kill()
            process.wait()
