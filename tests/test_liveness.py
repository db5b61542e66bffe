import os
import subprocess

import psutil
import pytest

from procwatch import liveness
from procwatch.liveness import Liveness, classify, parse_pid, probe


@pytest.mark.parametrize(
    "error, expected",
    [
        (None, Liveness.ALIVE),
        (psutil.ZombieProcess(1234), Liveness.FINISHED),
        (psutil.AccessDenied(1234), Liveness.FOREIGN),
        (PermissionError(1, "Operation not permitted"), Liveness.FOREIGN),
        (psutil.NoSuchProcess(1234), Liveness.GONE),
        (ProcessLookupError(3, "No such process"), Liveness.GONE),
        (OSError(22, "Invalid argument"), Liveness.UNKNOWN),
        (OverflowError("signed integer is greater than maximum"), Liveness.UNKNOWN),
        (RuntimeError("unexpected"), Liveness.UNKNOWN),
    ],
)
def test_classify(error, expected):
    assert classify(error) is expected


def test_zombie_is_not_mistaken_for_missing_process():
    # ZombieProcess subclasses NoSuchProcess
    assert isinstance(psutil.ZombieProcess(1), psutil.NoSuchProcess)
    assert classify(psutil.ZombieProcess(1)) is Liveness.FINISHED


@pytest.mark.parametrize(
    "value, alive",
    [
        (Liveness.ALIVE, True),
        (Liveness.FOREIGN, True),
        (Liveness.FINISHED, False),
        (Liveness.GONE, False),
        (Liveness.UNKNOWN, False),
    ],
)
def test_liveness_is_alive(value, alive):
    assert value.is_alive is alive


@pytest.mark.parametrize(
    "value, expected",
    [("123", 123), (" 42\n", 42), ("", None), (None, None), ("abc", None), ("12x", None)],
)
def test_parse_pid(value, expected):
    assert parse_pid(value) == expected


def test_probe_own_process_is_alive():
    assert probe(os.getpid()) is Liveness.ALIVE


@pytest.mark.parametrize("pid", [0, -1])
def test_probe_non_positive_pid(pid):
    assert probe(pid) is Liveness.GONE


def test_probe_reaped_process_is_gone():
    proc = subprocess.Popen(["/bin/sh", "-c", "exit 0"])
    proc.wait()
    assert probe(proc.pid) is Liveness.GONE


def test_probe_unreaped_process_is_finished(eventually):
    proc = subprocess.Popen(["/bin/sh", "-c", "exit 0"])
    try:
        assert eventually(lambda: probe(proc.pid) is Liveness.FINISHED)
    finally:
        proc.wait()


class _DeniedProcess:
    def __init__(self, pid):
        self.pid = pid

    def send_signal(self, sig):
        raise psutil.AccessDenied(self.pid)


class _VanishedProcess:
    def __init__(self, pid):
        raise psutil.NoSuchProcess(pid)


def test_probe_permission_denied_counts_as_alive(monkeypatch):
    monkeypatch.setattr(liveness.psutil, "Process", _DeniedProcess)
    assert probe(4321) is Liveness.FOREIGN


def test_probe_process_vanished_during_lookup(monkeypatch):
    monkeypatch.setattr(liveness.psutil, "Process", _VanishedProcess)
    assert probe(4321) is Liveness.GONE


def test_is_alive_without_pid_file(store):
    store.ensure_dir()
    assert liveness.is_alive(store) is False


def test_is_alive_without_state_dir(store):
    assert liveness.is_alive(store) is False


def test_is_alive_with_own_pid(store):
    store.ensure_dir()
    store.write_pid(os.getpid())
    assert liveness.is_alive(store) is True


@pytest.mark.parametrize("content", ["", "not-a-pid", "-5", "0"])
def test_is_alive_with_unusable_pid(store, content):
    store.ensure_dir()
    store.path("pid").write_text(content)
    assert liveness.is_alive(store) is False


def test_is_alive_with_foreign_pid(store, monkeypatch):
    store.ensure_dir()
    store.write_pid(4321)
    monkeypatch.setattr(liveness.psutil, "Process", _DeniedProcess)
    assert liveness.is_alive(store) is True


def test_is_alive_when_pid_unreadable(store):
    store.ensure_dir()
    store.path("pid").mkdir()
    assert liveness.is_alive(store) is False
