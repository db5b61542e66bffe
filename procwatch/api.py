"""
procwatch FastAPI application.

Provides a REST API for launching, inspecting and stopping processes kept in
named state directories under the configured state root. Every request builds
a fresh ProcessHandle from the state directory, so a restarted server controls
processes started by an earlier one.

The endpoints are plain functions: launching, stopping and reading state do
blocking file and process work, so FastAPI runs them in its threadpool instead
of on the event loop.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import settings
from .errors import (
    AlreadyRunning,
    ExitCodeNotFound,
    InvalidConfig,
    NotRunning,
    SignalError,
    SpawnError,
    StateIOError,
)
from .models import ProcessConfig
from .monitor import MonitorStatus, monitor_registry
from .process import OUTPUT_STREAMS, ProcessHandle
from .terminator import parse_signal

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings.ensure_dirs()
    logger.info(f"Starting procwatch, state root {settings.state_root}")

    yield

    # Supervised processes outlive the server; only their monitors are lost
    running = monitor_registry.list_tasks(MonitorStatus.RUNNING)
    if running:
        logger.warning(f"Shutting down with {len(running)} unfinished monitors")
    logger.info("Shutting down procwatch...")


app = FastAPI(
    title="procwatch",
    description="Durable process supervisor",
    version=__version__,
    lifespan=lifespan,
)


class LaunchRequest(BaseModel):
    executable: str = Field(..., description="Path of the program to run")
    args: list[str] = Field(default_factory=list, description="Arguments after the program name")
    environment: Optional[dict[str, str]] = Field(
        None, description="Environment variables; the server's environment if omitted"
    )
    working_dir: Optional[str] = Field(None, description="Working directory")
    kill_signal: Optional[str] = Field(None, description="Signal used by stop, e.g. TERM or 9")


def _state_dir(name: str):
    if not NAME_PATTERN.match(name) or name in (".", ".."):
        raise HTTPException(status_code=400, detail=f"Invalid process name '{name}'")
    return settings.state_root / name


def _existing_handle(name: str, **kwargs) -> ProcessHandle:
    state_dir = _state_dir(name)
    if not state_dir.is_dir():
        raise HTTPException(status_code=404, detail=f"Process '{name}' not found")
    return ProcessHandle.attach(state_dir, **kwargs)


def _status_response(name: str, handle: ProcessHandle) -> dict:
    try:
        status = handle.status()
    except StateIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"name": name, **status.to_dict()}


@app.get("/api/status")
def get_status():
    """Get overall supervisor status."""
    tasks = monitor_registry.list_tasks()
    return {
        "version": __version__,
        "state_root": str(settings.state_root),
        "monitors": {
            "total": len(tasks),
            "running": len([t for t in tasks if t.status == MonitorStatus.RUNNING]),
        },
    }


@app.get("/api/processes")
def list_processes():
    """List every state directory under the state root."""
    if not settings.state_root.is_dir():
        return []
    names = sorted(p.name for p in settings.state_root.iterdir() if p.is_dir())
    return [_status_response(name, ProcessHandle.attach(settings.state_root / name)) for name in names]


@app.post("/api/processes/{name}/launch", status_code=201)
def launch_process(name: str, data: LaunchRequest):
    """Launch a process in the named state directory."""
    state_dir = _state_dir(name)

    kwargs = {
        "executable": data.executable,
        "args": data.args,
        "working_dir": data.working_dir,
        "state_dir": str(state_dir),
        "kill_signal": data.kill_signal or settings.kill_signal or None,
    }
    if data.environment is not None:
        kwargs["environment"] = data.environment

    handle = ProcessHandle(ProcessConfig(**kwargs))
    try:
        parse_signal(handle.config.kill_signal)
        handle.launch()
    except AlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (SpawnError, InvalidConfig) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StateIOError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return _status_response(name, handle)


@app.get("/api/processes/{name}")
def get_process(name: str):
    """Get the recorded state and liveness of a process."""
    return _status_response(name, _existing_handle(name))


@app.post("/api/processes/{name}/stop")
def stop_process(name: str, signal: Optional[str] = None):
    """Stop a process by signalling its recorded PID."""
    handle = _existing_handle(name, kill_signal=signal or settings.kill_signal or None)
    try:
        pid = handle.pid
        handle.stop()
    except NotRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidConfig as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SignalError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except StateIOError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "message": f"Process '{name}' stopped", "pid": pid}


@app.post("/api/processes/{name}/release")
def release_process(name: str):
    """Clear the recorded PID of a process that has exited."""
    handle = _existing_handle(name)
    try:
        handle.release()
    except AlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StateIOError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "message": f"Process '{name}' released"}


@app.get("/api/processes/{name}/exitcode")
def get_exit_code(name: str):
    """Get the recorded exit code of a process."""
    handle = _existing_handle(name)
    try:
        return {"name": name, "exit_code": handle.exit_code()}
    except ExitCodeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/api/processes/{name}/output/{stream}", response_class=PlainTextResponse)
def get_output(name: str, stream: str):
    """Get everything a process has written to stdout or stderr."""
    if stream not in OUTPUT_STREAMS:
        raise HTTPException(status_code=404, detail=f"Unknown stream '{stream}'")
    handle = _existing_handle(name)
    try:
        return handle.read_output(stream).decode("utf-8", errors="replace")
    except StateIOError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/monitors")
def list_monitors(status: Optional[str] = None):
    """List the monitors started by this server."""
    filter_status = None
    if status:
        try:
            filter_status = MonitorStatus(status)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    return [t.to_dict() for t in monitor_registry.list_tasks(filter_status)]
