"""
Configuration for the procwatch service.

Loads settings from environment variables with sensible defaults.
All persistent data is stored in ~/.procwatch/ unless PROCWATCH_DATA_DIR says
otherwise.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    """procwatch service settings."""

    # Paths
    data_dir: Path = Path(os.environ.get("PROCWATCH_DATA_DIR", str(Path.home() / ".procwatch")))
    state_root: Path = None
    log_file: Path = None

    # Logging
    log_max_bytes: int = int(os.environ.get("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    log_backup_count: int = int(os.environ.get("LOG_BACKUP_COUNT", "5"))

    # Server
    host: str = os.environ.get("PROCWATCH_HOST", "127.0.0.1")
    port: int = int(os.environ.get("PROCWATCH_PORT", "9910"))

    # Process management
    kill_signal: str = os.environ.get("PROCWATCH_KILL_SIGNAL", "")  # empty means SIGKILL
    monitor_retention: int = int(os.environ.get("MONITOR_RETENTION", "100"))

    def __post_init__(self):
        """Initialize derived paths."""
        self.data_dir = Path(self.data_dir)
        self.state_root = self.data_dir / "processes"
        self.log_file = self.data_dir / "procwatch.log"

    def ensure_dirs(self):
        """Create the data and state directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.state_root.mkdir(parents=True, exist_ok=True)


settings = Settings()
