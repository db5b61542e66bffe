import logging
from logging.handlers import RotatingFileHandler

import pytest

from procwatch.config import Settings
from procwatch.logs import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_settings_derive_paths(tmp_path):
    cfg = Settings(data_dir=tmp_path / "data")

    assert cfg.state_root == tmp_path / "data" / "processes"
    assert cfg.log_file == tmp_path / "data" / "procwatch.log"
    assert not cfg.state_root.exists()

    cfg.ensure_dirs()
    assert cfg.state_root.is_dir()


def test_configure_logging_writes_rotating_file(tmp_path, restore_root_logger):
    cfg = Settings(data_dir=tmp_path / "data", log_max_bytes=1024, log_backup_count=2)

    configure_logging(cfg)
    logging.getLogger("procwatch.test").info("hello from the test")

    file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 1024
    assert file_handlers[0].backupCount == 2
    file_handlers[0].flush()
    assert "hello from the test" in cfg.log_file.read_text()
