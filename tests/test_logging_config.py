import logging
from logging.handlers import RotatingFileHandler

import pytest
from rich.logging import RichHandler

from libvault import logging_config


@pytest.fixture
def fresh_root(monkeypatch):
    monkeypatch.setattr(logging_config, "_initialized", False)
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_setup_logging_writes_daily_file(fresh_root, tmp_path):
    path = logging_config.setup_logging(log_dir=str(tmp_path / "logs"), level="DEBUG")

    assert path.parent == tmp_path / "logs"
    assert path.name.startswith("library-manager_") and path.suffix == ".log"
    assert any(isinstance(h, RotatingFileHandler) for h in fresh_root.handlers)
    assert any(isinstance(h, RichHandler) for h in fresh_root.handlers)

    logging.getLogger("libvault.test").info("hello from the test")
    for h in fresh_root.handlers:
        h.flush()
    assert "hello from the test" in path.read_text(encoding="utf-8")


def test_setup_logging_runs_once(fresh_root, tmp_path):
    assert logging_config.setup_logging(log_dir=str(tmp_path)) is not None
    count = len(fresh_root.handlers)
    assert logging_config.setup_logging(log_dir=str(tmp_path)) is None
    assert len(fresh_root.handlers) == count


def test_unwritable_log_dir_keeps_console(fresh_root, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    assert logging_config.setup_logging(log_dir=str(blocker / "logs")) is None
    assert any(isinstance(h, RichHandler) for h in fresh_root.handlers)
