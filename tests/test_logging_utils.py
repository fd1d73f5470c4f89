"""
Tests for installer log setup.
"""

import logging

from devenv_installer.logging_utils import configure_logging, reset_logging


class TestConfigureLogging:
    def test_writes_requested_file(self, tmp_path):
        path = tmp_path / "logs" / "install.log"
        assert configure_logging(str(path), also_console=False) == str(path)
        logging.getLogger("devenv_installer.test").info("resolved kitty")
        for h in logging.getLogger().handlers:
            h.flush()
        assert "resolved kitty" in path.read_text()

    def test_unwritable_path_falls_back_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        chosen = configure_logging(str(blocker / "install.log"), also_console=False)
        assert chosen == str(tmp_path / "devenv-installer.log")

    def test_repeated_calls_add_no_handlers(self, tmp_path):
        root = logging.getLogger()
        configure_logging(str(tmp_path / "a.log"))
        count = len(root.handlers)
        assert configure_logging(str(tmp_path / "b.log")) == str(tmp_path / "a.log")
        assert len(root.handlers) == count

    def test_reset_leaves_foreign_handlers(self, tmp_path):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            configure_logging(str(tmp_path / "a.log"))
            reset_logging()
            assert foreign in root.handlers
        finally:
            root.removeHandler(foreign)
