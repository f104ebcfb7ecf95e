"""Tests for configuration loading and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from tagaloop.config import load_config, setup_logging
from tagaloop.models import TagaloopConfig


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / "absent.yaml") == TagaloopConfig()

    def test_values_loaded(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "scrypt_n": 1024,
            "prompt_name": "vault",
            "history_file": "~/hist",
        }), encoding="utf-8")

        config = load_config(path)
        assert config.scrypt_n == 1024
        assert config.prompt_name == "vault"
        assert config.history_file == Path("~/hist").expanduser()
        assert config.kdf_params().n == 1024

    def test_invalid_yaml_gives_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("scrypt_n: [unterminated", encoding="utf-8")
        assert load_config(path) == TagaloopConfig()

    def test_invalid_values_give_defaults(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"scrypt_n": "lots"}), encoding="utf-8")
        assert load_config(path) == TagaloopConfig()

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == TagaloopConfig()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "tagaloop.log"
        setup_logging(TagaloopConfig(log_file=log_file, log_level="INFO"))

        logging.getLogger("tagaloop.test").info("hello from the test")
        for handler in logging.getLogger("tagaloop").handlers:
            handler.flush()

        assert "hello from the test" in log_file.read_text()
        assert logging.getLogger("tagaloop").level == logging.INFO

    def test_stderr_handler_at_warning(self):
        setup_logging(TagaloopConfig(log_level="DEBUG"))
        root = logging.getLogger("tagaloop")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING

    def test_idempotent(self):
        setup_logging(TagaloopConfig())
        setup_logging(TagaloopConfig())
        assert len(logging.getLogger("tagaloop").handlers) == 1
