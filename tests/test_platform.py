"""Tests for platform detection and application paths."""

import sys

import pytest

from tree_sync import platform_utils
from tree_sync.config import Config


class TestFlags:

    def test_at_most_one_platform(self):
        flags = [platform_utils.IS_WINDOWS, platform_utils.IS_MACOS, platform_utils.IS_LINUX]
        assert sum(flags) <= 1

    def test_matches_sys_platform(self):
        assert platform_utils.IS_LINUX == sys.platform.startswith("linux")


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="XDG layout is Linux only")
class TestLinuxPaths:

    def test_config_dir_follows_xdg(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        config_dir = platform_utils.get_config_dir()
        assert config_dir == tmp_path / "TreeSync"
        assert config_dir.is_dir()

    def test_log_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert platform_utils.get_log_path() == tmp_path / "TreeSync" / "tree_sync.log"

    def test_default_config_location(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        config = Config()
        assert config.path == tmp_path / "TreeSync" / "config.json"
        assert config.path.exists()

    def test_blank_log_file_uses_platform_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        config = Config(tmp_path / "elsewhere.json")
        assert config.log_file == tmp_path / "TreeSync" / "tree_sync.log"
