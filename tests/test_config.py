"""Tests for tree_sync.config module.

Validates defaults, persistence, merging of stored values and the
clamping setters.
"""

import json

import pytest

from tree_sync.config import DEFAULT_CONFIG, ENGINE_DIFF, ENGINE_FULL, Config


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "settings" / "config.json"


class TestDefaults:
    """A missing config file is created with defaults."""

    def test_file_created(self, config_path):
        config = Config(config_path)
        assert config.path == config_path
        assert json.loads(config_path.read_text()) == DEFAULT_CONFIG

    def test_default_values(self, config_path):
        config = Config(config_path)
        assert config.source_folder == ""
        assert config.destination_folder == ""
        assert config.mtime_tolerance_ms == 0
        assert config.engine == ENGINE_FULL
        assert config.watch is False
        assert config.use_polling_observer is False
        assert config.event_queue_size == 10000
        assert config.log_level == "INFO"
        assert config.is_configured() is False


class TestPersistence:

    def test_round_trip(self, config_path):
        config = Config(config_path)
        config.source_folder = "/data/in"
        config.destination_folder = "/data/out"
        config.mtime_tolerance_ms = 2000
        config.engine = ENGINE_DIFF
        config.save()

        reloaded = Config(config_path)
        assert reloaded.source_folder == "/data/in"
        assert reloaded.destination_folder == "/data/out"
        assert reloaded.mtime_tolerance_ms == 2000
        assert reloaded.engine == ENGINE_DIFF
        assert reloaded.is_configured() is True

    def test_stored_values_merged_over_defaults(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text(json.dumps({"watch": True}))
        config = Config(config_path)
        assert config.watch is True
        assert config.poll_interval == 0.5

    def test_corrupt_file_uses_defaults(self, config_path):
        config_path.parent.mkdir(parents=True)
        config_path.write_text("{not json")
        config = Config(config_path)
        assert config.engine == ENGINE_FULL
        # the broken file is left for the user to fix
        assert config_path.read_text() == "{not json"


class TestSetters:
    """Out-of-range values are clamped rather than rejected."""

    @pytest.mark.parametrize(
        "attr, value, expected",
        [
            ("mtime_tolerance_ms", -5, 0),
            ("polling_interval", 0.01, 0.1),
            ("event_queue_size", 0, 1),
            ("poll_interval", 0.0, 0.05),
            ("max_log_size_mb", 0, 1),
            ("log_backup_count", -1, 0),
        ],
    )
    def test_clamped(self, config_path, attr, value, expected):
        config = Config(config_path)
        setattr(config, attr, value)
        assert getattr(config, attr) == expected

    def test_unknown_engine_falls_back(self, config_path):
        config = Config(config_path)
        config.engine = "rsync"
        assert config.engine == ENGINE_FULL

    def test_log_level_upper_cased(self, config_path):
        config = Config(config_path)
        config.log_level = "debug"
        assert config.log_level == "DEBUG"

    def test_explicit_log_file(self, config_path, tmp_path):
        config = Config(config_path)
        config.log_file = tmp_path / "custom.log"
        assert config.log_file == tmp_path / "custom.log"
