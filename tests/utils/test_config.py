"""Tests for configuration loading."""

import pytest

from clusterlog.utils.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "CLUSTERLOG_MAX_SUMMARY",
        "CLUSTERLOG_FEATURES",
        "CLUSTERLOG_DATA_DIR",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Test Config."""

    def test_defaults(self):
        """Test built-in defaults are present."""
        config = Config()

        assert config.get("cluster_log.max_summary") == 50
        assert config.get("cluster_log.features") == "all"
        assert config.get("logging.level") == "INFO"

    def test_missing_key_default(self):
        """Test the caller's default for unknown keys."""
        config = Config()

        assert config.get("cluster_log.nope", 7) == 7
        assert config.get("nope.deeper") is None

    def test_file_merged_over_defaults(self, tmp_path):
        """Test a user file overrides only what it sets."""
        path = tmp_path / "clusterlog.yaml"
        path.write_text("cluster_log:\n  max_summary: 500\n")

        config = Config(str(path))

        assert config.get("cluster_log.max_summary") == 500
        assert config.get("cluster_log.features") == "all"

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file is ignored."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert Config(str(path)).get("cluster_log.max_summary") == 50

    def test_env_overrides(self, tmp_path, monkeypatch):
        """Test environment variables beat files."""
        path = tmp_path / "clusterlog.yaml"
        path.write_text("cluster_log:\n  max_summary: 500\n")
        monkeypatch.setenv("CLUSTERLOG_MAX_SUMMARY", "20")
        monkeypatch.setenv("CLUSTERLOG_FEATURES", "channels")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = Config(str(path))

        assert config.get("cluster_log.max_summary") == 20
        assert config.get("cluster_log.features") == "channels"
        assert config.get("logging.level") == "DEBUG"

    def test_set(self):
        """Test dot-notation set creates intermediate sections."""
        config = Config()

        config.set("a.b.c", 1)

        assert config.get("a.b.c") == 1
        assert config.to_dict()["a"] == {"b": {"c": 1}}

    def test_instances_do_not_share_state(self):
        """Test defaults are copied per instance."""
        first = Config()
        first.set("cluster_log.max_summary", 1)

        assert Config().get("cluster_log.max_summary") == 50


class TestGlobalConfig:
    """Test get_config/reset_config."""

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset(self):
        first = get_config()
        reset_config()

        assert get_config() is not first
