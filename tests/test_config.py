"""Tests for ConfigManager."""

from pathlib import Path

import pytest

from media_tagger.config.config import ConfigManager, DEFAULT_CONFIG, get_data_config_path


class TestConfigManager:
    def test_default_config(self):
        cm = ConfigManager()
        assert cm.get("search.debounce_ms") == 300
        assert cm.get("storage.config_file") == "config.json"
        assert cm.get("export.version") == "1.0.0"

    def test_get_dotted_key(self):
        cm = ConfigManager()
        assert cm.get("search.file_threshold") == 0.1
        assert cm.get("nonexistent.key") is None
        assert cm.get("nonexistent.key", "fallback") == "fallback"

    def test_set_dotted_key(self):
        cm = ConfigManager()
        cm.set("search.tag_match_mode", "all")
        assert cm.get("search.tag_match_mode") == "all"

    def test_set_creates_nested_keys(self):
        cm = ConfigManager()
        cm.set("new.nested.key", "value")
        assert cm.get("new.nested.key") == "value"

    def test_save_and_load(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        cm = ConfigManager()
        cm.set("logging.level", "DEBUG")
        cm.save(config_path)

        cm2 = ConfigManager(config_path)
        assert cm2.get("logging.level") == "DEBUG"
        # Defaults should still be present
        assert cm2.get("search.folder_threshold") == 0.3

    def test_load_merges_with_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("search:\n  debounce_ms: 150\n")

        cm = ConfigManager(config_path)
        assert cm.get("search.debounce_ms") == 150
        assert cm.get("search.file_threshold") == 0.1
        assert cm.get("storage.config_file") == "config.json"

    def test_reset(self):
        cm = ConfigManager()
        cm.set("search.debounce_ms", 10)
        cm.reset()
        assert cm.get("search.debounce_ms") == 300

    def test_reset_does_not_share_defaults(self):
        cm = ConfigManager()
        cm.set("search.debounce_ms", 10)
        assert DEFAULT_CONFIG["search"]["debounce_ms"] == 300

    def test_data_dir_expands_user(self):
        cm = ConfigManager()
        cm.set("storage.data_dir", "~/tagger")
        assert cm.data_dir == Path.home() / "tagger"

    def test_no_path_raises(self):
        cm = ConfigManager()
        with pytest.raises(ValueError):
            cm.load()
        with pytest.raises(ValueError):
            cm.save()


class TestGetDataConfigPath:
    def test_basic(self):
        p = get_data_config_path("/data/tagger")
        assert p == Path("/data/tagger/media_tagger.yaml")

    def test_relative(self):
        p = get_data_config_path("tagger")
        assert p.name == "media_tagger.yaml"


class TestLayeredConfig:
    def test_load_layered_creates_data_config(self, tmp_path):
        """load_layered creates a config file in the data dir if none exists."""
        data_config = tmp_path / "media_tagger.yaml"
        assert not data_config.exists()

        cm = ConfigManager()
        cm.load_layered(data_config_path=data_config)
        assert data_config.exists()
        assert cm.get("search.debounce_ms") == 300

    def test_load_layered_reads_existing_data_config(self, tmp_path):
        data_config = tmp_path / "media_tagger.yaml"
        data_config.write_text("logging:\n  level: WARNING\n")

        cm = ConfigManager()
        cm.load_layered(data_config_path=data_config)
        assert cm.get("logging.level") == "WARNING"
        assert cm.get("search.debounce_ms") == 300

    def test_cli_config_overrides_data_config(self, tmp_path):
        data_config = tmp_path / "media_tagger.yaml"
        data_config.write_text("search:\n  tag_match_mode: all\n")

        cli_config = tmp_path / "cli.yaml"
        cli_config.write_text("search:\n  tag_match_mode: any\n")

        cm = ConfigManager()
        cm.load_layered(data_config_path=data_config, cli_config_path=cli_config)
        assert cm.get("search.tag_match_mode") == "any"

    def test_save_session(self, tmp_path):
        data_config = tmp_path / "media_tagger.yaml"

        cm = ConfigManager()
        cm.load_layered(data_config_path=data_config)
        cm.set("export.indent", 4)
        cm.save_session()

        cm2 = ConfigManager()
        cm2.load_layered(data_config_path=data_config)
        assert cm2.get("export.indent") == 4

    def test_save_session_no_path_is_noop(self):
        cm = ConfigManager()
        cm.save_session()  # Should not raise
