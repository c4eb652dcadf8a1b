"""
Tests for the TOML configuration file.
"""

import tomllib

from overlapscope.config import (
    get_database_path,
    get_setting,
    load_config,
    set_setting,
    unset_setting,
)
from overlapscope.constants import DEFAULT_DATABASE_PATH


class TestConfigFile:
    def test_missing_file_is_empty(self, isolated_config):
        assert load_config() == {}
        assert get_setting("analysis", "batch_size", 5) == 5

    def test_set_and_get(self, isolated_config):
        set_setting("analysis", "min_pca_samples", 30)

        assert get_setting("analysis", "min_pca_samples") == 30
        with open(isolated_config, "rb") as f:
            assert tomllib.load(f) == {"analysis": {"min_pca_samples": 30}}

    def test_unset_removes_empty_file(self, isolated_config):
        set_setting("analysis", "batch_size", 100)

        assert unset_setting("analysis", "batch_size") is True
        assert not isolated_config.exists()
        assert unset_setting("analysis", "batch_size") is False

    def test_unset_keeps_other_settings(self, isolated_config):
        set_setting("analysis", "batch_size", 100)
        set_setting("database", "path", "/tmp/trace.sqlite")

        unset_setting("analysis", "batch_size")

        assert load_config() == {"database": {"path": "/tmp/trace.sqlite"}}

    def test_corrupt_file_treated_as_empty(self, isolated_config):
        isolated_config.write_text("not [valid toml")

        assert load_config() == {}


class TestDatabasePath:
    def test_explicit_path_wins(self, isolated_config):
        set_setting("database", "path", "/configured.sqlite")

        assert get_database_path("/explicit.sqlite") == "/explicit.sqlite"

    def test_configured_path(self, isolated_config):
        set_setting("database", "path", "/configured.sqlite")

        assert get_database_path() == "/configured.sqlite"

    def test_default_path(self, isolated_config):
        assert get_database_path() == DEFAULT_DATABASE_PATH
