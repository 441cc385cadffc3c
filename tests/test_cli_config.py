"""Tests for settings resolution."""

import logging

import pytest

from cli_config import PublisherSettings, load_settings


class TestLoadSettings:
    """Tests for defaults, YAML and environment layering."""

    def test_defaults(self):
        settings = load_settings(environ={})
        assert settings == PublisherSettings()
        assert settings.artifact_name == "types-registry"
        assert settings.cooldown_seconds == 60
        assert settings.min_days_between_publishes == 7

    def test_yaml_publisher_section(self, tmp_path):
        path = tmp_path / "publisher.yml"
        path.write_text(
            "publisher:\n"
            "  output_dir: /srv/out\n"
            "  cooldown_seconds: 5\n"
            "  install_flags: [--ignore-scripts]\n"
            "  not_needed_file: data/notNeeded.json\n"
        )
        settings = load_settings(str(path), environ={})
        assert settings.output_dir == "/srv/out"
        assert settings.cooldown_seconds == 5
        assert settings.install_flags == ["--ignore-scripts"]
        assert settings.not_needed_file == "data/notNeeded.json"

    def test_yaml_without_section(self, tmp_path):
        path = tmp_path / "publisher.yml"
        path.write_text("artifact_name: my-registry\n")
        assert load_settings(str(path), environ={}).artifact_name == "my-registry"

    def test_environment_wins_over_file(self, tmp_path):
        path = tmp_path / "publisher.yml"
        path.write_text("cooldown_seconds: 5\n")
        environ = {"REGPUB_COOLDOWN_SECONDS": "120", "REGPUB_INSTALL_FLAGS": "--a --b"}
        settings = load_settings(str(path), environ=environ)
        assert settings.cooldown_seconds == 120
        assert settings.install_flags == ["--a", "--b"]

    def test_log_level_variable_is_not_a_setting(self, caplog):
        caplog.set_level(logging.WARNING)
        load_settings(environ={"REGPUB_LOG_LEVEL": "DEBUG"})
        assert "Ignoring unknown setting" not in caplog.text

    def test_unknown_key_warns(self, caplog):
        caplog.set_level(logging.WARNING)
        load_settings(environ={"REGPUB_BOGUS": "1"})
        assert "Ignoring unknown setting 'bogus'" in caplog.text

    def test_bad_int(self):
        with pytest.raises(ValueError, match="cooldown_seconds"):
            load_settings(environ={"REGPUB_COOLDOWN_SECONDS": "soon"})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "publisher.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_settings(str(path), environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yml"), environ={})

    def test_channel_paths(self):
        settings = PublisherSettings(output_dir="out", validate_dir="val")
        assert settings.channel_output_dir("github").replace("\\", "/") == "out/github/types-registry"
        assert settings.channel_validate_dir("npm").replace("\\", "/") == "val/npm"
