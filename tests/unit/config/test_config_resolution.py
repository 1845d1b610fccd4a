"""Configuration resolution: precedence, files, profiles and validation."""

import dataclasses
import os

import pytest

from courier.config import ConfigFileError, FrozenConfig, resolve_config


def write_pyproject(root, body):
    (root / "pyproject.toml").write_text(body)
    return root


def write_home(body):
    path = os.environ["COURIER_CONFIG_HOME"]
    with open(path, "w") as f:
        f.write(body)


@pytest.mark.unit
class TestDefaults:
    def test_defaults_when_no_sources(self, tmp_path):
        config = resolve_config(project_root=tmp_path)

        assert config.base_url is None
        assert config.timeout == 30.0
        assert config.query_encoding == "www_form"
        assert config.log_debug is True
        assert config.log_filter_headers == ()
        assert config.origin["timeout"] == "default"

    def test_frozen_config_is_immutable(self, tmp_path):
        frozen = resolve_config(project_root=tmp_path).to_frozen()
        assert isinstance(frozen, FrozenConfig)
        with pytest.raises(dataclasses.FrozenInstanceError):
            frozen.timeout = 1.0  # type: ignore[misc]


@pytest.mark.unit
class TestPrecedence:
    def test_programmatic_beats_env_beats_project_beats_home(self, tmp_path, monkeypatch):
        write_home('base_url = "https://home.example.com"\ntimeout = 1\nlog_debug = false\n')
        write_pyproject(
            tmp_path,
            '[tool.courier]\nbase_url = "https://project.example.com"\ntimeout = 2\n',
        )
        monkeypatch.setenv("COURIER_TIMEOUT", "3")

        config = resolve_config({"base_url": "https://code.example.com"}, project_root=tmp_path)

        assert config.base_url == "https://code.example.com"
        assert config.timeout == 3.0
        assert config.log_debug is False
        assert config.origin["base_url"] == "programmatic"
        assert config.origin["timeout"] == "env"
        assert config.origin["log_debug"] == "file"
        assert config.origin["query_encoding"] == "default"

    def test_env_values_are_coerced(self, tmp_path, monkeypatch):
        monkeypatch.setenv("COURIER_LOG_DEBUG", "false")
        monkeypatch.setenv("COURIER_LOG_FILTER_HEADERS", "authorization, x-api-key")
        monkeypatch.setenv("COURIER_QUERY_ENCODING", "rfc3986")

        config = resolve_config(project_root=tmp_path)

        assert config.log_debug is False
        assert config.log_filter_headers == ("authorization", "x-api-key")
        assert config.query_encoding == "rfc3986"

    def test_unknown_programmatic_keys_are_ignored(self, tmp_path):
        config = resolve_config({"nope": 1}, project_root=tmp_path)
        assert "nope" not in config.origin

    def test_with_overrides_marks_programmatic_origin(self, tmp_path):
        config = resolve_config(project_root=tmp_path).with_overrides(timeout=9.0, other=1)
        assert config.timeout == 9.0
        assert config.origin["timeout"] == "programmatic"

    def test_audit_names_env_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("COURIER_TIMEOUT", "4")
        report = resolve_config(project_root=tmp_path).audit()
        assert "timeout: env:COURIER_TIMEOUT=4.0" in report
        assert "query_encoding: default:www_form" in report


@pytest.mark.unit
class TestProfiles:
    PYPROJECT = """
[tool.courier]
timeout = 10

[tool.courier.profiles.staging]
base_url = "https://staging.example.com"
timeout = 20
"""

    def test_profile_argument(self, tmp_path):
        write_pyproject(tmp_path, self.PYPROJECT)
        config = resolve_config(profile="staging", project_root=tmp_path)
        assert config.base_url == "https://staging.example.com"
        assert config.timeout == 20.0

    def test_profile_from_environment(self, tmp_path, monkeypatch):
        write_pyproject(tmp_path, self.PYPROJECT)
        monkeypatch.setenv("COURIER_PROFILE", "staging")
        assert resolve_config(project_root=tmp_path).timeout == 20.0

    def test_base_section_without_profile(self, tmp_path):
        write_pyproject(tmp_path, self.PYPROJECT)
        config = resolve_config(project_root=tmp_path)
        assert config.timeout == 10.0
        assert config.base_url is None

    def test_home_profile(self, tmp_path):
        write_home('[profiles.dev]\nbase_url = "http://localhost:8080"\n')
        config = resolve_config(profile="dev", project_root=tmp_path)
        assert config.base_url == "http://localhost:8080"


@pytest.mark.unit
class TestInvalidSources:
    def test_invalid_env_value(self, tmp_path, monkeypatch):
        monkeypatch.setenv("COURIER_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="COURIER_TIMEOUT"):
            resolve_config(project_root=tmp_path)

    @pytest.mark.parametrize(
        "programmatic",
        [{"timeout": 0}, {"query_encoding": "latin"}, {"base_url": "ftp://x"}],
    )
    def test_invalid_programmatic_values(self, tmp_path, programmatic):
        with pytest.raises(ValueError, match="Configuration validation failed"):
            resolve_config(programmatic, project_root=tmp_path)

    def test_malformed_project_file_raises(self, tmp_path):
        write_pyproject(tmp_path, "[tool.courier\n")
        with pytest.raises(ConfigFileError, match="Failed to parse TOML"):
            resolve_config(project_root=tmp_path)

    def test_malformed_home_file_is_skipped(self, tmp_path, caplog):
        write_home("not = [valid")
        config = resolve_config(project_root=tmp_path)
        assert config.timeout == 30.0
        assert "Ignoring home configuration" in caplog.text
