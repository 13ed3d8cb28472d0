"""Tests for overlaymon configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

from pydantic import ValidationError
import pytest

from overlaymon.config import (
    DEFAULT_CONFIG,
    Config,
    ConfigKeyError,
    ConfigSyntaxError,
    ConfigValidationError,
    LoggingConfig,
    OverlayConfig,
    SentryConfig,
    deep_merge,
    expand_env_vars,
    get_config_path,
    load_config,
)
from overlaymon.config.loader import CONFIG_PATH_ENV
from overlaymon.errors import ConfigurationError
from overlaymon.models import Metric


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point Path.home() at an empty directory and clear the config env var."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    return tmp_path


def write_config(directory: Path, content: str) -> str:
    path = directory / "config.yaml"
    path.write_text(content)
    return str(path)


class TestExpandEnvVars:
    """Tests for environment variable expansion."""

    def test_expand_simple_var(self) -> None:
        """Test expanding a simple environment variable."""
        with patch.dict(os.environ, {"DISK": "/data"}):
            assert expand_env_vars("${DISK}") == "/data"

    def test_expand_with_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test ${VAR:-default} syntax."""
        monkeypatch.delenv("OVERLAYMON_UNSET", raising=False)
        assert expand_env_vars("${OVERLAYMON_UNSET:-staging}") == "staging"

    def test_unset_var_kept(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test unset variable without default is kept as-is."""
        monkeypatch.delenv("OVERLAYMON_UNSET", raising=False)
        assert expand_env_vars("${OVERLAYMON_UNSET}") == "${OVERLAYMON_UNSET}"

    def test_expand_nested(self) -> None:
        """Test expansion inside dicts and lists."""
        with patch.dict(os.environ, {"DSN": "https://key@example.invalid/1"}):
            result = expand_env_vars({"sentry": {"dsn": "${DSN}"}, "metrics": ["${DSN}", 1]})
        assert result == {
            "sentry": {"dsn": "https://key@example.invalid/1"},
            "metrics": ["https://key@example.invalid/1", 1],
        }

    def test_non_string_unchanged(self) -> None:
        assert expand_env_vars(2.5) == 2.5
        assert expand_env_vars(None) is None


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_merge(self) -> None:
        base = {"overlay": {"toggle_key": "g", "placeholder": "--"}, "interval": 1.0}
        result = deep_merge(base, {"overlay": {"toggle_key": "o"}})
        assert result == {"overlay": {"toggle_key": "o", "placeholder": "--"}, "interval": 1.0}

    def test_override_replaces_list(self) -> None:
        result = deep_merge({"metrics": ["cpu_temp", "gpu_temp"]}, {"metrics": ["uptime"]})
        assert result == {"metrics": ["uptime"]}

    def test_base_unchanged(self) -> None:
        base = {"overlay": {"toggle_key": "g"}}
        deep_merge(base, {"overlay": {"toggle_key": "o"}})
        assert base == {"overlay": {"toggle_key": "g"}}


class TestConfigModels:
    """Tests for the pydantic config models."""

    def test_defaults(self) -> None:
        """Test defaults match DEFAULT_CONFIG."""
        config = Config()
        assert config.interval == 1.0
        assert config.probe_timeout is None
        assert config.history_capacity == 30
        assert config.metrics == list(Metric)
        assert config.collection.disk_path == "/"
        assert config.overlay.toggle_key == "g"
        assert config.overlay.placeholder == "--"
        assert config.sentry.dsn is None
        assert Config(**DEFAULT_CONFIG) == config

    def test_metric_names_resolved_and_deduplicated(self) -> None:
        config = Config(metrics=["gpu_temp", "CPU_TEMP", "gpu_temp"])
        assert config.metrics == [Metric.GPU_TEMP, Metric.CPU_TEMP]

    def test_unknown_metric(self) -> None:
        with pytest.raises(ValidationError, match="Did you mean 'gpu_temp'"):
            Config(metrics=["gpu_tmp"])

    def test_interval_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Config(interval=0)
        with pytest.raises(ValidationError):
            Config(interval=7200)

    def test_probe_timeout_not_above_interval(self) -> None:
        """Test a probe cannot be allowed to outlast the tick."""
        with pytest.raises(ValidationError, match="must not exceed interval"):
            Config(interval=1.0, probe_timeout=2.0)
        assert Config(interval=2.0, probe_timeout=2.0).probe_timeout == 2.0

    def test_effective_probe_timeout(self) -> None:
        assert Config().effective_probe_timeout == 0.8
        assert Config(interval=0.5).effective_probe_timeout == 0.5
        assert Config(interval=5.0, probe_timeout=3.0).effective_probe_timeout == 3.0

    def test_unknown_key_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            Config(fps=True)

    def test_overlay_bounds(self) -> None:
        with pytest.raises(ValidationError):
            OverlayConfig(toggle_key="")
        with pytest.raises(ValidationError):
            OverlayConfig(decimal_places=7)

    def test_logging_levels(self) -> None:
        assert LoggingConfig(level="DEBUG").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="TRACE")

    def test_sentry_sample_rate(self) -> None:
        with pytest.raises(ValidationError):
            SentryConfig(traces_sample_rate=1.5)


class TestGetConfigPath:
    """Tests for get_config_path function."""

    def test_custom_path_exists(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "interval: 2\n")
        assert get_config_path(path) == Path(path)

    def test_custom_path_not_exists(self) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            get_config_path("/nonexistent/overlaymon.yaml")

    def test_env_var_path(self, isolated_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(isolated_home, "interval: 2\n")
        monkeypatch.setenv(CONFIG_PATH_ENV, path)
        assert get_config_path() == Path(path)

    def test_env_var_path_not_exists(
        self, isolated_home: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(CONFIG_PATH_ENV, str(isolated_home / "missing.yaml"))
        assert get_config_path() is None

    def test_xdg_before_legacy(self, isolated_home: Path) -> None:
        """Test XDG location wins over the legacy dotdir."""
        xdg = isolated_home / ".config" / "overlaymon"
        legacy = isolated_home / ".overlaymon"
        xdg.mkdir(parents=True)
        legacy.mkdir()
        (xdg / "config.yaml").write_text("interval: 2\n")
        (legacy / "config.yaml").write_text("interval: 3\n")

        assert get_config_path() == xdg / "config.yaml"

    def test_legacy_path(self, isolated_home: Path) -> None:
        legacy = isolated_home / ".overlaymon"
        legacy.mkdir()
        (legacy / "config.yaml").write_text("interval: 3\n")
        assert get_config_path() == legacy / "config.yaml"

    def test_no_config_found(self, isolated_home: Path) -> None:
        assert get_config_path() is None


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_defaults(self, isolated_home: Path) -> None:
        config = load_config()
        assert config.interval == 1.0
        assert config.metrics == list(Metric)

    def test_load_from_file(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
interval: 2.5
metrics: [cpu_temp, gpu_mem, uptime]
collection:
  disk_path: /home
overlay:
  toggle_key: o
  placeholder: "n/a"
""",
        )
        config = load_config(config_path=path)

        assert config.interval == 2.5
        assert config.metrics == [Metric.CPU_TEMP, Metric.GPU_MEM, Metric.UPTIME]
        assert config.collection.disk_path == "/home"
        assert config.overlay.toggle_key == "o"
        assert config.overlay.placeholder == "n/a"
        assert config.overlay.auto_show is True

    def test_cli_overrides_trump_file(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "interval: 2.5\n")
        config = load_config(config_path=path, cli_overrides={"interval": 5.0})
        assert config.interval == 5.0

    def test_env_vars_expanded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OVERLAYMON_TEST_DISK", "/mnt/games")
        path = write_config(tmp_path, "collection:\n  disk_path: ${OVERLAYMON_TEST_DISK}\n")
        assert load_config(config_path=path).collection.disk_path == "/mnt/games"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(config_path=write_config(tmp_path, "")).interval == 1.0

    def test_yaml_syntax_error(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "overlay:\n  toggle_key: [g\n")
        with pytest.raises(ConfigSyntaxError) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.file_path == path
        assert exc_info.value.line_number is not None

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigSyntaxError, match="must be a mapping"):
            load_config(config_path=write_config(tmp_path, "- cpu_temp\n- gpu_temp\n"))

    def test_unknown_key_with_suggestion(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "intervall: 2\n")
        with pytest.raises(ConfigKeyError) as exc_info:
            load_config(config_path=path)
        assert "intervall" in str(exc_info.value)
        assert exc_info.value.suggestion == "Did you mean 'interval'?"

    def test_unknown_section_key(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "overlay:\n  toggle: g\n")
        with pytest.raises(ConfigKeyError) as exc_info:
            load_config(config_path=path)
        assert exc_info.value.suggestion == "Did you mean 'toggle_key'?"

    def test_out_of_range(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "history_capacity: 0\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(config_path=path)
        assert "history_capacity" in str(exc_info.value)
        assert exc_info.value.suggestion == "Value must be at least 1"

    def test_invalid_number(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "interval: fast\n")
        with pytest.raises(ConfigValidationError, match='got string "fast"'):
            load_config(config_path=path)

    def test_unknown_metric_message(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "metrics: [cpu_temp, ram]\n")
        with pytest.raises(ConfigValidationError, match="Unknown metric 'ram'"):
            load_config(config_path=path)

    def test_probe_timeout_above_interval(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "interval: 1\nprobe_timeout: 3\n")
        with pytest.raises(ConfigValidationError, match="must not exceed interval"):
            load_config(config_path=path)

    def test_errors_are_configuration_errors(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "fps: true\n")
        with pytest.raises(ConfigurationError):
            load_config(config_path=path)

    def test_fallback_to_defaults(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "interval: -1\n")
        config = load_config(config_path=path, raise_on_error=False)
        assert config.interval == 1.0
