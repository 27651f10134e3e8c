"""Tests for configuration loading."""

from pathlib import Path

import pytest

from wattmon.config import load_config
from wattmon.errors import ConfigError
from wattmon.models.config_models import AppConfig, PowerConfig

ENV_VARS = [
    "WATTMON_CONFIG",
    "WATTMON_ELECTRICITY_RATE",
    "WATTMON_SAMPLE_INTERVAL",
    "WATTMON_BASE_POWER_WATTS",
    "WATTMON_CPU_TDP_WATTS",
    "WATTMON_GPU_TDP_WATTS",
    "WATTMON_RETRY_BACKOFF",
    "WATTMON_HOME",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without WATTMON_* overrides."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for built-in defaults."""

    def test_defaults(self):
        """Defaults match the documented power model."""
        config = load_config()

        assert config.power.electricity_rate == 1445.0
        assert config.power.sample_interval_seconds == 5.0
        assert config.power.power_model.base_power_watts == 45.0
        assert config.power.power_model.cpu_tdp_watts == 125.0
        assert config.power.power_model.gpu_tdp_watts == 150.0
        assert config.retry_backoff_seconds == 5.0
        assert config.data_dir == Path.home() / ".wattmon"

    def test_models_are_frozen(self):
        """Configuration cannot be mutated after startup."""
        config = PowerConfig()
        with pytest.raises(ValueError):
            config.electricity_rate = 1.0


class TestYamlFile:
    """Tests for YAML configuration files."""

    def test_nested_file(self, tmp_path):
        """A file with a power section overrides defaults."""
        path = tmp_path / "wattmon.yaml"
        path.write_text(
            "power:\n"
            "  electricity_rate: 0.25\n"
            "  power_model:\n"
            "    cpu_tdp_watts: 65\n"
            f"data_dir: {tmp_path / 'data'}\n"
        )
        config = load_config(path)

        assert config.power.electricity_rate == 0.25
        assert config.power.power_model.cpu_tdp_watts == 65.0
        assert config.power.power_model.gpu_tdp_watts == 150.0
        assert config.data_dir == tmp_path / "data"

    def test_flat_file(self, tmp_path):
        """Power keys may also sit at the top level."""
        path = tmp_path / "wattmon.yaml"
        path.write_text("sample_interval_seconds: 2\nretry_backoff_seconds: 1\n")
        config = load_config(path)

        assert config.power.sample_interval_seconds == 2.0
        assert config.retry_backoff_seconds == 1.0

    def test_config_from_env_path(self, tmp_path, monkeypatch):
        """WATTMON_CONFIG names the file when no path is given."""
        path = tmp_path / "wattmon.yaml"
        path.write_text("electricity_rate: 3\n")
        monkeypatch.setenv("WATTMON_CONFIG", str(path))

        assert load_config().power.electricity_rate == 3.0

    def test_empty_file(self, tmp_path):
        """An empty file yields defaults."""
        path = tmp_path / "wattmon.yaml"
        path.write_text("")
        assert load_config(path) == AppConfig(data_dir=Path.home() / ".wattmon")

    @pytest.mark.parametrize(
        "content",
        [
            "electricity_rate: [unclosed\n",
            "- just\n- a list\n",
            "electricity_rate: -1\n",
            "sample_interval_seconds: 0\n",
            "unknown_key: 1\n",
            "power: 5\n",
        ],
    )
    def test_invalid_file(self, tmp_path, content):
        """Malformed or out-of-range files raise ConfigError."""
        path = tmp_path / "wattmon.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        """A missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(tmp_path / "absent.yaml")


class TestEnvOverrides:
    """Tests for WATTMON_* environment variables."""

    def test_env_beats_file(self, tmp_path, monkeypatch):
        """Environment overrides take precedence over the file."""
        path = tmp_path / "wattmon.yaml"
        path.write_text("electricity_rate: 3\n")
        monkeypatch.setenv("WATTMON_ELECTRICITY_RATE", "0.31")
        monkeypatch.setenv("WATTMON_GPU_TDP_WATTS", "320")
        monkeypatch.setenv("WATTMON_HOME", str(tmp_path / "home"))

        config = load_config(path)

        assert config.power.electricity_rate == 0.31
        assert config.power.power_model.gpu_tdp_watts == 320.0
        assert config.data_dir == tmp_path / "home"

    def test_empty_env_ignored(self, monkeypatch):
        """An empty variable counts as unset."""
        monkeypatch.setenv("WATTMON_SAMPLE_INTERVAL", "")
        assert load_config().power.sample_interval_seconds == 5.0

    def test_bad_env_type(self, monkeypatch):
        """A non-numeric override raises ConfigError."""
        monkeypatch.setenv("WATTMON_SAMPLE_INTERVAL", "fast")
        with pytest.raises(ConfigError, match="WATTMON_SAMPLE_INTERVAL"):
            load_config()

    def test_bad_env_value(self, monkeypatch):
        """Overrides are validated like file values."""
        monkeypatch.setenv("WATTMON_RETRY_BACKOFF", "0")
        with pytest.raises(ConfigError):
            load_config()

    def test_override_into_scalar_section(self, tmp_path, monkeypatch):
        """An override below a non-mapping section raises ConfigError."""
        path = tmp_path / "wattmon.yaml"
        path.write_text("power_model: 5\n")
        monkeypatch.setenv("WATTMON_CPU_TDP_WATTS", "95")
        with pytest.raises(ConfigError, match="power_model"):
            load_config(path)
