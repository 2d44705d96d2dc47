"""配置管理测试"""

from __future__ import annotations

from datetime import date, time

import pytest

from marketcharts.core.config import (
    AppConfig,
    ConfigManager,
    get_default_config,
    load_config_from_env,
)
from marketcharts.core.exceptions import ConfigurationError

ENV_VARS = (
    "MARKETCHARTS_ALPHA_VANTAGE_API_KEY",
    "MARKETCHARTS_STOCKDATA_API_TOKEN",
    "MARKETCHARTS_RETRY_PRIMARY_AFTER_MINUTES",
    "MARKETCHARTS_MAX_RETRY_ATTEMPTS",
    "MARKETCHARTS_LOGGING_LEVEL",
    "MARKETCHARTS_LOGGING_FILE",
    "MARKETCHARTS_DATABASE_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestAppConfig:
    """测试应用配置"""

    def test_defaults(self):
        config = get_default_config()

        assert config.index_symbols == ["^GSPC", "^DJI", "^IXIC"]
        assert config.inauguration_date == date(2025, 1, 20)
        assert config.tariff_announcement_date == date(2025, 4, 1)
        assert config.previous_administration_start == date(2017, 1, 20)
        assert config.previous_administration_end == date(2021, 1, 19)
        assert config.daily_update_time == time(18, 0)
        assert config.daily_update_timezone == "America/New_York"
        assert config.enable_daily_updates is True
        assert config.api.primary.daily_limit == 25
        assert config.api.backup.daily_limit == 100
        assert config.api.retry_primary_after_minutes == 60
        assert config.chart.max_data_points == 100

    def test_from_dict_coerces_dates_and_times(self):
        config = AppConfig.from_dict(
            {
                "inauguration_date": "2025-01-21",
                "daily_update_time": "17:30",
                "api": {"primary": {"api_key": "demo"}, "retry_primary_after_minutes": 15},
                "chart": {"max_data_points": 50},
            }
        )

        assert config.inauguration_date == date(2025, 1, 21)
        assert config.daily_update_time == time(17, 30)
        assert config.api.primary.api_key == "demo"
        assert config.api.retry_primary_after_minutes == 15
        assert config.chart.max_data_points == 50

    def test_from_dict_rejects_bad_date(self):
        with pytest.raises(ConfigurationError):
            AppConfig.from_dict({"inauguration_date": "not-a-date"})

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigurationError):
            AppConfig.from_dict({"chart": {"unknown_option": True}})

    def test_rejects_unknown_update_timezone(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.from_dict({"daily_update_timezone": "Mars/Olympus_Mons"})

        assert exc_info.value.details["timezone"] == "Mars/Olympus_Mons"

    def test_rejects_inverted_previous_administration(self):
        with pytest.raises(ConfigurationError):
            AppConfig(previous_administration_start=date(2021, 1, 19), previous_administration_end=date(2017, 1, 20))

    def test_to_dict_round_trip(self):
        config = AppConfig.from_dict({"tariff_announcement_date": "2025-04-02", "daily_update_time": "09:15"})

        data = config.to_dict()

        assert data["tariff_announcement_date"] == "2025-04-02"
        assert data["daily_update_time"] == "09:15"
        assert AppConfig.from_dict(data) == config


class TestConfigManager:
    """测试配置管理器"""

    def test_missing_file_uses_defaults(self, tmp_path):
        manager = ConfigManager(tmp_path / "missing.toml")

        assert manager.get_config() == AppConfig()

    def test_loads_toml_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'index_symbols = ["^GSPC"]\n'
            "inauguration_date = 2025-01-21\n"
            "\n"
            "[api]\n"
            "retry_primary_after_minutes = 30\n"
            "\n"
            "[api.backup]\n"
            'api_token = "token-123"\n'
            "\n"
            "[cache]\n"
            "ttl_latest_seconds = 60\n",
            encoding="utf-8",
        )

        config = ConfigManager(path).get_config()

        assert config.index_symbols == ["^GSPC"]
        assert config.inauguration_date == date(2025, 1, 21)
        assert config.api.retry_primary_after_minutes == 30
        assert config.api.backup.api_token == "token-123"
        assert config.cache.ttl_latest_seconds == 60

    def test_invalid_toml_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("this is = = not toml", encoding="utf-8")

        assert ConfigManager(path).get_config() == AppConfig()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text('[api.primary]\napi_key = "from-file"\n', encoding="utf-8")
        monkeypatch.setenv("MARKETCHARTS_ALPHA_VANTAGE_API_KEY", "from-env")

        config = ConfigManager(path).get_config()

        assert config.api.primary.api_key == "from-env"

    def test_update_config(self, tmp_path):
        manager = ConfigManager(tmp_path / "missing.toml")

        manager.update_config(chart={"max_data_points": 20}, enable_comparison=False)

        config = manager.get_config()
        assert config.chart.max_data_points == 20
        assert config.enable_comparison is False
        assert config.chart.sp500_color == "#1f77b4"


class TestEnvironmentConfig:
    """测试环境变量配置"""

    def test_empty_environment(self):
        assert load_config_from_env() == {}

    def test_reads_marketcharts_variables(self, monkeypatch):
        monkeypatch.setenv("MARKETCHARTS_STOCKDATA_API_TOKEN", "sd-token")
        monkeypatch.setenv("MARKETCHARTS_RETRY_PRIMARY_AFTER_MINUTES", "5")
        monkeypatch.setenv("MARKETCHARTS_LOGGING_LEVEL", "DEBUG")
        monkeypatch.setenv("MARKETCHARTS_DATABASE_PATH", "/tmp/prices.duckdb")

        env_config = load_config_from_env()

        assert env_config == {
            "api": {"backup": {"api_token": "sd-token"}, "retry_primary_after_minutes": 5},
            "logging": {"level": "DEBUG"},
            "database": {"path": "/tmp/prices.duckdb"},
        }

    def test_rejects_non_integer_minutes(self, monkeypatch):
        monkeypatch.setenv("MARKETCHARTS_RETRY_PRIMARY_AFTER_MINUTES", "soon")

        with pytest.raises(ConfigurationError):
            load_config_from_env()
