"""配置管理模块 - 处理marketcharts的配置"""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from datetime import date, time
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from marketcharts.core.exceptions import ConfigurationError
from marketcharts.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".marketcharts" / "config.toml"


@dataclass
class AlphaVantageConfig:
    """主数据源 (Alpha Vantage) 配置"""

    base_url: str = "https://www.alphavantage.co"
    api_key: str = ""
    daily_limit: int = 25
    timeout: float = 30.0


@dataclass
class StockDataOrgConfig:
    """备用数据源 (StockData.org) 配置"""

    base_url: str = "https://api.stockdata.org"
    api_token: str = ""
    daily_limit: int = 100
    timeout: float = 30.0


@dataclass
class ApiConfig:
    """数据源切换与重试配置"""

    primary: AlphaVantageConfig = field(default_factory=AlphaVantageConfig)
    backup: StockDataOrgConfig = field(default_factory=StockDataOrgConfig)
    retry_primary_after_minutes: int = 60
    max_retry_attempts: int = 3
    retry_delay_ms: int = 1000

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "ApiConfig":
        values = dict(config_dict)
        primary = AlphaVantageConfig(**values.pop("primary", {}))
        backup = StockDataOrgConfig(**values.pop("backup", {}))
        return cls(primary=primary, backup=backup, **values)


@dataclass
class ChartConfig:
    """图表配置"""

    sp500_color: str = "#1f77b4"
    dow_jones_color: str = "#ff7f0e"
    nasdaq_color: str = "#2ca02c"
    show_annotations: bool = True
    optimize_data_points: bool = True
    max_data_points: int = 100


@dataclass
class CacheConfig:
    """缓存配置"""

    enabled: bool = True
    max_size: int = 256
    ttl_latest_seconds: int = 300


@dataclass
class LoggingConfig:
    """日志配置"""

    level: str = "INFO"
    file: str | None = None
    console: bool = True


@dataclass
class DatabaseConfig:
    """数据库配置"""

    path: str = str(Path.home() / ".marketcharts" / "marketcharts.duckdb")


def _coerce_date(value: Any, name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid date for {name}: {value!r}", details={"field": name}) from exc


def _coerce_time(value: Any, name: str) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid time for {name}: {value!r}", details={"field": name}) from exc


@dataclass
class AppConfig:
    """marketcharts主配置"""

    api: ApiConfig = field(default_factory=ApiConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    index_symbols: list[str] = field(default_factory=lambda: ["^GSPC", "^DJI", "^IXIC"])
    inauguration_date: date = date(2025, 1, 20)
    tariff_announcement_date: date = date(2025, 4, 1)
    previous_administration_start: date = date(2017, 1, 20)
    previous_administration_end: date = date(2021, 1, 19)
    enable_daily_updates: bool = True
    daily_update_time: time = time(18, 0)
    daily_update_timezone: str = "America/New_York"
    enable_comparison: bool = True
    enable_technical_indicators: bool = True
    version: str = "1.0.0"

    def __post_init__(self) -> None:
        if self.previous_administration_end < self.previous_administration_start:
            raise ConfigurationError(
                "previous_administration_end must not precede previous_administration_start",
                details={
                    "start": self.previous_administration_start.isoformat(),
                    "end": self.previous_administration_end.isoformat(),
                },
            )
        if self.chart.max_data_points <= 0:
            raise ConfigurationError("chart.max_data_points must be positive")
        try:
            ZoneInfo(self.daily_update_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(
                f"Unknown daily_update_timezone: {self.daily_update_timezone}",
                details={"timezone": self.daily_update_timezone},
            ) from exc

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "AppConfig":
        """从字典创建配置"""
        try:
            values: dict[str, Any] = {
                "api": ApiConfig.from_dict(config_dict.get("api", {})),
                "chart": ChartConfig(**config_dict.get("chart", {})),
                "cache": CacheConfig(**config_dict.get("cache", {})),
                "logging": LoggingConfig(**config_dict.get("logging", {})),
                "database": DatabaseConfig(**config_dict.get("database", {})),
            }
        except TypeError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc
        for name in (
            "inauguration_date",
            "tariff_announcement_date",
            "previous_administration_start",
            "previous_administration_end",
        ):
            if name in config_dict:
                values[name] = _coerce_date(config_dict[name], name)
        if "daily_update_time" in config_dict:
            values["daily_update_time"] = _coerce_time(config_dict["daily_update_time"], "daily_update_time")
        for name in (
            "index_symbols",
            "enable_daily_updates",
            "daily_update_timezone",
            "enable_comparison",
            "enable_technical_indicators",
            "version",
        ):
            if name in config_dict:
                values[name] = config_dict[name]
        try:
            return cls(**values)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        data = asdict(self)
        for name in (
            "inauguration_date",
            "tariff_announcement_date",
            "previous_administration_start",
            "previous_administration_end",
        ):
            data[name] = getattr(self, name).isoformat()
        data["daily_update_time"] = self.daily_update_time.strftime("%H:%M")
        return data


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_path: Path | None = None):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为None则使用默认路径
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.config = self._load_config()

    def _load_config(self) -> AppConfig:
        """加载配置, 并叠加环境变量"""
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                # 配置文件有问题时使用默认配置
                logger.warning("Failed to load config", path=str(self.config_path), error=str(e))
                config_dict = {}
        deep_update(config_dict, load_config_from_env())
        return AppConfig.from_dict(config_dict)

    def get_config(self) -> AppConfig:
        """获取当前配置"""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """更新配置"""
        config_dict = self.config.to_dict()
        deep_update(config_dict, updates)
        self.config = AppConfig.from_dict(config_dict)


def deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    """深度更新字典"""
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


def get_default_config() -> AppConfig:
    """获取默认配置"""
    return AppConfig()


def _int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Environment variable {name} must be an integer", details={"value": raw}) from exc


def load_config_from_env() -> dict[str, Any]:
    """从环境变量加载配置"""
    config: dict[str, Any] = {}

    # 数据源配置
    api_config: dict[str, Any] = {}
    alpha_key = os.getenv("MARKETCHARTS_ALPHA_VANTAGE_API_KEY")
    if alpha_key is not None:
        api_config.setdefault("primary", {})["api_key"] = alpha_key
    stockdata_token = os.getenv("MARKETCHARTS_STOCKDATA_API_TOKEN")
    if stockdata_token is not None:
        api_config.setdefault("backup", {})["api_token"] = stockdata_token
    retry_minutes = _int_env("MARKETCHARTS_RETRY_PRIMARY_AFTER_MINUTES")
    if retry_minutes is not None:
        api_config["retry_primary_after_minutes"] = retry_minutes
    max_attempts = _int_env("MARKETCHARTS_MAX_RETRY_ATTEMPTS")
    if max_attempts is not None:
        api_config["max_retry_attempts"] = max_attempts

    if api_config:
        config["api"] = api_config

    # 日志配置
    logging_config: dict[str, Any] = {}
    log_level = os.getenv("MARKETCHARTS_LOGGING_LEVEL")
    if log_level is not None:
        logging_config["level"] = log_level
    log_file = os.getenv("MARKETCHARTS_LOGGING_FILE")
    if log_file is not None:
        logging_config["file"] = log_file

    if logging_config:
        config["logging"] = logging_config

    # 数据库配置
    database_path = os.getenv("MARKETCHARTS_DATABASE_PATH")
    if database_path is not None:
        config["database"] = {"path": database_path}

    return config
