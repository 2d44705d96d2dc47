"""日志配置模型."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class LogConfig(BaseModel):
    """Sinks and level for the JSON-line logger.

    ``console_stream`` defaults to stderr; tests pass a ``StringIO``.
    ``extra`` is bound to every record.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: str = "INFO"
    console_output: bool = True
    console_stream: Any = None
    file_output: bool = False
    file_path: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("level")
    @classmethod
    def check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {value}")
        return level


__all__ = ["LOG_LEVELS", "LogConfig"]
