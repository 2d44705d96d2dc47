"""标准化错误代码."""

from enum import Enum


class ErrorCode(str, Enum):
    """错误代码枚举."""

    # 通用错误
    GENERAL_ERROR = "GENERAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # 提供商相关错误
    PROVIDER_ERROR = "PROVIDER_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    ALL_PROVIDERS_UNAVAILABLE = "ALL_PROVIDERS_UNAVAILABLE"

    # 数据相关错误
    DATA_VALIDATION_ERROR = "DATA_VALIDATION_ERROR"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"

    # 存储相关错误
    STORAGE_ERROR = "STORAGE_ERROR"


__all__ = ["ErrorCode"]
