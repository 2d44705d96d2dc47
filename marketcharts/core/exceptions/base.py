"""marketcharts核心异常类."""

from typing import Any

from marketcharts.core.exceptions.codes import ErrorCode


class MarketChartsError(Exception):
    """marketcharts基础异常类."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GENERAL_ERROR.value,
        details: dict[str, Any] | None = None,
    ):
        """初始化异常.

        Args:
            message: 错误消息
            error_code: 错误代码
            details: 额外详情
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {
            "code": self.error_code,
            "message": self.message,
            "details": dict(self.details),
        }


class ProviderError(MarketChartsError):
    """数据提供商相关异常."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        error_code: str = ErrorCode.PROVIDER_ERROR.value,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.setdefault("provider", provider_name)
        super().__init__(message, error_code, super_details)
        self.provider_name = provider_name


class QuotaExceededError(ProviderError):
    """调用配额耗尽异常."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        limit: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if limit is not None:
            super_details["limit"] = limit
        super().__init__(message, provider_name, ErrorCode.QUOTA_EXCEEDED.value, super_details)
        self.limit = limit


class UpstreamError(ProviderError):
    """上游返回显式错误或限流标记."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        upstream_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if upstream_code is not None:
            super_details["upstream_code"] = upstream_code
        super().__init__(message, provider_name, ErrorCode.UPSTREAM_ERROR.value, super_details)
        self.upstream_code = upstream_code


class TransportError(ProviderError):
    """网络异常或非2xx响应."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if status_code is not None:
            super_details["status_code"] = status_code
        super().__init__(message, provider_name, ErrorCode.TRANSPORT_ERROR.value, super_details)
        self.status_code = status_code


class ParseError(ProviderError):
    """响应格式错误."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, provider_name, ErrorCode.PARSE_ERROR.value, details)


class AllProvidersUnavailableError(MarketChartsError):
    """所有提供商都不可用异常."""

    def __init__(
        self,
        message: str,
        failed_providers: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if failed_providers:
            super_details["failed_providers"] = failed_providers
        super().__init__(message, ErrorCode.ALL_PROVIDERS_UNAVAILABLE.value, super_details)
        self.failed_providers = failed_providers or []


class DataValidationError(MarketChartsError):
    """数据验证异常."""

    def __init__(
        self,
        message: str,
        validation_errors: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
        error_code: str = ErrorCode.DATA_VALIDATION_ERROR.value,
    ):
        super_details = details or {}
        if validation_errors:
            super_details["validation_errors"] = validation_errors
        super().__init__(message, error_code, super_details)
        self.validation_errors = validation_errors or {}


class InsufficientDataError(DataValidationError):
    """数据不足，无法完成计算."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details=details, error_code=ErrorCode.INSUFFICIENT_DATA.value)


class InvalidArgumentError(DataValidationError, ValueError):
    """调用参数无效."""

    def __init__(self, message: str, argument: str | None = None, details: dict[str, Any] | None = None):
        super_details = details or {}
        if argument is not None:
            super_details["argument"] = argument
        super().__init__(message, details=super_details, error_code=ErrorCode.INVALID_ARGUMENT.value)
        self.argument = argument


class ConfigurationError(MarketChartsError):
    """配置错误."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR.value, details)


class StorageError(MarketChartsError):
    """存储层异常."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.STORAGE_ERROR.value, details)
