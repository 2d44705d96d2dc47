"""Exception handling module."""

from marketcharts.core.exceptions.base import (
    AllProvidersUnavailableError,
    ConfigurationError,
    DataValidationError,
    InsufficientDataError,
    InvalidArgumentError,
    MarketChartsError,
    ParseError,
    ProviderError,
    QuotaExceededError,
    StorageError,
    TransportError,
    UpstreamError,
)
from marketcharts.core.exceptions.codes import ErrorCode

__all__ = [
    "MarketChartsError",
    "ProviderError",
    "QuotaExceededError",
    "UpstreamError",
    "TransportError",
    "ParseError",
    "AllProvidersUnavailableError",
    "DataValidationError",
    "InsufficientDataError",
    "InvalidArgumentError",
    "ConfigurationError",
    "StorageError",
    "ErrorCode",
]
