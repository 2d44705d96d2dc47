"""Resilience patterns: provider failover and retry with backoff."""

from marketcharts.core.patterns.failover import ProviderSelector, ProviderState, SelectorState
from marketcharts.core.patterns.retry import ExponentialBackoffRetry, RetryConfig

__all__ = [
    "ExponentialBackoffRetry",
    "ProviderSelector",
    "ProviderState",
    "RetryConfig",
    "SelectorState",
]
