"""Primary/backup provider failover.

``ProviderSelector`` hands out the provider that should serve the next
request. It starts on the primary, moves to the backup when a caller reports a
primary failure, and only returns to the primary after the cooldown has
elapsed and a probe succeeds. When the backup's own probe fails as well,
``get_service`` raises ``AllProvidersUnavailableError`` until a later probe
succeeds.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from marketcharts.core.config import ApiConfig
from marketcharts.core.data.providers.base import Clock, PriceProvider
from marketcharts.core.exceptions import AllProvidersUnavailableError
from marketcharts.core.logging import get_logger

logger = get_logger(__name__)


class SelectorState(str, Enum):
    """Failover state."""

    PRIMARY = "primary"
    BACKUP = "backup"
    ALL_UNAVAILABLE = "all_unavailable"


@dataclass(frozen=True)
class ProviderState:
    """Point-in-time view of one provider as seen by the selector."""

    service_name: str
    remaining_calls: int
    available: bool
    last_failure_at: datetime | None = None
    retry_after: datetime | None = None


class ProviderSelector:
    """Choose between a primary and a backup ``PriceProvider``."""

    def __init__(
        self,
        primary: PriceProvider,
        backup: PriceProvider,
        api_config: ApiConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._primary = primary
        self._backup = backup
        self._config = api_config or ApiConfig()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()
        self._state = SelectorState.PRIMARY
        self._primary_failed_at: datetime | None = None
        self._backup_failed_at: datetime | None = None
        self._retry_after: datetime | None = None

    @property
    def primary(self) -> PriceProvider:
        return self._primary

    @property
    def backup(self) -> PriceProvider:
        return self._backup

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def cooldown(self) -> timedelta:
        return timedelta(minutes=self._config.retry_primary_after_minutes)

    def is_primary(self, provider: PriceProvider) -> bool:
        return provider is self._primary

    def get_primary_api_retry_time(self) -> datetime | None:
        """Instant after which the primary will be probed again, if failed over."""
        return self._retry_after

    async def get_service(self) -> PriceProvider:
        """Return the provider that should serve the next request."""
        async with self._lock:
            if self._state is SelectorState.PRIMARY:
                return self._primary

            if self._cooldown_elapsed() and await self._probe_primary():
                return self._primary

            if await self._backup.is_available():
                if self._state is SelectorState.ALL_UNAVAILABLE:
                    logger.info("Backup provider recovered", provider=self._backup.service_name)
                self._state = SelectorState.BACKUP
                self._backup_failed_at = None
                return self._backup

            self._backup_failed_at = self._clock()
            if self._state is not SelectorState.ALL_UNAVAILABLE:
                logger.error(
                    "All providers are unavailable",
                    provider=self._backup.service_name,
                    retry_after=self._retry_after,
                )
            self._state = SelectorState.ALL_UNAVAILABLE
            raise AllProvidersUnavailableError(
                "All API services are unavailable",
                failed_providers=[self._primary.service_name, self._backup.service_name],
            )

    async def notify_primary_failure(self, error: BaseException | None = None) -> None:
        """Record a primary failure and fail over to the backup."""
        async with self._lock:
            now = self._clock()
            self._primary_failed_at = now
            self._retry_after = now + self.cooldown
            if self._state is SelectorState.PRIMARY:
                self._state = SelectorState.BACKUP
            logger.warning(
                "Primary provider failed, switching to backup",
                provider=self._primary.service_name,
                backup=self._backup.service_name,
                retry_after=self._retry_after,
                error=str(error) if error is not None else None,
            )

    async def try_reset_to_primary(self) -> bool:
        """Probe the primary once its cooldown has elapsed; True when it serves again."""
        async with self._lock:
            if self._state is SelectorState.PRIMARY:
                return True
            if not self._cooldown_elapsed():
                return False
            return await self._probe_primary()

    async def are_all_services_unavailable(self) -> bool:
        primary_ok, backup_ok = await asyncio.gather(self._primary.is_available(), self._backup.is_available())
        return not primary_ok and not backup_ok

    def provider_states(self) -> list[ProviderState]:
        return [
            ProviderState(
                service_name=self._primary.service_name,
                remaining_calls=self._primary.get_remaining_calls(),
                available=self._state is SelectorState.PRIMARY,
                last_failure_at=self._primary_failed_at,
                retry_after=self._retry_after,
            ),
            ProviderState(
                service_name=self._backup.service_name,
                remaining_calls=self._backup.get_remaining_calls(),
                available=self._state is not SelectorState.ALL_UNAVAILABLE,
                last_failure_at=self._backup_failed_at,
            ),
        ]

    def _cooldown_elapsed(self) -> bool:
        return self._retry_after is None or self._clock() >= self._retry_after

    async def _probe_primary(self) -> bool:
        # caller holds self._lock
        if await self._primary.is_available():
            self._state = SelectorState.PRIMARY
            self._retry_after = None
            self._backup_failed_at = None
            logger.info("Reset to primary provider", provider=self._primary.service_name)
            return True

        now = self._clock()
        self._primary_failed_at = now
        self._retry_after = now + self.cooldown
        logger.warning(
            "Primary provider still unavailable",
            provider=self._primary.service_name,
            retry_after=self._retry_after,
        )
        return False


__all__ = ["ProviderSelector", "ProviderState", "SelectorState"]
