"""测试主备数据源切换."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from marketcharts.core.config import ApiConfig
from marketcharts.core.exceptions import AllProvidersUnavailableError, TransportError
from marketcharts.core.patterns import ProviderSelector, SelectorState


@pytest.fixture
def selector(primary, backup, clock) -> ProviderSelector:
    return ProviderSelector(primary, backup, ApiConfig(retry_primary_after_minutes=60), clock=clock)


class TestProviderSelector:
    """测试数据源选择器."""

    @pytest.mark.asyncio
    async def test_starts_on_primary(self, selector, primary):
        assert selector.state is SelectorState.PRIMARY
        assert await selector.get_service() is primary
        assert selector.get_primary_api_retry_time() is None
        assert primary.probe_calls == 0

    @pytest.mark.asyncio
    async def test_failure_switches_to_backup(self, selector, primary, backup, clock):
        await selector.notify_primary_failure(TransportError("HTTP 503", provider_name="Primary"))

        assert selector.state is SelectorState.BACKUP
        assert selector.get_primary_api_retry_time() == clock() + timedelta(minutes=60)
        assert await selector.get_service() is backup
        # primary is not probed before its cooldown has elapsed
        assert primary.probe_calls == 0

    @pytest.mark.asyncio
    async def test_both_unavailable_raises(self, selector, primary, backup):
        primary.available = False
        backup.available = False
        await selector.notify_primary_failure()

        with pytest.raises(AllProvidersUnavailableError) as exc_info:
            await selector.get_service()

        assert selector.state is SelectorState.ALL_UNAVAILABLE
        assert exc_info.value.failed_providers == ["Primary", "Backup"]
        assert await selector.are_all_services_unavailable() is True

    @pytest.mark.asyncio
    async def test_backup_recovery_after_total_outage(self, selector, backup):
        backup.available = False
        await selector.notify_primary_failure()
        with pytest.raises(AllProvidersUnavailableError):
            await selector.get_service()

        backup.available = True

        assert await selector.get_service() is backup
        assert selector.state is SelectorState.BACKUP

    @pytest.mark.asyncio
    async def test_reset_to_primary_waits_for_cooldown(self, selector, primary, clock):
        await selector.notify_primary_failure()

        clock.advance(minutes=30)
        assert await selector.try_reset_to_primary() is False
        assert primary.probe_calls == 0

        clock.advance(minutes=31)
        assert await selector.try_reset_to_primary() is True
        assert selector.state is SelectorState.PRIMARY
        assert selector.get_primary_api_retry_time() is None
        assert await selector.get_service() is primary

    @pytest.mark.asyncio
    async def test_failed_probe_reschedules_retry(self, selector, primary, clock):
        await selector.notify_primary_failure()
        primary.available = False
        clock.advance(minutes=61)

        assert await selector.try_reset_to_primary() is False

        assert selector.state is SelectorState.BACKUP
        assert selector.get_primary_api_retry_time() == clock() + timedelta(minutes=60)

    @pytest.mark.asyncio
    async def test_get_service_returns_primary_after_cooldown(self, selector, primary, clock):
        await selector.notify_primary_failure()
        clock.advance(hours=2)

        assert await selector.get_service() is primary
        assert primary.probe_calls == 1

    @pytest.mark.asyncio
    async def test_try_reset_when_already_primary(self, selector, primary):
        assert await selector.try_reset_to_primary() is True
        assert primary.probe_calls == 0

    @pytest.mark.asyncio
    async def test_provider_states(self, selector, clock):
        await selector.notify_primary_failure()

        primary_state, backup_state = selector.provider_states()

        assert primary_state.service_name == "Primary"
        assert primary_state.available is False
        assert primary_state.last_failure_at == clock()
        assert primary_state.remaining_calls == 100
        assert backup_state.available is True


def _yielding_probe(provider):
    """Make the availability check yield to the event loop before answering."""

    async def probe() -> bool:
        provider.probe_calls += 1
        await asyncio.sleep(0)
        return provider.available

    provider._probe = probe


class TestConcurrentCallers:
    """测试并发调用时状态一致."""

    @pytest.mark.asyncio
    async def test_concurrent_recovery_probes_primary_once(self, selector, primary, clock):
        await selector.notify_primary_failure()
        clock.advance(hours=2)
        _yielding_probe(primary)

        services = await asyncio.gather(*(selector.get_service() for _ in range(10)))

        assert all(service is primary for service in services)
        assert primary.probe_calls == 1
        assert selector.state is SelectorState.PRIMARY

    @pytest.mark.asyncio
    async def test_failure_reported_during_lookups(self, selector, primary, backup, clock):
        _yielding_probe(backup)

        results = await asyncio.gather(
            selector.notify_primary_failure(TransportError("HTTP 503", provider_name="Primary")),
            *(selector.get_service() for _ in range(5)),
        )

        assert all(service is backup for service in results[1:])
        assert backup.probe_calls == 5
        assert primary.probe_calls == 0
        assert selector.state is SelectorState.BACKUP
        assert selector.get_primary_api_retry_time() == clock() + timedelta(minutes=60)

    @pytest.mark.asyncio
    async def test_concurrent_lookups_during_total_outage(self, selector, primary, backup):
        primary.available = False
        backup.available = False
        _yielding_probe(backup)
        await selector.notify_primary_failure()

        results = await asyncio.gather(*(selector.get_service() for _ in range(4)), return_exceptions=True)

        assert all(isinstance(result, AllProvidersUnavailableError) for result in results)
        assert selector.state is SelectorState.ALL_UNAVAILABLE
        assert [state.available for state in selector.provider_states()] == [False, False]
