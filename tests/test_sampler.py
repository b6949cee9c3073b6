from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from pyordertrack.config import GeolocationPolicy, PositionOptions, TrackConfig
from pyordertrack.exceptions import (
    TrackLocationTimeoutError,
    TrackPermissionDeniedError,
    TrackPositionUnavailableError,
    TrackUnsupportedError,
)
from pyordertrack.gateway import LocationGateway
from pyordertrack.models.position import PositionSample
from pyordertrack.sampler import PositionSampler

_HANG = object()
_STORE_LAT = 20.2961
_STORE_LON = 85.8245


def _sample(lat_offset: float = 0.0) -> PositionSample:
    return PositionSample(latitude=_STORE_LAT + lat_offset, longitude=_STORE_LON, accuracy=12.0)


class _FakeProvider:
    def __init__(self, results: list[Any]) -> None:
        self._results = list(results)
        self.calls: list[PositionOptions] = []

    async def get_current_position(self, options: PositionOptions) -> PositionSample:
        self.calls.append(options)
        result = self._results.pop(0)
        if result is _HANG:
            await asyncio.Event().wait()
        if isinstance(result, BaseException):
            raise result
        return result


class _TickSleep:
    """Let ``ticks`` intervals pass immediately, then block until cancelled."""

    def __init__(self, ticks: int) -> None:
        self.remaining = ticks
        self.delays: list[float] = []
        self.idle = asyncio.Event()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.remaining == 0:
            self.idle.set()
            await asyncio.Event().wait()
        self.remaining -= 1


class _RecordingTransport:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Mapping[str, Any] | None]] = []

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.calls.append((method, endpoint, json_body))
        return {"success": True}


def _fast_config() -> TrackConfig:
    return TrackConfig(
        geolocation=GeolocationPolicy(
            primary=PositionOptions(timeout=0.05, maximum_age=120.0),
            fallback=PositionOptions(timeout=0.05, maximum_age=300.0),
        )
    )


@pytest.mark.asyncio
async def test_movement_filter_drops_small_moves_and_submits_accepted_samples() -> None:
    transport = _RecordingTransport()
    provider = _FakeProvider([_sample(), _sample(0.000045), _sample(0.00045)])
    sleep = _TickSleep(ticks=2)
    accepted: list[PositionSample] = []
    sampler = PositionSampler(
        provider,
        config=TrackConfig(),
        gateway=LocationGateway(transport),
        on_sample=accepted.append,
        sleep=sleep,
    )

    assert await sampler.start("TASK-1") is True
    await asyncio.wait_for(sleep.idle.wait(), 1.0)
    await sampler.wait_submissions()

    assert [s.latitude for s in accepted] == [_STORE_LAT, _STORE_LAT + 0.00045]
    assert [call[2] for call in transport.calls] == [
        {"location": {"latitude": _STORE_LAT, "longitude": _STORE_LON}},
        {"location": {"latitude": _STORE_LAT + 0.00045, "longitude": _STORE_LON}},
    ]
    assert sleep.delays == [10.0, 10.0, 10.0]
    assert sampler.current_location == accepted[-1]
    assert sampler.is_tracking

    await sampler.stop()
    assert not sampler.is_tracking


@pytest.mark.asyncio
async def test_initial_fix_falls_back_to_relaxed_options() -> None:
    config = TrackConfig()
    provider = _FakeProvider([TrackPositionUnavailableError("no satellites"), _sample()])
    sampler = PositionSampler(provider, config=config, sleep=_TickSleep(ticks=0))

    assert await sampler.start("TASK-1") is True
    assert provider.calls == [config.geolocation.primary, config.geolocation.fallback]
    await sampler.stop()


@pytest.mark.asyncio
async def test_initial_fix_failure_reports_first_error_and_does_not_track() -> None:
    errors: list[str] = []
    provider = _FakeProvider([TrackPositionUnavailableError("no satellites"), TrackLocationTimeoutError("slow")])
    sampler = PositionSampler(provider, config=TrackConfig(), on_error=errors.append)

    assert await sampler.start("TASK-1") is False
    assert errors == ["Unable to get location: no satellites"]
    assert not sampler.is_tracking


@pytest.mark.asyncio
async def test_acquisition_timeout_is_enforced_client_side() -> None:
    errors: list[str] = []
    sampler = PositionSampler(_FakeProvider([_HANG, _HANG]), config=_fast_config(), on_error=errors.append)

    assert await sampler.start("TASK-1") is False
    assert errors == ["Unable to get location: Location request timed out"]


@pytest.mark.asyncio
async def test_permission_denied_is_terminal_until_reset() -> None:
    errors: list[str] = []
    provider = _FakeProvider([TrackPermissionDeniedError("Location access denied by user"), _sample()])
    sampler = PositionSampler(provider, config=TrackConfig(), on_error=errors.append, sleep=_TickSleep(ticks=0))

    assert await sampler.start("TASK-1") is False
    assert sampler.permission_denied
    # The fallback is not attempted after a denial.
    assert len(provider.calls) == 1

    assert await sampler.start("TASK-1") is False
    assert len(provider.calls) == 1
    assert errors == ["Location access denied by user", "Location access denied by user"]

    sampler.reset_permission()
    assert await sampler.start("TASK-1") is True
    await sampler.stop()


@pytest.mark.asyncio
async def test_permission_revoked_while_tracking_stops_sampling() -> None:
    errors: list[str] = []
    provider = _FakeProvider([_sample(), TrackPermissionDeniedError("Location access denied by user")])
    sampler = PositionSampler(provider, config=TrackConfig(), on_error=errors.append, sleep=_TickSleep(ticks=5))

    assert await sampler.start("TASK-1") is True
    task = sampler._task  # type: ignore[attr-defined]  # noqa: SLF001
    assert task is not None
    await asyncio.wait_for(task, 1.0)

    assert not sampler.is_tracking
    assert sampler.permission_denied
    assert errors == ["Location access denied by user"]


@pytest.mark.asyncio
async def test_periodic_timeout_and_unavailable_are_not_reported_to_user() -> None:
    errors: list[str] = []
    provider = _FakeProvider([_sample(), _HANG, TrackPositionUnavailableError("indoors"), _sample(0.001)])
    sleep = _TickSleep(ticks=3)
    sampler = PositionSampler(provider, config=_fast_config(), on_error=errors.append, sleep=sleep)

    assert await sampler.start("TASK-1") is True
    await asyncio.wait_for(sleep.idle.wait(), 1.0)

    assert errors == []
    assert sampler.is_tracking
    assert sampler.current_location is not None
    assert sampler.current_location.latitude == pytest.approx(_STORE_LAT + 0.001)
    assert sampler.error is None
    await sampler.stop()


@pytest.mark.asyncio
async def test_unsupported_platform_reports_once_and_never_tracks() -> None:
    errors: list[str] = []
    sampler = PositionSampler(None, config=TrackConfig(), on_error=errors.append)

    assert not sampler.is_supported
    assert await sampler.start("TASK-1") is False
    assert errors == ["Geolocation not supported"]
    assert not sampler.is_tracking


@pytest.mark.asyncio
async def test_start_requires_order_id() -> None:
    errors: list[str] = []
    sampler = PositionSampler(_FakeProvider([]), config=TrackConfig(), on_error=errors.append)
    assert await sampler.start("") is False
    assert errors == ["Order ID required"]


@pytest.mark.asyncio
async def test_double_stop_is_safe() -> None:
    sampler = PositionSampler(_FakeProvider([_sample()]), config=TrackConfig(), sleep=_TickSleep(ticks=0))
    assert await sampler.start("TASK-1") is True

    await sampler.stop()
    await sampler.stop()
    assert not sampler.is_tracking


@pytest.mark.asyncio
async def test_one_shot_bypasses_filter_and_resets_reference() -> None:
    transport = _RecordingTransport()
    provider = _FakeProvider([_sample(), _sample(0.00001), _sample(0.00005)])
    sampler = PositionSampler(
        provider,
        config=TrackConfig(),
        gateway=LocationGateway(transport),
        sleep=_TickSleep(ticks=0),
    )

    assert await sampler.start("TASK-1") is True
    one_shot = await sampler.request_one_shot()
    assert one_shot is not None
    assert one_shot.latitude == _STORE_LAT + 0.00001

    await sampler.stop()
    await sampler.wait_submissions()
    assert len(transport.calls) == 2
    assert sampler._last_accepted == one_shot  # type: ignore[attr-defined]  # noqa: SLF001


@pytest.mark.asyncio
async def test_overlapping_starts_run_a_single_loop() -> None:
    provider = _FakeProvider([_sample(), _sample()])
    sleep = _TickSleep(ticks=0)
    sampler = PositionSampler(provider, config=TrackConfig(), sleep=sleep)

    results = await asyncio.gather(sampler.start("TASK-1"), sampler.start("TASK-1"))
    await asyncio.wait_for(sleep.idle.wait(), 1.0)
    await sampler.stop()
    for _ in range(5):
        await asyncio.sleep(0)

    assert results == [True, True]
    assert len(provider.calls) == 1
    assert sleep.delays == [10.0]
    assert not sampler.is_tracking


@pytest.mark.asyncio
async def test_start_for_another_order_restarts_tracking() -> None:
    transport = _RecordingTransport()
    provider = _FakeProvider([_sample(), _sample(0.001)])
    sampler = PositionSampler(
        provider,
        config=TrackConfig(),
        gateway=LocationGateway(transport),
        sleep=_TickSleep(ticks=0),
    )

    assert await sampler.start("TASK-1") is True
    assert await sampler.start("TASK-2") is True
    await sampler.wait_submissions()

    assert sampler.order_id == "TASK-2"
    assert sampler.is_tracking
    assert [call[1] for call in transport.calls] == ["/orders/TASK-1/location", "/orders/TASK-2/location"]
    await sampler.stop()


@pytest.mark.asyncio
async def test_one_shot_without_geolocation_reports_unsupported() -> None:
    errors: list[str] = []
    sampler = PositionSampler(None, config=TrackConfig(), on_error=errors.append)

    assert await sampler.request_one_shot() is None
    assert errors == [str(TrackUnsupportedError("Geolocation not supported"))]
