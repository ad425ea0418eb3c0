import asyncio

import pytest

from fakes import FakeSwe, failing_loader
from ephemeris import SOURCE_SWISS, EphemerisContext, load_swisseph
from exceptions import EphemerisUnavailableError, InvalidInputError
from timeutils import J2000


def test_initialization_runs_once_for_concurrent_callers():
    calls = []

    def loader(path):
        calls.append(path)
        return FakeSwe(), True

    context = EphemerisContext(ephemeris_path="/nowhere", loader=loader)

    async def run():
        return await asyncio.gather(*(context.initialize() for _ in range(5)))

    assert asyncio.run(run()) == [True] * 5
    assert calls == ["/nowhere"]
    assert context.available is True


def test_outcome_is_remembered_across_event_loops():
    calls = []

    def loader(path):
        calls.append(path)
        return FakeSwe(), True

    context = EphemerisContext(loader=loader)
    assert asyncio.run(context.initialize())
    assert asyncio.run(context.initialize())
    assert len(calls) == 1


def test_failed_load_reports_unavailable():
    context = EphemerisContext(loader=failing_loader)

    async def run():
        available = await context.initialize()
        with pytest.raises(EphemerisUnavailableError):
            await context.compute_chart(J2000, 41.0, 29.0)
        return available, await context.find_solar_crossing(280.0, J2000)

    assert asyncio.run(run()) == (False, None)


def test_disabled_context_never_loads():
    def loader(path):
        raise AssertionError("loader should not run")

    context = EphemerisContext(enabled=False, loader=loader)
    assert asyncio.run(context.initialize()) is False


def test_compute_chart_from_module():
    swe = FakeSwe()
    context = EphemerisContext(loader=lambda path: (swe, True))
    raw = asyncio.run(context.compute_chart(J2000, 41.0, 29.0))

    assert raw.source == SOURCE_SWISS
    assert raw.house_system == 'Placidus'
    assert len(raw.cusps) == 12
    assert raw.bodies['Sun'] == (75.0, 1.0)
    assert raw.bodies['North Node'] == (21.0, -0.05)
    flags = {call[2] for call in swe.calls}
    assert flags == {FakeSwe.FLG_MOSEPH | FakeSwe.FLG_SPEED}


def test_mean_node_requested():
    swe = FakeSwe()
    context = EphemerisContext(loader=lambda path: (swe, True))
    raw = asyncio.run(context.compute_chart(J2000, 41.0, 29.0, node_type='mean'))
    assert raw.bodies['North Node'][0] == 20.0


def test_chiron_failure_falls_back_to_approximation():
    from approximation import chiron_longitude

    context = EphemerisContext(loader=lambda path: (FakeSwe(chiron_fails=True), True))
    raw = asyncio.run(context.compute_chart(J2000, 41.0, 29.0))
    assert raw.bodies['Chiron'][0] == pytest.approx(chiron_longitude(J2000))


def test_throwing_calculation_is_unavailable():
    swe = FakeSwe()

    def broken(*args):
        raise RuntimeError("corrupt ephemeris file")

    swe.houses_ex = broken
    context = EphemerisContext(loader=lambda path: (swe, True))
    with pytest.raises(EphemerisUnavailableError):
        asyncio.run(context.compute_chart(J2000, 41.0, 29.0))


def test_unknown_house_system():
    context = EphemerisContext(loader=lambda path: (FakeSwe(), True))
    with pytest.raises(InvalidInputError):
        asyncio.run(context.compute_chart(J2000, 41.0, 29.0, house_system='Meridian'))


def test_solar_crossing():
    context = EphemerisContext(loader=lambda path: (FakeSwe(crossing=2451900.25), True))
    assert asyncio.run(context.find_solar_crossing(100.0, 2451890.0)) == 2451900.25


def test_solar_crossing_failure_returns_none():
    context = EphemerisContext(loader=lambda path: (FakeSwe(crossing=None), True))
    assert asyncio.run(context.find_solar_crossing(100.0, 2451890.0)) is None


def test_load_swisseph_uses_moshier_without_files(tmp_path):
    module, use_moshier = load_swisseph(str(tmp_path))
    assert use_moshier is True
    assert hasattr(module, 'calc_ut')


def test_polar_latitude_keeps_swiss_planets_with_equal_houses():
    swe = FakeSwe(failing_house_systems={b'P'})
    context = EphemerisContext(loader=lambda path: (swe, True))
    raw = asyncio.run(context.compute_chart(J2000, 75.0, 20.0))

    assert raw.source == SOURCE_SWISS
    assert raw.house_system == 'Equal'
    assert raw.bodies['Sun'] == (75.0, 1.0)
    assert swe.house_calls == [b'P', b'A']
