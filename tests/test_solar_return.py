import asyncio

import pytest

from approximation import sun_longitude
from config import Settings
from exceptions import CrossingSearchError
from fakes import CrossingOnlyEphemeris
from natal import UT, BirthData, ChartAssembler
from solar_return import (
    Precision,
    SolarReturnEngine,
    bisect_sun_crossing,
    signed_difference,
)
from timeutils import date_to_julian_day

BIRTH = BirthData(1990, 6, 15, 12, 0, 52.52, 13.405, 'Europe/Berlin', 'Berlin')


def _natal(assembler):
    return asyncio.run(assembler.compute_chart(BIRTH))


def test_signed_difference():
    assert signed_difference(350, 10) == -20
    assert signed_difference(10, 350) == 20
    assert signed_difference(100, 100) == 0


def test_bisection_converges_on_linear_sun():
    def linear(jd):
        return (jd - 1000) % 360

    jd = bisect_sun_crossing(5.3, 1000, 1010, tolerance=1e-6, sun_fn=linear)
    assert jd == pytest.approx(1005.3, abs=1e-5)


def test_bisection_gives_up_after_budget():
    with pytest.raises(CrossingSearchError):
        bisect_sun_crossing(5.3, 1000, 1010, tolerance=1e-9, max_iterations=1, sun_fn=lambda jd: (jd - 1000) % 360)


def test_exact_instant_from_crossing_search(assembler, settings):
    engine = SolarReturnEngine(assembler, CrossingOnlyEphemeris(5.25), settings)
    instant = asyncio.run(engine.find_return_instant(84.0, 2020, 6, 15))
    assert instant.precision == Precision.EXACT
    assert not instant.is_approximate
    assert instant.julian_day == pytest.approx(date_to_julian_day(2020, 6, 15) - 5 + 5.25)


def test_approximate_instant_matches_natal_sun(assembler, settings):
    natal_sun = _natal(assembler).planet('Sun').longitude
    engine = SolarReturnEngine(assembler, settings=settings)
    instant = asyncio.run(engine.find_return_instant(natal_sun, 2020, 6, 15))
    assert instant.precision == Precision.APPROXIMATE
    assert instant.is_approximate
    assert abs(signed_difference(sun_longitude(instant.julian_day), natal_sun)) < settings.solar_return_tolerance
    assert instant.civil.month == 6


def test_default_instant_when_bisection_fails(assembler):
    strict = Settings(_env_file=None, solar_return_max_iterations=1, solar_return_tolerance=1e-9)
    engine = SolarReturnEngine(assembler, settings=strict)
    instant = asyncio.run(engine.find_return_instant(84.0, 2020, 6, 15))
    assert instant.precision == Precision.DEFAULT
    assert instant.is_approximate
    assert instant.julian_day == date_to_julian_day(2020, 6, 15, 12, 0)


def test_year_length_comes_from_both_instants(assembler, settings):
    engine = SolarReturnEngine(assembler, CrossingOnlyEphemeris(5.25), settings)
    result = asyncio.run(engine.compute(_natal(assembler), 2020))
    assert result.year_days == pytest.approx(365.0)
    assert not result.is_approximate
    assert result.next_instant.year == 2021


@pytest.fixture
def solar_return(assembler, settings):
    engine = SolarReturnEngine(assembler, settings=settings)
    return asyncio.run(engine.compute(_natal(assembler), 2020))


def test_return_chart_is_built_in_ut(solar_return):
    chart = solar_return.chart
    assert chart.birth.timezone == UT
    assert chart.utc_offset == 0
    assert chart.julian_day == solar_return.instant.julian_day
    assert abs(signed_difference(chart.planet('Sun').longitude, solar_return.natal_sun)) < 1 / 60


def test_return_is_flagged_approximate(solar_return):
    assert solar_return.is_approximate
    assert solar_return.instant.precision == Precision.APPROXIMATE
    assert solar_return.year_days == pytest.approx(365.2422, abs=0.1)


def test_calendar_covers_the_whole_circle(solar_return):
    calendar = solar_return.calendar
    assert calendar[0].order == 1
    assert calendar[0].is_first
    assert calendar[0].start_jd == solar_return.instant.julian_day
    assert len(calendar) in (36, 37)
    assert sum(e.span_degrees for e in calendar) == pytest.approx(360.0)
    assert calendar[-1].end_jd == pytest.approx(solar_return.instant.julian_day + solar_return.year_days)
    for previous, current in zip(calendar, calendar[1:]):
        assert current.degrees_from_start == pytest.approx(previous.degrees_from_start + previous.span_degrees)
        assert current.start_jd == pytest.approx(previous.end_jd)


def test_calendar_starts_in_the_sun_decan(solar_return):
    sun = solar_return.chart.planet('Sun')
    first = solar_return.calendar[0]
    assert first.house == sun.house
    assert 'Sun' in [p.name for p in first.planets]
    if len(solar_return.calendar) == 37:
        last = solar_return.calendar[-1]
        assert (last.house, last.decan) == (first.house, first.decan)


def test_every_planet_placed_once(solar_return):
    placed = [p.name for entry in solar_return.calendar for p in entry.planets]
    assert sorted(placed) == sorted(p.name for p in solar_return.chart.planets)
    for entry in solar_return.calendar:
        for planet in entry.planets:
            assert entry.start_jd - 1e-6 <= planet.julian_day < entry.end_jd + 1e-6


def test_solar_months(solar_return):
    months = solar_return.months
    assert len(months) == 12
    assert months[0].start_jd == solar_return.instant.julian_day
    assert months[0].start_longitude == pytest.approx(solar_return.natal_sun)
    assert months[-1].next_start_jd == pytest.approx(solar_return.instant.julian_day + solar_return.year_days)
    for month, following in zip(months, months[1:]):
        assert following.start_jd == pytest.approx(month.next_start_jd)
        assert month.end_jd == pytest.approx(month.next_start_jd - 1)
        assert month.end_date.isoformat() < following.start_date.isoformat()
    placed = [p.name for m in months for p in m.planets]
    assert sorted(placed) == sorted(p.name for p in solar_return.chart.planets)


def test_return_at_another_place(assembler, settings):
    engine = SolarReturnEngine(assembler, settings=settings)
    result = asyncio.run(engine.compute(_natal(assembler), 2020, latitude=40.7128, longitude=-74.006,
                                        location_name='New York'))
    assert result.chart.birth.latitude == 40.7128
    assert result.chart.birth.location_name == 'New York'


def test_engine_reuses_assembler_context(settings, offline_ephemeris):
    assembler = ChartAssembler(offline_ephemeris, settings)
    assert SolarReturnEngine(assembler, settings=settings).ephemeris is offline_ephemeris
