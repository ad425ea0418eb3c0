"""
Solar Return search and decan calendar.

The return instant is found with the ephemeris crossing search when
possible, by bisection over the approximate solar longitude otherwise, and
as a last resort is taken as the birthday at noon. Every instant carries
its precision tier so approximate dates are never shown as exact.

The calendar converts arc into time with the measured length of this
particular solar year: the decans of the return chart are walked in house
order starting from the one holding the return Sun.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from approximation import sun_longitude
from config import Settings, get_settings
from decans import MINUTES_PER_DEGREE, HouseDecans, compute_decans
from ephemeris import EphemerisContext
from exceptions import CrossingSearchError
from natal import Chart, ChartAssembler
from timeutils import CivilDateTime, date_to_julian_day, julian_day_to_date
from zodiac import DecanRef, SignPosition, forward_distance, normalize_degrees

logger = logging.getLogger(__name__)

FULL_CIRCLE = 360.0
SOLAR_MONTH_DEGREES = 30.0
# Remaining arc below this closes the calendar.
CLOSING_EPSILON = 1e-9
DEFAULT_RETURN_HOUR = 12


class Precision(str, Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"
    DEFAULT = "default"


@dataclass(frozen=True)
class SolarReturnInstant:
    year: int
    julian_day: float
    precision: Precision

    @property
    def civil(self) -> CivilDateTime:
        return julian_day_to_date(self.julian_day)

    @property
    def is_approximate(self) -> bool:
        return self.precision != Precision.EXACT


@dataclass(frozen=True)
class CalendarPlanet:
    name: str
    longitude: float
    position: SignPosition
    house: int
    degrees_from_start: float
    days_from_return: float
    julian_day: float

    @property
    def date(self) -> CivilDateTime:
        return julian_day_to_date(self.julian_day)


@dataclass(frozen=True)
class CalendarEntry:
    order: int
    house: int
    decan: int
    house_sign: str
    ref: DecanRef
    degrees_from_start: float
    span_degrees: float
    start_jd: float
    span_days: float
    is_first: bool
    planets: Tuple[CalendarPlanet, ...] = ()

    @property
    def ruling_sign(self) -> str:
        return self.ref.ruling_sign

    @property
    def ruling_planet(self) -> str:
        return self.ref.ruling_planet

    @property
    def end_jd(self) -> float:
        return self.start_jd + self.span_days

    @property
    def start_date(self) -> CivilDateTime:
        return julian_day_to_date(self.start_jd)


@dataclass(frozen=True)
class SolarMonth:
    index: int
    start_longitude: float
    end_longitude: float
    start_jd: float
    next_start_jd: float
    planets: Tuple[CalendarPlanet, ...] = ()

    @property
    def end_jd(self) -> float:
        """Last day of the month, one day before the next month starts."""
        return self.next_start_jd - 1

    @property
    def start_date(self) -> CivilDateTime:
        return julian_day_to_date(self.start_jd)

    @property
    def end_date(self) -> CivilDateTime:
        return julian_day_to_date(self.end_jd)


@dataclass(frozen=True)
class SolarReturn:
    year: int
    natal_sun: float
    instant: SolarReturnInstant
    next_instant: SolarReturnInstant
    year_days: float
    chart: Chart
    decans: Tuple[HouseDecans, ...]
    calendar: Tuple[CalendarEntry, ...]
    months: Tuple[SolarMonth, ...]

    @property
    def is_approximate(self) -> bool:
        return self.instant.is_approximate or self.next_instant.is_approximate


def signed_difference(longitude: float, target: float) -> float:
    """longitude - target reduced to [-180, 180)."""
    return (longitude - target + 180) % 360 - 180


def bisect_sun_crossing(target: float,
                        low: float,
                        high: float,
                        tolerance: float = 1.0 / 60.0,
                        max_iterations: int = 50,
                        sun_fn: Callable[[float], float] = sun_longitude) -> float:
    """
    JD in [low, high] where sun_fn reaches target within tolerance degrees.

    Raises CrossingSearchError when the iteration budget runs out.
    """
    for _ in range(max_iterations):
        mid = (low + high) / 2
        diff = signed_difference(sun_fn(mid), target)
        if abs(diff) < tolerance:
            return mid
        if diff < 0:
            low = mid
        else:
            high = mid
    raise CrossingSearchError(
        f"Sun did not reach {target:.4f}° within {max_iterations} iterations "
        f"between JD {low:.4f} and {high:.4f}"
    )


def cumulative_offsets(house_decans: Sequence[HouseDecans]) -> list[float]:
    """Degrees from the first cusp to the start of each house, walking house spans."""
    offsets, total = [], 0.0
    for house in house_decans:
        offsets.append(total)
        total += house.span_degrees
    return offsets


def degrees_in_chart_order(longitude: float, house: int, house_decans: Sequence[HouseDecans],
                           offsets: Sequence[float]) -> float:
    return offsets[house - 1] + forward_distance(house_decans[house - 1].cusp, longitude)


def build_calendar(chart: Chart,
                   house_decans: Sequence[HouseDecans],
                   return_jd: float,
                   year_days: float) -> Tuple[CalendarEntry, ...]:
    """
    Decan calendar for one solar year.

    Entry 1 is the unelapsed part of the decan holding the return Sun. The
    walk continues through the 36 decans in house order until the full
    circle is covered; the final entry is the part of the Sun's decan that
    lies before the Sun.
    """
    days_per_degree = year_days / FULL_CIRCLE
    flat = [(house, decan) for house in house_decans for decan in house.decans]
    offsets = cumulative_offsets(house_decans)

    sun = chart.planet('Sun')
    sun_house = house_decans[sun.house - 1]
    sun_in_house = forward_distance(sun_house.cusp, sun.longitude) * MINUTES_PER_DEGREE
    sun_decan = sun_house.decan_at_offset(sun_in_house)
    sun_index = (sun.house - 1) * 3 + sun_decan.index - 1
    elapsed = (sun_in_house - sun_decan.start_offset) / MINUTES_PER_DEGREE
    sun_offset = degrees_in_chart_order(sun.longitude, sun.house, house_decans, offsets)

    spans = []  # (flat index, degrees from start, span)
    first_span = max(sun_decan.span / MINUTES_PER_DEGREE - elapsed, 0.0)
    spans.append((sun_index, 0.0, first_span))
    total = first_span
    step = 1
    while FULL_CIRCLE - total > CLOSING_EPSILON:
        index = (sun_index + step) % len(flat)
        width = min(flat[index][1].span / MINUTES_PER_DEGREE, FULL_CIRCLE - total)
        spans.append((index, total, width))
        total += width
        step += 1

    placed = {i: [] for i in range(len(spans))}
    for planet in chart.planets:
        degrees = normalize_degrees(
            degrees_in_chart_order(planet.longitude, planet.house, house_decans, offsets) - sun_offset)
        days = degrees * days_per_degree
        target = len(spans) - 1
        for i, (_, start, width) in enumerate(spans):
            if start * days_per_degree <= days < (start + width) * days_per_degree:
                target = i
                break
        placed[target].append(CalendarPlanet(
            name=planet.name,
            longitude=planet.longitude,
            position=planet.position,
            house=planet.house,
            degrees_from_start=degrees,
            days_from_return=days,
            julian_day=return_jd + days,
        ))

    entries = []
    for i, (index, start, width) in enumerate(spans):
        house, decan = flat[index]
        entries.append(CalendarEntry(
            order=i + 1,
            house=house.house,
            decan=decan.index,
            house_sign=house.sign,
            ref=decan.ref,
            degrees_from_start=start,
            span_degrees=width,
            start_jd=return_jd + start * days_per_degree,
            span_days=width * days_per_degree,
            is_first=i == 0,
            planets=tuple(sorted(placed[i], key=lambda p: p.days_from_return)),
        ))
    return tuple(entries)


def build_solar_months(chart: Chart, natal_sun: float, return_jd: float, year_days: float) -> Tuple[SolarMonth, ...]:
    """Twelve 30° months counted from the natal Sun."""
    days_per_degree = year_days / FULL_CIRCLE
    months = []
    for i in range(12):
        start = i * SOLAR_MONTH_DEGREES
        end = start + SOLAR_MONTH_DEGREES
        planets = []
        for planet in chart.planets:
            offset = forward_distance(natal_sun, planet.longitude)
            if start <= offset < end:
                planets.append(CalendarPlanet(
                    name=planet.name,
                    longitude=planet.longitude,
                    position=planet.position,
                    house=planet.house,
                    degrees_from_start=offset,
                    days_from_return=offset * days_per_degree,
                    julian_day=return_jd + offset * days_per_degree,
                ))
        months.append(SolarMonth(
            index=i + 1,
            start_longitude=normalize_degrees(natal_sun + start),
            end_longitude=normalize_degrees(natal_sun + end),
            start_jd=return_jd + start * days_per_degree,
            next_start_jd=return_jd + end * days_per_degree,
            planets=tuple(sorted(planets, key=lambda p: p.days_from_return)),
        ))
    return tuple(months)


class SolarReturnEngine:
    """Find Solar Return instants and project the return chart's decans onto dates."""

    def __init__(self,
                 assembler: ChartAssembler,
                 ephemeris: Optional[EphemerisContext] = None,
                 settings: Optional[Settings] = None):
        self.assembler = assembler
        self.ephemeris = ephemeris or assembler.ephemeris
        self.settings = settings or get_settings()

    def seed_julian_day(self, year: int, birth_month: int, birth_day: int) -> float:
        return date_to_julian_day(year, birth_month, birth_day, 0, 0) - self.settings.solar_return_seed_days

    async def find_return_instant(self, natal_sun: float, year: int,
                                  birth_month: int, birth_day: int) -> SolarReturnInstant:
        start = self.seed_julian_day(year, birth_month, birth_day)

        jd = await self.ephemeris.find_solar_crossing(natal_sun, start)
        if jd is not None:
            return SolarReturnInstant(year, jd, Precision.EXACT)

        logger.warning("No exact solar crossing for %d, bisecting the approximate Sun", year)
        try:
            jd = bisect_sun_crossing(
                natal_sun,
                start,
                start + self.settings.solar_return_window_days,
                tolerance=self.settings.solar_return_tolerance,
                max_iterations=self.settings.solar_return_max_iterations,
            )
            return SolarReturnInstant(year, jd, Precision.APPROXIMATE)
        except CrossingSearchError as exc:
            logger.warning("Bisection failed, using the birthday at noon: %s", exc)

        jd = date_to_julian_day(year, birth_month, birth_day, DEFAULT_RETURN_HOUR, 0)
        return SolarReturnInstant(year, jd, Precision.DEFAULT)

    async def compute(self,
                      natal: Chart,
                      year: int,
                      latitude: Optional[float] = None,
                      longitude: Optional[float] = None,
                      location_name: Optional[str] = None) -> SolarReturn:
        natal_sun = natal.planet('Sun').longitude
        birth = natal.birth

        instant, next_instant = await asyncio.gather(
            self.find_return_instant(natal_sun, year, birth.month, birth.day),
            self.find_return_instant(natal_sun, year + 1, birth.month, birth.day),
        )
        year_days = next_instant.julian_day - instant.julian_day
        logger.info("Solar year %d measured at %.5f days (%s)", year, year_days, instant.precision.value)

        chart = await self.assembler.compute_chart_at(
            instant.julian_day,
            birth.latitude if latitude is None else latitude,
            birth.longitude if longitude is None else longitude,
            location_name=location_name or birth.location_name,
        )
        house_decans = compute_decans(chart.cusps)

        return SolarReturn(
            year=year,
            natal_sun=natal_sun,
            instant=instant,
            next_instant=next_instant,
            year_days=year_days,
            chart=chart,
            decans=house_decans,
            calendar=build_calendar(chart, house_decans, instant.julian_day, year_days),
            months=build_solar_months(chart, natal_sun, instant.julian_day, year_days),
        )
