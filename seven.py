"""
Seven-year age cycles.

Every house span is divided into seven equal one-year segments starting at
the cusp, so house n covers ages 7(n-1) to 7n. Each segment's start is
read with the same decan rule the house decans use.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from decans import MINUTES_PER_DEGREE, span_minutes
from exceptions import InvalidInputError
from zodiac import (
    DecanRef,
    SignPosition,
    TraditionalDecan,
    deg_to_sign_position,
    forward_distance,
    normalize_degrees,
    sign_and_decan_at_longitude,
    traditional_decan_at_longitude,
)

SEGMENTS_PER_HOUSE = 7
FULL_CYCLE_YEARS = 12 * SEGMENTS_PER_HOUSE


@dataclass(frozen=True)
class AgeSegment:
    year: int  # 1..7 within the house
    start_age: int
    end_age: int
    start_offset: float  # arc-minutes from the house cusp
    span: float  # arc-minutes
    start_longitude: float
    position: SignPosition
    decan: DecanRef
    house_decan: int
    traditional: TraditionalDecan
    end_sign: str
    calendar_year: Optional[int] = None

    @property
    def house(self) -> int:
        return self.start_age // SEGMENTS_PER_HOUSE + 1

    @property
    def sign(self) -> str:
        return self.position.sign


@dataclass(frozen=True)
class SegmentPlacement:
    """A natal planet inside the age segment that covers its arc from the cusp."""
    planet: str
    longitude: float
    position: SignPosition
    house: int
    year: int
    start_age: int
    offset: float  # arc-minutes from the house cusp
    traditional: TraditionalDecan


@dataclass(frozen=True)
class HouseAgeCycle:
    house: int
    cusp: float
    position: SignPosition
    span: float  # arc-minutes
    segments: Tuple[AgeSegment, ...]

    @property
    def sign(self) -> str:
        return self.position.sign


def split_house_years(house_index: int, cusp: float, span: float, birth_year: Optional[int] = None) -> HouseAgeCycle:
    step = span / SEGMENTS_PER_HOUSE
    segments = []
    for j in range(SEGMENTS_PER_HOUSE):
        start_offset = j * step
        width = span - (SEGMENTS_PER_HOUSE - 1) * step if j == SEGMENTS_PER_HOUSE - 1 else step
        start_longitude = normalize_degrees(cusp + start_offset / MINUTES_PER_DEGREE)
        end_longitude = start_longitude + width / MINUTES_PER_DEGREE
        start_age = house_index * SEGMENTS_PER_HOUSE + j

        segments.append(AgeSegment(
            year=j + 1,
            start_age=start_age,
            end_age=start_age + 1,
            start_offset=start_offset,
            span=width,
            start_longitude=start_longitude,
            position=deg_to_sign_position(start_longitude),
            decan=sign_and_decan_at_longitude(start_longitude),
            house_decan=(j * 3) // SEGMENTS_PER_HOUSE + 1,
            traditional=traditional_decan_at_longitude(start_longitude),
            end_sign=deg_to_sign_position(end_longitude).sign,
            calendar_year=birth_year + start_age if birth_year is not None else None,
        ))
    cusp = normalize_degrees(cusp)
    return HouseAgeCycle(house_index + 1, cusp, deg_to_sign_position(cusp), span, tuple(segments))


def compute_age_cycles(cusps: Sequence[float],
                       birth_year: Optional[int] = None,
                       spans: Optional[Sequence[float]] = None) -> Tuple[HouseAgeCycle, ...]:
    if len(cusps) != 12:
        raise InvalidInputError(f"Expected 12 house cusps, got {len(cusps)}")
    if spans is None:
        spans = span_minutes(cusps)
    return tuple(split_house_years(i, cusps[i], spans[i], birth_year) for i in range(12))


def segment_for_age(cycles: Sequence[HouseAgeCycle], age: int) -> AgeSegment:
    """Segment covering an age. The cycle repeats every 84 years."""
    if age < 0:
        raise InvalidInputError(f"Age must not be negative, got {age}")
    age %= FULL_CYCLE_YEARS
    return cycles[age // SEGMENTS_PER_HOUSE].segments[age % SEGMENTS_PER_HOUSE]


def place_planets_in_segments(cycles: Sequence[HouseAgeCycle], planets: Iterable) -> list[SegmentPlacement]:
    """Age segment of each planet inside the house it occupies."""
    placements = []
    for planet in planets:
        cycle = cycles[planet.house - 1]
        offset = forward_distance(cycle.cusp, planet.longitude) * MINUTES_PER_DEGREE
        segment = cycle.segments[-1]
        for candidate in cycle.segments:
            if candidate.start_offset <= offset < candidate.start_offset + candidate.span:
                segment = candidate
                break
        placements.append(SegmentPlacement(
            planet=planet.name,
            longitude=planet.longitude,
            position=planet.position,
            house=cycle.house,
            year=segment.year,
            start_age=segment.start_age,
            offset=offset,
            traditional=traditional_decan_at_longitude(planet.longitude),
        ))
    return placements
