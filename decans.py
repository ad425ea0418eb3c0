"""
House decans.

Each house span is cut into three equal decans measured from the cusp.
Ruling signs come from the longitude band of each decan's absolute start,
so decan boundaries need not meet the 10° zodiac boundaries.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from exceptions import InvalidInputError
from zodiac import (
    DecanRef,
    SignPosition,
    deg_to_sign_position,
    forward_distance,
    normalize_degrees,
    sign_and_decan_at_longitude,
)

MINUTES_PER_DEGREE = 60
SIGN_IN_MINUTES = 30 * MINUTES_PER_DEGREE


@dataclass(frozen=True)
class Decan:
    index: int
    start_offset: float  # arc-minutes from the house cusp
    span: float  # arc-minutes
    start_longitude: float
    position: SignPosition
    ref: DecanRef

    @property
    def position_sign(self) -> str:
        return self.ref.sign

    @property
    def ruling_sign(self) -> str:
        return self.ref.ruling_sign

    @property
    def ruling_planet(self) -> str:
        return self.ref.ruling_planet


@dataclass(frozen=True)
class HouseDecans:
    house: int
    cusp: float
    position: SignPosition
    span: float  # arc-minutes
    decans: Tuple[Decan, Decan, Decan]

    @property
    def sign(self) -> str:
        return self.position.sign

    @property
    def span_degrees(self) -> float:
        return self.span / MINUTES_PER_DEGREE

    def decan_at_offset(self, offset: float) -> Decan:
        """Decan holding an arc-minute offset from the cusp."""
        for decan in reversed(self.decans):
            if offset >= decan.start_offset:
                return decan
        return self.decans[0]


@dataclass(frozen=True)
class DecanPlacement:
    planet: str
    house: int
    decan: int
    offset: float  # arc-minutes from the house cusp


def span_minutes(cusps: Sequence[float]) -> list[float]:
    return [forward_distance(cusps[i], cusps[(i + 1) % 12]) * MINUTES_PER_DEGREE for i in range(12)]


def split_house(house: int, cusp: float, span: float) -> HouseDecans:
    size = span / 3
    decans = []
    for k in range(3):
        start = k * size
        # last decan closes at the span so the three sum to it exactly
        width = span - 2 * size if k == 2 else size
        start_longitude = normalize_degrees(cusp + start / MINUTES_PER_DEGREE)
        decans.append(Decan(
            index=k + 1,
            start_offset=start,
            span=width,
            start_longitude=start_longitude,
            position=deg_to_sign_position(start_longitude),
            ref=sign_and_decan_at_longitude(start_longitude),
        ))
    cusp = normalize_degrees(cusp)
    return HouseDecans(house, cusp, deg_to_sign_position(cusp), span, tuple(decans))


def compute_decans(cusps: Sequence[float], spans: Optional[Sequence[float]] = None) -> Tuple[HouseDecans, ...]:
    """
    Decans for all twelve houses.

    spans, in arc-minutes, override the wrap-aware cusp distances.
    """
    if len(cusps) != 12:
        raise InvalidInputError(f"Expected 12 house cusps, got {len(cusps)}")
    if spans is None:
        spans = span_minutes(cusps)
    return tuple(split_house(i + 1, cusps[i], spans[i]) for i in range(12))


def manual_base_signs(asc_sign: int, same_flags: Sequence[bool], add30_flags: Sequence[bool]) -> list[int]:
    """
    Starting sign of each house from hand-entered flags.

    A house flagged "same" keeps the next house in its sign; otherwise the
    next house moves one sign on, or two when the house is flagged +30°.
    """
    signs = [asc_sign % 12]
    for i in range(1, 12):
        if same_flags[i - 1]:
            signs.append(signs[i - 1])
        else:
            signs.append((signs[i - 1] + 1 + (1 if add30_flags[i - 1] else 0)) % 12)
    return signs


def manual_span(current: float, following: float, same: bool, add30: bool) -> float:
    """Arc-minute span between two in-sign cusp positions."""
    if same:
        return following - current if following >= current else SIGN_IN_MINUTES - current + following
    return (SIGN_IN_MINUTES - current) + following + (SIGN_IN_MINUTES if add30 else 0)


def decans_from_manual_entry(asc_sign: int,
                             cusp_positions: Sequence[Tuple[int, int]],
                             same_flags: Sequence[bool],
                             add30_flags: Sequence[bool]) -> Tuple[HouseDecans, ...]:
    """Decans from cusps typed in as (degree, minute) within their signs."""
    if len(cusp_positions) != 12 or len(same_flags) != 12 or len(add30_flags) != 12:
        raise InvalidInputError("Manual entry needs 12 cusps, 12 same-sign flags and 12 +30° flags")
    for degree, minute in cusp_positions:
        if not 0 <= degree < 30 or not 0 <= minute < 60:
            raise InvalidInputError(f"Cusp position {degree}°{minute}' is outside a sign")

    minutes = [degree * MINUTES_PER_DEGREE + minute for degree, minute in cusp_positions]
    signs = manual_base_signs(asc_sign, same_flags, add30_flags)
    cusps = [signs[i] * 30 + minutes[i] / MINUTES_PER_DEGREE for i in range(12)]
    spans = [manual_span(minutes[i], minutes[(i + 1) % 12], same_flags[i], add30_flags[i]) for i in range(12)]
    return compute_decans(cusps, spans)


def place_planets(house_decans: Sequence[HouseDecans], planets: Iterable) -> list[DecanPlacement]:
    """Decan of each planet inside the house it occupies."""
    placements = []
    for planet in planets:
        house = house_decans[planet.house - 1]
        offset = forward_distance(house.cusp, planet.longitude) * MINUTES_PER_DEGREE
        decan = house.decan_at_offset(offset)
        placements.append(DecanPlacement(planet.name, house.house, decan.index, offset))
    return placements
