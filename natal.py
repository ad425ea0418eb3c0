"""
Natal chart assembly.

ChartAssembler turns civil birth data into an immutable Chart: it resolves
the UTC offset, asks the Swiss Ephemeris for positions and Placidus cusps,
falls back to the approximation engine with equal houses when the
ephemeris is unavailable, then derives houses, the South Node, the Part of
Fortune, intercepted and same-sign houses, and aspects.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import approximation
from aspects import Aspect, find_aspects
from config import Settings, get_settings
from ephemeris import SOURCE_APPROXIMATION, EphemerisContext, RawChart
from exceptions import (
    ChartCalculationError,
    EphemerisUnavailableError,
    InvalidCoordinatesError,
    InvalidInputError,
    InvalidTimezoneError,
)
from timeutils import (
    TURKEY_ALIASES,
    CivilDateTime,
    date_to_julian_day,
    is_in_turkey,
    julian_day_to_date,
    resolve_timezone_offset,
    resolve_turkey_offset,
    validate_civil_datetime,
)
from zodiac import SignPosition, deg_to_sign_position, forward_distance, normalize_degrees

logger = logging.getLogger(__name__)

# Timezone marker for instants already expressed in Universal Time.
UT = 'UT'

BODY_ORDER = (
    'Sun', 'Moon', 'Mercury', 'Venus', 'Mars', 'Jupiter', 'Saturn',
    'Uranus', 'Neptune', 'Pluto', 'North Node', 'South Node', 'Chiron',
    'Part of Fortune',
)

# Houses compared for interceptions. The opposite six mirror them.
INTERCEPTION_HOUSES = 6

TimezoneSpec = Union[str, float, int, None]


@dataclass(frozen=True)
class BirthData:
    """Civil birth moment and place. timezone is a zone name, an hour offset, UT or None."""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    latitude: float
    longitude: float
    timezone: TimezoneSpec = None
    location_name: Optional[str] = None

    @property
    def civil(self) -> CivilDateTime:
        return CivilDateTime(self.year, self.month, self.day, self.hour, self.minute)


@dataclass(frozen=True)
class PlanetPosition:
    name: str
    longitude: float
    position: SignPosition
    house: int
    speed: float = 0.0
    retrograde: bool = False

    @property
    def sign(self) -> str:
        return self.position.sign

    @property
    def formatted(self) -> str:
        return self.position.formatted


@dataclass(frozen=True)
class HouseCusp:
    house: int
    longitude: float
    position: SignPosition
    span: float

    @property
    def sign(self) -> str:
        return self.position.sign


@dataclass(frozen=True)
class Chart:
    birth: BirthData
    julian_day: float
    utc_offset: float
    ascendant: float
    midheaven: float
    planets: Tuple[PlanetPosition, ...]
    houses: Tuple[HouseCusp, ...]
    aspects: Tuple[Aspect, ...]
    is_night_birth: bool
    intercepted_houses: Tuple[int, ...]
    intercepted_signs: Tuple[str, ...]
    same_sign_houses: Tuple[int, ...]
    source: str
    house_system: str

    @property
    def cusps(self) -> Tuple[float, ...]:
        return tuple(h.longitude for h in self.houses)

    @property
    def ascendant_position(self) -> SignPosition:
        return deg_to_sign_position(self.ascendant)

    @property
    def midheaven_position(self) -> SignPosition:
        return deg_to_sign_position(self.midheaven)

    @property
    def is_approximate(self) -> bool:
        return self.source == SOURCE_APPROXIMATION

    def planet(self, name: str) -> PlanetPosition:
        for p in self.planets:
            if p.name == name:
                return p
        raise KeyError(f"Planet '{name}' not found")


def find_house(longitude: float, cusps: Sequence[float]) -> int:
    """House whose wrap-aware [cusp, next cusp) interval holds the longitude."""
    longitude = normalize_degrees(longitude)
    for i in range(12):
        cusp_start = normalize_degrees(cusps[i])
        cusp_end = normalize_degrees(cusps[(i + 1) % 12])

        if cusp_start < cusp_end:
            if cusp_start <= longitude < cusp_end:
                return i + 1
        elif cusp_start > cusp_end:  # House spans 0°
            if longitude >= cusp_start or longitude < cusp_end:
                return i + 1
    return 1


def house_spans(cusps: Sequence[float]) -> list[float]:
    return [forward_distance(cusps[i], cusps[(i + 1) % 12]) for i in range(12)]


def detect_interceptions(cusps: Sequence[float]):
    """
    Compare the starting sign of houses 1-6 with the next house.

    Returns (intercepted houses, intercepted sign names, same-sign houses).
    """
    intercepted, signs, same_sign = [], [], []
    for i in range(INTERCEPTION_HOUSES):
        current = deg_to_sign_position(cusps[i]).sign_index
        following = deg_to_sign_position(cusps[i + 1]).sign_index
        gap = (following - current) % 12
        if gap == 0:
            same_sign.append(i + 1)
        elif gap > 1:
            intercepted.append(i + 1)
            signs.extend(deg_to_sign_position((current + k) * 30).sign for k in range(1, gap))
    return tuple(intercepted), tuple(signs), tuple(same_sign)


def part_of_fortune(ascendant: float, sun: float, moon: float, night: bool) -> float:
    if night:
        return normalize_degrees(ascendant + sun - moon)
    return normalize_degrees(ascendant + moon - sun)


def _parse_timezone(tz: TimezoneSpec) -> TimezoneSpec:
    """Numeric strings such as '+3' become hour offsets."""
    if isinstance(tz, str) and tz != UT:
        try:
            return float(tz)
        except ValueError:
            return tz
    return tz


def resolve_birth_offset(birth: BirthData) -> float:
    """
    UTC offset in hours for a birth.

    UT, or a zero offset, is always taken as given. Otherwise Turkey
    aliases and any birth inside Turkey's bounding box use the historical
    Turkey rule, whatever zone or offset was supplied. No zone at all
    means UT.
    """
    tz = _parse_timezone(birth.timezone)
    numeric = isinstance(tz, (int, float)) and not isinstance(tz, bool)
    if numeric and not -14 <= tz <= 14:
        raise InvalidTimezoneError(f"UTC offset must be between -14 and 14 hours, got {tz}")
    if tz == UT or (numeric and tz == 0):
        return 0.0
    if (isinstance(tz, str) and tz.lower() in TURKEY_ALIASES) or is_in_turkey(birth.latitude, birth.longitude):
        return float(resolve_turkey_offset(birth.year, birth.month, birth.day))
    if numeric:
        return float(tz)
    if tz is None:
        return 0.0
    return resolve_timezone_offset(tz, birth.year, birth.month)


def validate_birth(birth: BirthData) -> None:
    if not -90 <= birth.latitude <= 90:
        raise InvalidCoordinatesError(f"Latitude must be between -90 and 90, got {birth.latitude}")
    if not -180 <= birth.longitude <= 180:
        raise InvalidCoordinatesError(f"Longitude must be between -180 and 180, got {birth.longitude}")
    validate_civil_datetime(birth.year, birth.month, birth.day, birth.hour, birth.minute)


class ChartAssembler:
    """Build charts from the ephemeris, or from the approximation engine when it is unavailable."""

    def __init__(self, ephemeris: EphemerisContext, settings: Optional[Settings] = None):
        self.ephemeris = ephemeris
        self.settings = settings or get_settings()

    async def compute_chart(self, birth: BirthData, include_angles: bool = False) -> Chart:
        validate_birth(birth)
        offset = resolve_birth_offset(birth)
        jd = date_to_julian_day(birth.year, birth.month, birth.day, birth.hour - offset, birth.minute)
        return await self._compute(birth, offset, jd, include_angles)

    async def compute_chart_at(self,
                               jd_ut: float,
                               latitude: float,
                               longitude: float,
                               include_angles: bool = False,
                               location_name: Optional[str] = None) -> Chart:
        """Chart for an instant already in UT. The instant is never re-localised."""
        civil = julian_day_to_date(jd_ut)
        birth = BirthData(civil.year, civil.month, civil.day, civil.hour, civil.minute,
                          latitude, longitude, UT, location_name)
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise InvalidCoordinatesError(f"Coordinates out of range: {latitude}, {longitude}")
        return await self._compute(birth, 0.0, jd_ut, include_angles)

    async def _compute(self, birth: BirthData, offset: float, jd: float, include_angles: bool) -> Chart:
        try:
            raw = await self._raw_chart(jd, birth.latitude, birth.longitude)
            return self._assemble(birth, offset, raw, include_angles)
        except InvalidInputError:
            raise
        except Exception as exc:
            raise ChartCalculationError(f"Chart calculation failed: {exc}") from exc

    async def _raw_chart(self, jd: float, latitude: float, longitude: float) -> RawChart:
        try:
            return await self.ephemeris.compute_chart(
                jd, latitude, longitude,
                house_system=self.settings.house_system,
                node_type=self.settings.node_type,
            )
        except EphemerisUnavailableError as exc:
            logger.warning("Using approximation engine with equal houses: %s", exc)
            return self.approximate_chart(jd, latitude, longitude)

    def approximate_chart(self, jd: float, latitude: float, longitude: float) -> RawChart:
        asc = approximation.ascendant(jd, latitude, longitude)
        return RawChart(
            julian_day=jd,
            ascendant=asc,
            midheaven=approximation.midheaven(jd, longitude),
            cusps=tuple(approximation.equal_house_cusps(asc)),
            bodies=approximation.body_longitudes(jd, self.settings.kepler_iterations),
            source=SOURCE_APPROXIMATION,
            house_system='Equal',
        )

    def _assemble(self, birth: BirthData, offset: float, raw: RawChart, include_angles: bool) -> Chart:
        cusps = raw.cusps
        positions = {}

        def place(name: str, longitude: float, speed: float = 0.0) -> None:
            longitude = normalize_degrees(longitude)
            positions[name] = PlanetPosition(
                name=name,
                longitude=longitude,
                position=deg_to_sign_position(longitude),
                house=find_house(longitude, cusps),
                speed=speed,
                retrograde=speed < 0,
            )

        for name, (longitude, speed) in raw.bodies.items():
            place(name, longitude, speed)

        north = positions['North Node']
        place('South Node', north.longitude + 180, north.speed)

        sun, moon = positions['Sun'], positions['Moon']
        night = 1 <= sun.house <= 6
        place('Part of Fortune', part_of_fortune(raw.ascendant, sun.longitude, moon.longitude, night))

        planets = tuple(positions[name] for name in BODY_ORDER if name in positions)

        spans = house_spans(cusps)
        houses = tuple(
            HouseCusp(house=i + 1,
                      longitude=normalize_degrees(cusps[i]),
                      position=deg_to_sign_position(cusps[i]),
                      span=spans[i])
            for i in range(12)
        )
        intercepted, intercepted_signs, same_sign = detect_interceptions(cusps)

        points = {p.name: p.longitude for p in planets}
        if include_angles:
            points['Ascendant'] = normalize_degrees(raw.ascendant)
            points['MC'] = normalize_degrees(raw.midheaven)

        return Chart(
            birth=birth,
            julian_day=raw.julian_day,
            utc_offset=offset,
            ascendant=normalize_degrees(raw.ascendant),
            midheaven=normalize_degrees(raw.midheaven),
            planets=planets,
            houses=houses,
            aspects=tuple(find_aspects(points)),
            is_night_birth=night,
            intercepted_houses=intercepted,
            intercepted_signs=intercepted_signs,
            same_sign_houses=same_sign,
            source=raw.source,
            house_system=raw.house_system,
        )


def summarize_chart(chart: Chart) -> str:
    """Plain-text chart description."""
    lines = []
    lines.append("=" * 60)
    lines.append("NATAL CHART")
    lines.append("=" * 60)

    birth = chart.birth
    lines.append(f"Birth:          {birth.civil} (UTC{chart.utc_offset:+g})")
    lines.append(f"Location:       {abs(birth.latitude):.4f}°{'N' if birth.latitude >= 0 else 'S'}, "
                 f"{abs(birth.longitude):.4f}°{'E' if birth.longitude >= 0 else 'W'}"
                 + (f" ({birth.location_name})" if birth.location_name else ""))
    lines.append(f"House System:   {chart.house_system} ({chart.source})")
    lines.append(f"Ascendant:      {chart.ascendant_position.formatted}")
    lines.append(f"Midheaven:      {chart.midheaven_position.formatted}")
    lines.append(f"Birth Type:     {'night' if chart.is_night_birth else 'day'}")
    lines.append("")

    lines.append("PLANETARY POSITIONS")
    lines.append("-" * 60)
    for p in chart.planets:
        motion = "R" if p.retrograde else ""
        lines.append(f"{p.name:<16} {p.formatted:<18} House {p.house:<4} {motion}")

    lines.append("")
    lines.append("HOUSES")
    lines.append("-" * 60)
    for h in chart.houses:
        lines.append(f"House {h.house:<10} {h.position.formatted:<18} span {h.span:.2f}°")
    if chart.intercepted_houses:
        lines.append(f"Intercepted:    houses {', '.join(map(str, chart.intercepted_houses))} "
                     f"({', '.join(chart.intercepted_signs)})")
    if chart.same_sign_houses:
        lines.append(f"Same sign:      houses {', '.join(map(str, chart.same_sign_houses))}")

    lines.append("")
    lines.append("ASPECTS")
    lines.append("-" * 60)
    for a in chart.aspects:
        lines.append(f"{a.planet1:<16} {a.symbol} {a.planet2:<16} orb {a.orb:.1f}°{' exact' if a.exact else ''}")

    return "\n".join(lines)
