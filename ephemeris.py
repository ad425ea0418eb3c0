"""
Swiss Ephemeris adapter.

The adapter lives in an EphemerisContext so that callers share one
initialisation. Loading runs once per context: the first caller starts it
and every concurrent caller awaits the same task. A failed load or a
throwing calculation surfaces as EphemerisUnavailableError, which the
chart assembler treats as a signal to use the approximation engine.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import swisseph as swe

from approximation import approximate_speed, chiron_longitude
from exceptions import EphemerisUnavailableError, InvalidInputError
from timeutils import J2000

logger = logging.getLogger(__name__)

HOUSE_SYSTEMS = {
    'Placidus': b'P',
    'Koch': b'K',
    'Equal': b'A',
    'Whole Sign': b'W',
    'Campanus': b'C',
    'Regiomontanus': b'R',
    'Porphyry': b'O',
}

# Body name to swisseph constant name.
SWISS_BODIES = {
    'Sun': 'SUN',
    'Moon': 'MOON',
    'Mercury': 'MERCURY',
    'Venus': 'VENUS',
    'Mars': 'MARS',
    'Jupiter': 'JUPITER',
    'Saturn': 'SATURN',
    'Uranus': 'URANUS',
    'Neptune': 'NEPTUNE',
    'Pluto': 'PLUTO',
}

SOURCE_SWISS = 'swiss_ephemeris'
SOURCE_APPROXIMATION = 'approximation'


@dataclass(frozen=True)
class RawChart:
    """Positions and cusps before houses and derived points are assigned."""
    julian_day: float
    ascendant: float
    midheaven: float
    cusps: Tuple[float, ...]
    bodies: Dict[str, Tuple[float, float]] = field(default_factory=dict)  # name -> (longitude, speed)
    source: str = SOURCE_SWISS
    house_system: str = 'Placidus'


def load_swisseph(ephemeris_path: Optional[str]) -> Tuple[Any, bool]:
    """
    Prepare the swisseph module and probe it with one calculation.

    Returns the module and whether the Moshier backend is in use. Swiss
    files are used only when the directory contains .se1 files.
    """
    use_moshier = True
    if ephemeris_path and os.path.isdir(ephemeris_path):
        if any(f.endswith('.se1') for f in os.listdir(ephemeris_path)):
            swe.set_ephe_path(ephemeris_path)
            use_moshier = False

    flags = swe.FLG_MOSEPH if use_moshier else swe.FLG_SWIEPH
    swe.calc_ut(J2000, swe.SUN, flags)
    return swe, use_moshier


class EphemerisContext:
    """Initialisation state and calculation entry points for the Swiss Ephemeris."""

    def __init__(self,
                 ephemeris_path: Optional[str] = None,
                 enabled: bool = True,
                 loader: Optional[Callable[[Optional[str]], Tuple[Any, bool]]] = None):
        self.ephemeris_path = ephemeris_path
        self.enabled = enabled
        self._loader = loader or load_swisseph
        self._swe = None
        self._use_moshier = True
        self._available: Optional[bool] = None
        self._init_task: Optional[asyncio.Task] = None

    @property
    def available(self) -> Optional[bool]:
        """None until initialisation has finished."""
        return self._available

    async def initialize(self) -> bool:
        if self._available is not None:
            return self._available
        loop = asyncio.get_running_loop()
        if self._init_task is None or self._init_task.get_loop() is not loop:
            self._init_task = loop.create_task(self._load())
        return await self._init_task

    async def _load(self) -> bool:
        if not self.enabled:
            logger.info("Swiss Ephemeris disabled by configuration")
            self._available = False
            return False
        try:
            module, use_moshier = await asyncio.to_thread(self._loader, self.ephemeris_path)
        except Exception as exc:
            logger.warning("Swiss Ephemeris failed to load, approximation engine will be used: %s", exc)
            self._available = False
            return False

        self._swe = module
        self._use_moshier = use_moshier
        self._available = True
        logger.info("Swiss Ephemeris ready (%s backend)", "Moshier" if use_moshier else "Swiss files")
        return True

    def _flags(self) -> int:
        flags = self._swe.FLG_MOSEPH if self._use_moshier else self._swe.FLG_SWIEPH
        return flags | self._swe.FLG_SPEED

    async def compute_chart(self,
                            jd_ut: float,
                            latitude: float,
                            longitude: float,
                            house_system: str = 'Placidus',
                            node_type: str = 'true') -> RawChart:
        if house_system not in HOUSE_SYSTEMS:
            raise InvalidInputError(f"Unknown house system: {house_system}")
        if not await self.initialize():
            raise EphemerisUnavailableError("Swiss Ephemeris is not available")
        try:
            return self._compute_chart(jd_ut, latitude, longitude, house_system, node_type)
        except Exception as exc:
            raise EphemerisUnavailableError(f"Swiss Ephemeris calculation failed: {exc}") from exc

    def _compute_chart(self, jd: float, latitude: float, longitude: float,
                       house_system: str, node_type: str) -> RawChart:
        module = self._swe
        flags = self._flags()
        bodies: Dict[str, Tuple[float, float]] = {}

        for name, constant in SWISS_BODIES.items():
            result, _ = module.calc_ut(jd, getattr(module, constant), flags)
            bodies[name] = (result[0], result[3])

        node_id = module.TRUE_NODE if node_type == 'true' else module.MEAN_NODE
        result, _ = module.calc_ut(jd, node_id, flags)
        bodies['North Node'] = (result[0], result[3])

        # Chiron needs asteroid files outside the Moshier range
        try:
            result, _ = module.calc_ut(jd, module.CHIRON, flags)
            bodies['Chiron'] = (result[0], result[3])
        except Exception as exc:
            logger.warning("Chiron not available from Swiss Ephemeris (%s), using approximation", exc)
            bodies['Chiron'] = (chiron_longitude(jd), approximate_speed(chiron_longitude, jd))

        try:
            cusps, ascmc = module.houses_ex(jd, latitude, longitude, HOUSE_SYSTEMS[house_system])
        except Exception as exc:
            # Placidus and Koch are undefined near the poles; equal houses always exist
            if house_system == 'Equal':
                raise
            logger.warning("%s houses failed at latitude %.4f (%s), using Equal houses",
                           house_system, latitude, exc)
            house_system = 'Equal'
            cusps, ascmc = module.houses_ex(jd, latitude, longitude, HOUSE_SYSTEMS[house_system])
        return RawChart(
            julian_day=jd,
            ascendant=ascmc[0],
            midheaven=ascmc[1],
            cusps=tuple(cusps[:12]),
            bodies=bodies,
            source=SOURCE_SWISS,
            house_system=house_system,
        )

    async def find_solar_crossing(self, target_longitude: float, start_jd: float) -> Optional[float]:
        """First JD at or after start_jd where the Sun reaches target_longitude, or None."""
        if not await self.initialize():
            return None
        flags = self._swe.FLG_MOSEPH if self._use_moshier else self._swe.FLG_SWIEPH
        try:
            return float(self._swe.solcross_ut(target_longitude, start_jd, flags))
        except Exception as exc:
            logger.warning("Solar crossing search failed from JD %.4f: %s", start_jd, exc)
            return None
