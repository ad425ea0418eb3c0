"""Table-driven aspect detection."""

from dataclasses import dataclass
from typing import Dict, List

from zodiac import angular_distance


@dataclass(frozen=True)
class AspectDefinition:
    """An aspect type and the largest orb it accepts."""
    angle: float
    name: str
    symbol: str
    max_orb: float


@dataclass(frozen=True)
class Aspect:
    planet1: str
    planet2: str
    aspect: str
    symbol: str
    angle: float
    orb: float
    exactness: float
    exact: bool


# Order matters: a pair reports the first type whose orb fits.
ASPECT_TYPES = (
    AspectDefinition(0, 'Conjunction', '☌', 8),
    AspectDefinition(180, 'Opposition', '☍', 8),
    AspectDefinition(120, 'Trine', '△', 8),
    AspectDefinition(90, 'Square', '□', 7),
    AspectDefinition(60, 'Sextile', '⚹', 6),
    AspectDefinition(150, 'Quincunx', '⚻', 3),
)

EXACT_ORB = 1.0


def match_aspect(pos1: float, pos2: float):
    """Return (definition, orb) for the first matching type, or None."""
    separation = angular_distance(pos1, pos2)
    for definition in ASPECT_TYPES:
        orb = abs(separation - definition.angle)
        if orb <= definition.max_orb:
            return definition, orb
    return None


def find_aspects(longitudes: Dict[str, float]) -> List[Aspect]:
    """
    Aspects between every unordered pair of points, at most one per pair.

    Pairs are visited in the mapping's insertion order.
    """
    names = list(longitudes)
    aspects = []
    for i, name1 in enumerate(names):
        for name2 in names[i + 1:]:
            found = match_aspect(longitudes[name1], longitudes[name2])
            if found is None:
                continue
            definition, orb = found
            aspects.append(Aspect(
                planet1=name1,
                planet2=name2,
                aspect=definition.name,
                symbol=definition.symbol,
                angle=definition.angle,
                orb=round(orb, 1),
                exactness=round(1 - orb / definition.max_orb, 4),
                exact=orb < EXACT_ORB,
            ))
    return aspects
