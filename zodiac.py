"""Zodiac tables and the sign/decan lookups shared by every engine."""

import math
from dataclasses import dataclass

SIGNS = [
    {'name': 'Aries', 'symbol': '♈', 'element': 'Fire', 'modality': 'Cardinal'},
    {'name': 'Taurus', 'symbol': '♉', 'element': 'Earth', 'modality': 'Fixed'},
    {'name': 'Gemini', 'symbol': '♊', 'element': 'Air', 'modality': 'Mutable'},
    {'name': 'Cancer', 'symbol': '♋', 'element': 'Water', 'modality': 'Cardinal'},
    {'name': 'Leo', 'symbol': '♌', 'element': 'Fire', 'modality': 'Fixed'},
    {'name': 'Virgo', 'symbol': '♍', 'element': 'Earth', 'modality': 'Mutable'},
    {'name': 'Libra', 'symbol': '♎', 'element': 'Air', 'modality': 'Cardinal'},
    {'name': 'Scorpio', 'symbol': '♏', 'element': 'Water', 'modality': 'Fixed'},
    {'name': 'Sagittarius', 'symbol': '♐', 'element': 'Fire', 'modality': 'Mutable'},
    {'name': 'Capricorn', 'symbol': '♑', 'element': 'Earth', 'modality': 'Cardinal'},
    {'name': 'Aquarius', 'symbol': '♒', 'element': 'Air', 'modality': 'Fixed'},
    {'name': 'Pisces', 'symbol': '♓', 'element': 'Water', 'modality': 'Mutable'},
]

SIGN_NAMES = [s['name'] for s in SIGNS]

# Signs of one element in zodiac order.
ELEMENT_CYCLES = {
    'Fire': (0, 4, 8),
    'Earth': (1, 5, 9),
    'Air': (2, 6, 10),
    'Water': (3, 7, 11),
}

# Ruler of each house decan, indexed by the decan's ruling sign.
DECAN_RULERS = [
    'Mars', 'Venus', 'Mercury', 'Moon', 'Sun', 'Chiron',
    'Venus', 'Pluto', 'Jupiter', 'Saturn', 'Uranus', 'Neptune',
]

# Rulers for the fixed 10° ("asli") decans. Differs from DECAN_RULERS at Virgo.
TRADITIONAL_RULERS = [
    'Mars', 'Venus', 'Mercury', 'Moon', 'Sun', 'Mercury',
    'Venus', 'Pluto', 'Jupiter', 'Saturn', 'Uranus', 'Neptune',
]

# Chaldean face rulers, three per sign.
CHALDEAN_DECAN_RULERS = [
    ('Mars', 'Sun', 'Venus'),
    ('Mercury', 'Moon', 'Saturn'),
    ('Jupiter', 'Mars', 'Sun'),
    ('Venus', 'Mercury', 'Moon'),
    ('Saturn', 'Jupiter', 'Mars'),
    ('Sun', 'Venus', 'Mercury'),
    ('Moon', 'Saturn', 'Jupiter'),
    ('Mars', 'Sun', 'Venus'),
    ('Mercury', 'Moon', 'Saturn'),
    ('Jupiter', 'Mars', 'Sun'),
    ('Venus', 'Mercury', 'Moon'),
    ('Saturn', 'Jupiter', 'Mars'),
]


@dataclass(frozen=True)
class SignPosition:
    """Longitude split into sign, whole degree and whole arc-minute."""
    sign_index: int
    degree: int
    minute: int

    @property
    def sign(self) -> str:
        return SIGN_NAMES[self.sign_index]

    @property
    def longitude(self) -> float:
        return self.sign_index * 30 + self.degree + self.minute / 60.0

    @property
    def formatted(self) -> str:
        return f"{self.degree}°{self.minute:02d}' {self.sign}"


@dataclass(frozen=True)
class DecanRef:
    """Decan reached by a longitude under the element-cycle rule."""
    sign_index: int
    band: int
    ruling_sign_index: int
    ruling_planet: str

    @property
    def sign(self) -> str:
        return SIGN_NAMES[self.sign_index]

    @property
    def ruling_sign(self) -> str:
        return SIGN_NAMES[self.ruling_sign_index]


@dataclass(frozen=True)
class TraditionalDecan:
    """Fixed 10° decan with its traditional and Chaldean rulers."""
    sign_index: int
    face: int
    face_sign_index: int
    ruler: str
    chaldean_ruler: str

    @property
    def face_sign(self) -> str:
        return SIGN_NAMES[self.face_sign_index]


def normalize_degrees(deg: float) -> float:
    """Normalize degrees to 0-360 range."""
    deg = deg % 360
    # tiny negative inputs round up to exactly 360.0
    return 0.0 if deg >= 360 else deg


def angular_distance(pos1: float, pos2: float) -> float:
    """
    Calculate the shortest angular distance between two positions.
    Always returns a positive value 0-180.
    """
    diff = abs(normalize_degrees(pos1) - normalize_degrees(pos2))
    return min(diff, 360 - diff)


def forward_distance(start: float, end: float) -> float:
    """Degrees travelled from start to end in zodiac order, in [0, 360)."""
    return normalize_degrees(end - start)


def deg_to_sign_position(longitude: float) -> SignPosition:
    """Split a longitude into sign, degree and rounded minute with carry."""
    longitude = normalize_degrees(longitude)
    sign_index = int(longitude // 30)
    within = longitude - sign_index * 30
    degree = int(math.floor(within))
    minute = int(round((within - degree) * 60))

    if minute == 60:
        minute = 0
        degree += 1
    if degree == 30:
        degree = 0
        sign_index += 1
    return SignPosition(sign_index % 12, degree, minute)


def element_of(sign_index: int) -> str:
    return SIGNS[sign_index]['element']


def decan_band(within_sign: float) -> int:
    """Which 10° third of a sign a position falls in."""
    if within_sign < 10:
        return 0
    if within_sign < 20:
        return 1
    return 2


def sign_and_decan_at_longitude(longitude: float) -> DecanRef:
    """
    Ruling sign and planet of the decan at an absolute longitude.

    The band comes from the longitude's place inside its own sign, never
    from a house-relative decan index. Both the decan and the age-cycle
    engines call this.
    """
    longitude = normalize_degrees(longitude)
    sign_index = int(longitude // 30)
    band = decan_band(longitude - sign_index * 30)
    cycle = ELEMENT_CYCLES[element_of(sign_index)]
    ruling = cycle[(cycle.index(sign_index) + band) % 3]
    return DecanRef(sign_index, band, ruling, DECAN_RULERS[ruling])


def traditional_decan_at_longitude(longitude: float) -> TraditionalDecan:
    longitude = normalize_degrees(longitude)
    sign_index = int(longitude // 30)
    band = decan_band(longitude - sign_index * 30)
    cycle = ELEMENT_CYCLES[element_of(sign_index)]
    face_sign = cycle[(cycle.index(sign_index) + band) % 3]
    return TraditionalDecan(
        sign_index=sign_index,
        face=band + 1,
        face_sign_index=face_sign,
        ruler=TRADITIONAL_RULERS[face_sign],
        chaldean_ruler=CHALDEAN_DECAN_RULERS[sign_index][band],
    )
