"""
Analytic position formulas used when the Swiss Ephemeris is unavailable.

Low-order Meeus-style series referenced to J2000.0. Accuracy is modest:
the Sun and Moon land within a few arc-minutes, planets within a degree or
two (Mercury and Venus are returned heliocentric), Chiron is a linear
drift. Every function is total over finite Julian Days and returns a
longitude in [0, 360).
"""

import math
from typing import Callable, Dict, Sequence, Tuple

from timeutils import J2000
from zodiac import normalize_degrees

KEPLER_ITERATIONS = 3
# Heuristic scale on the outer-planet geocentric term.
PARALLAX_FACTOR = 0.5
SPEED_STEP_DAYS = 0.5

# Multiples of (D, M, M', F) and the sine amplitude in degrees.
MOON_LONGITUDE_TERMS: Tuple[Tuple[float, int, int, int, int], ...] = (
    (6.288774, 0, 0, 1, 0),
    (1.274027, 2, 0, -1, 0),
    (0.658314, 2, 0, 0, 0),
    (0.213618, 0, 0, 2, 0),
    (-0.185116, 0, 1, 0, 0),
    (-0.114332, 0, 0, 0, 2),
    (0.058793, 2, 0, -2, 0),
    (0.057066, 2, -1, -1, 0),
    (0.053322, 2, 0, 1, 0),
    (0.045758, 2, -1, 0, 0),
    (-0.040923, 0, 1, -1, 0),
    (-0.034720, 1, 0, 0, 0),
    (-0.030383, 0, 1, 1, 0),
    (0.015327, 2, 0, 0, -2),
    (-0.012528, 0, 0, 1, 2),
    (0.010980, 0, 0, 1, -2),
)

# Polynomial coefficients in T for mean longitude L, semi-major axis a,
# eccentricity e, inclination i, longitude of perihelion and ascending node.
ORBITAL_ELEMENTS: Dict[str, Dict[str, Sequence[float]]] = {
    'Mercury': {
        'L': (252.2503235, 149474.0722491, 0.00030350),
        'a': (0.38709893,),
        'e': (0.20563069, 0.00002527),
        'i': (7.00498625, -0.00594749),
        'perihelion': (77.45611904, 0.15940013),
        'node': (48.33089304, -0.12214182),
    },
    'Venus': {
        'L': (181.9798012, 58519.2130302, 0.00031014),
        'a': (0.72333199,),
        'e': (0.00677323, -0.00004938),
        'i': (3.39466189, -0.00078890),
        'perihelion': (131.56370300, 0.00576464),
        'node': (76.67992019, -0.27769418),
    },
    'Mars': {
        'L': (355.4332944, 19141.6964471, 0.00031052),
        'a': (1.52366231,),
        'e': (0.09341233, 0.00011902),
        'i': (1.84972648, -0.00813131),
        'perihelion': (336.06023395, 0.44441088),
        'node': (49.55953891, -0.29257343),
    },
    'Jupiter': {
        'L': (34.3514839, 3036.3027748, 0.00022330),
        'a': (5.20336301,),
        'e': (0.04839266, -0.00012880),
        'i': (1.30326698, -0.00183714),
        'perihelion': (14.33120687, 0.21252668),
        'node': (100.46444064, 0.13024619),
    },
    'Saturn': {
        'L': (50.0774443, 1223.5110686, 0.00051908),
        'a': (9.53707032,),
        'e': (0.05415060, -0.00036762),
        'i': (2.48887878, 0.00193609),
        'perihelion': (93.05678728, 0.56654502),
        'node': (113.66552252, -0.25015002),
    },
    'Uranus': {
        'L': (314.0550112, 429.8663296, -0.00023436),
        'a': (19.19126393,),
        'e': (0.04716771, -0.00019150),
        'i': (0.76986139, -0.00244797),
        'perihelion': (173.00529106, 0.09266985),
        'node': (74.00594744, 0.04240589),
    },
    'Neptune': {
        'L': (304.3486535, 219.8833092, 0.00030882),
        'a': (30.06896348,),
        'e': (0.00858587, 0.00002514),
        'i': (1.76917303, -0.00493280),
        'perihelion': (48.12027554, 0.03175680),
        'node': (131.78405702, -0.00606302),
    },
    'Pluto': {
        'L': (238.9290355, 146.3642277),
        'a': (39.48168677,),
        'e': (0.24880766,),
        'i': (17.14175,),
        'perihelion': (224.06676,),
        'node': (110.30394,),
    },
}

PLANETS = tuple(ORBITAL_ELEMENTS)


def centuries_since_j2000(jd: float) -> float:
    return (jd - J2000) / 36525.0


def _poly(coefficients: Sequence[float], t: float) -> float:
    return sum(c * t ** n for n, c in enumerate(coefficients))


def _sin(deg: float) -> float:
    return math.sin(math.radians(deg))


def _cos(deg: float) -> float:
    return math.cos(math.radians(deg))


def sun_longitude(jd: float) -> float:
    """Apparent solar longitude: mean longitude, equation of centre, nutation and aberration."""
    t = centuries_since_j2000(jd)
    l0 = 280.4664567 + 36000.76983 * t + 0.0003032 * t * t
    m = 357.5291092 + 35999.0502909 * t - 0.0001536 * t * t
    c = ((1.9146 - 0.004817 * t - 0.000014 * t * t) * _sin(m)
         + (0.019993 - 0.000101 * t) * _sin(2 * m)
         + 0.00029 * _sin(3 * m))
    longitude = normalize_degrees(l0 + c)
    omega = 125.04 - 1934.136 * t
    return normalize_degrees(longitude - 0.00569 - 0.00478 * _sin(omega))


def moon_longitude(jd: float) -> float:
    t = centuries_since_j2000(jd)
    lp = (218.3164477 + 481267.88123421 * t - 0.0015786 * t ** 2
          + t ** 3 / 538841 - t ** 4 / 65194000)
    d = 297.8501921 + 445267.1114034 * t - 0.0018819 * t ** 2 + t ** 3 / 545868
    m = 357.5291092 + 35999.0502909 * t - 0.0001536 * t ** 2
    mp = 134.9633964 + 477198.8675055 * t + 0.0087414 * t ** 2 + t ** 3 / 69699
    f = 93.2720950 + 483202.0175233 * t - 0.0036539 * t ** 2

    longitude = lp
    for amplitude, kd, km, kmp, kf in MOON_LONGITUDE_TERMS:
        longitude += amplitude * _sin(kd * d + km * m + kmp * mp + kf * f)
    return normalize_degrees(longitude)


def eccentric_anomaly(mean_anomaly: float, eccentricity: float, iterations: int = KEPLER_ITERATIONS) -> float:
    """Fixed-count iteration of Kepler's equation in degrees, no convergence test."""
    e_deg = eccentricity * 180.0 / math.pi
    anomaly = mean_anomaly
    for _ in range(iterations):
        anomaly = mean_anomaly + e_deg * _sin(anomaly)
    return anomaly


def planet_longitude(jd: float, planet: str, iterations: int = KEPLER_ITERATIONS) -> float:
    """
    Longitude of a major planet from its Keplerian elements.

    Planets beyond 1 AU get a scaled elongation term standing in for the
    heliocentric to geocentric shift.
    """
    if planet not in ORBITAL_ELEMENTS:
        raise KeyError(f"No orbital elements for {planet}")
    elements = ORBITAL_ELEMENTS[planet]
    t = centuries_since_j2000(jd)

    mean_longitude = _poly(elements['L'], t)
    a = _poly(elements['a'], t)
    e = _poly(elements['e'], t)
    perihelion = _poly(elements['perihelion'], t)

    mean_anomaly = (mean_longitude - perihelion) % 360
    ecc = eccentric_anomaly(mean_anomaly, e, iterations)

    xv = a * (_cos(ecc) - e)
    yv = a * math.sqrt(1 - e * e) * _sin(ecc)
    true_anomaly = math.degrees(math.atan2(yv, xv))
    longitude = normalize_degrees(true_anomaly + perihelion)

    if a > 1:
        elongation = longitude - sun_longitude(jd)
        parallax = (1 / a) * _sin(elongation) * (180 / math.pi)
        longitude += PARALLAX_FACTOR * parallax
    return normalize_degrees(longitude)


def chiron_longitude(jd: float) -> float:
    t = centuries_since_j2000(jd)
    return normalize_degrees(209.0 + 14.728 * t * 365.25)


def mean_node_longitude(jd: float) -> float:
    t = centuries_since_j2000(jd)
    return normalize_degrees(125.0445479 - 1934.1362891 * t)


def obliquity(jd: float) -> float:
    return 23.439291 - 0.0130042 * centuries_since_j2000(jd)


def local_sidereal_time(jd: float, longitude: float) -> float:
    """Local sidereal time in degrees for an east-positive geographic longitude."""
    t = centuries_since_j2000(jd)
    gmst = normalize_degrees(280.46061837 + 360.98564736629 * (jd - J2000) + 0.000387933 * t * t)
    return normalize_degrees(gmst + longitude)


def ascendant(jd: float, latitude: float, longitude: float) -> float:
    lst = local_sidereal_time(jd, longitude)
    eps = obliquity(jd)
    asc = math.degrees(math.atan2(
        _cos(lst),
        -(_sin(lst) * _cos(eps) + math.tan(math.radians(latitude)) * _sin(eps)),
    ))
    return normalize_degrees(asc)


def midheaven(jd: float, longitude: float) -> float:
    lst = local_sidereal_time(jd, longitude)
    eps = obliquity(jd)
    return normalize_degrees(math.degrees(math.atan2(_sin(lst), _cos(lst) * _cos(eps))))


def equal_house_cusps(asc: float) -> list[float]:
    """Twelve cusps at 30° steps from the Ascendant."""
    return [normalize_degrees(asc + i * 30) for i in range(12)]


def approximate_speed(longitude_fn: Callable[[float], float], jd: float) -> float:
    """Daily motion by central difference, wrap-aware."""
    before = longitude_fn(jd - SPEED_STEP_DAYS)
    after = longitude_fn(jd + SPEED_STEP_DAYS)
    delta = (after - before + 180) % 360 - 180
    return delta / (2 * SPEED_STEP_DAYS)


def body_longitudes(jd: float, iterations: int = KEPLER_ITERATIONS) -> Dict[str, Tuple[float, float]]:
    """(longitude, speed) for every body the approximation engine covers."""
    functions: Dict[str, Callable[[float], float]] = {
        'Sun': sun_longitude,
        'Moon': moon_longitude,
    }
    for planet in PLANETS:
        functions[planet] = lambda d, p=planet: planet_longitude(d, p, iterations)
    functions['North Node'] = mean_node_longitude
    functions['Chiron'] = chiron_longitude

    return {name: (fn(jd), approximate_speed(fn, jd)) for name, fn in functions.items()}
