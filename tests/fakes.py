"""Test doubles for the ephemeris layer."""

from exceptions import EphemerisUnavailableError


def failing_loader(path):
    raise ImportError("swisseph binary not available")


class FakeSwe:
    """Stand-in for the swisseph module returning fixed positions."""

    SUN, MOON, MERCURY, VENUS, MARS = 0, 1, 2, 3, 4
    JUPITER, SATURN, URANUS, NEPTUNE, PLUTO = 5, 6, 7, 8, 9
    MEAN_NODE, TRUE_NODE, CHIRON = 10, 11, 15
    FLG_SWIEPH, FLG_MOSEPH, FLG_SPEED = 2, 4, 256

    def __init__(self, longitudes=None, cusps=None, ascendant=0.0, midheaven=270.0,
                 chiron_fails=False, crossing=None, failing_house_systems=()):
        self.longitudes = {
            self.SUN: 75.0, self.MOON: 100.0, self.MERCURY: 60.0, self.VENUS: 50.0,
            self.MARS: 140.0, self.JUPITER: 210.0, self.SATURN: 290.0, self.URANUS: 305.0,
            self.NEPTUNE: 312.0, self.PLUTO: 255.0, self.MEAN_NODE: 20.0, self.TRUE_NODE: 21.0,
            self.CHIRON: 130.0,
        }
        if longitudes:
            self.longitudes.update(longitudes)
        self.cusps = cusps or [i * 30.0 for i in range(12)]
        self.ascendant = ascendant
        self.midheaven = midheaven
        self.chiron_fails = chiron_fails
        self.crossing = crossing
        self.failing_house_systems = failing_house_systems
        self.calls = []
        self.house_calls = []

    def calc_ut(self, jd, body, flags):
        self.calls.append((jd, body, flags))
        if body == self.CHIRON and self.chiron_fails:
            raise RuntimeError("seas_18.se1 not found")
        speed = -0.05 if body == self.TRUE_NODE else 1.0
        return (self.longitudes[body], 0.0, 1.0, speed, 0.0, 0.0), flags

    def houses_ex(self, jd, lat, lng, hsys):
        self.house_calls.append(hsys)
        if hsys in self.failing_house_systems:
            raise RuntimeError("house cusps undefined at this latitude")
        return tuple(self.cusps), (self.ascendant, self.midheaven, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    def solcross_ut(self, x2cross, jd, flags):
        if self.crossing is None:
            raise RuntimeError("crossing search failed")
        return self.crossing


class CrossingOnlyEphemeris:
    """Finds crossings a fixed number of days after the search start but cannot build charts."""

    def __init__(self, days_after_start=5.25):
        self.days_after_start = days_after_start

    async def find_solar_crossing(self, target_longitude, start_jd):
        return start_jd + self.days_after_start

    async def compute_chart(self, *args, **kwargs):
        raise EphemerisUnavailableError("offline")
