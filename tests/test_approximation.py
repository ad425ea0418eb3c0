import pytest

import approximation
from timeutils import J2000, date_to_julian_day


def _wrapped(a, b):
    return abs((a - b + 180) % 360 - 180)


def test_sun_at_j2000():
    assert approximation.sun_longitude(J2000) == pytest.approx(280.37, abs=0.05)


def test_sun_near_zero_at_march_equinox_2000():
    # 2000-03-20 07:35 UT
    jd = date_to_julian_day(2000, 3, 20, 7, 35)
    assert _wrapped(approximation.sun_longitude(jd), 0.0) < 0.1


def test_moon_at_j2000():
    assert approximation.moon_longitude(J2000) == pytest.approx(223.32, abs=0.1)


def test_mean_node_at_j2000():
    assert approximation.mean_node_longitude(J2000) == pytest.approx(125.0445479)


def test_eccentric_anomaly_circular_orbit():
    assert approximation.eccentric_anomaly(123.4, 0.0) == pytest.approx(123.4)


def test_eccentric_anomaly_uses_fixed_iterations():
    one = approximation.eccentric_anomaly(40.0, 0.2, iterations=1)
    three = approximation.eccentric_anomaly(40.0, 0.2, iterations=3)
    assert one != three


def test_unknown_planet():
    with pytest.raises(KeyError):
        approximation.planet_longitude(J2000, 'Vulcan')


@pytest.mark.parametrize("year", [1900, 1950, 1990, 2024, 2100])
def test_every_body_normalised(year):
    jd = date_to_julian_day(year, 6, 15, 12, 0)
    for name, (longitude, _) in approximation.body_longitudes(jd).items():
        assert 0 <= longitude < 360, name


def test_speeds_have_expected_sign_and_size():
    bodies = approximation.body_longitudes(J2000)
    assert 0.9 < bodies['Sun'][1] < 1.1
    assert 11 < bodies['Moon'][1] < 16
    assert bodies['North Node'][1] < 0


def test_ascendant_at_zero_sidereal_time_on_equator():
    gmst = approximation.local_sidereal_time(J2000, 0.0)
    longitude = -gmst if gmst <= 180 else 360 - gmst
    assert approximation.ascendant(J2000, 0.0, longitude) == pytest.approx(90.0, abs=1e-6)
    assert _wrapped(approximation.midheaven(J2000, longitude), 0.0) < 1e-6


def test_equal_house_cusps():
    cusps = approximation.equal_house_cusps(350.0)
    assert len(cusps) == 12
    assert cusps[0] == 350.0
    assert cusps[1] == 20.0
    assert cusps[11] == 320.0
