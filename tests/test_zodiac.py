import pytest

from zodiac import (
    DECAN_RULERS,
    TRADITIONAL_RULERS,
    SignPosition,
    deg_to_sign_position,
    normalize_degrees,
    sign_and_decan_at_longitude,
    traditional_decan_at_longitude,
)


def test_sign_position_basic():
    pos = deg_to_sign_position(45.5)
    assert pos == SignPosition(1, 15, 30)
    assert pos.sign == 'Taurus'
    assert pos.formatted == "15°30' Taurus"


def test_minute_carry_wraps_to_aries():
    assert deg_to_sign_position(359.9999) == SignPosition(0, 0, 0)


def test_minute_carry_into_next_sign():
    assert deg_to_sign_position(59.9999) == SignPosition(2, 0, 0)


@pytest.mark.parametrize("longitude", [0.0, 12.345, 89.99, 179.5, 270.01, 333.333, 359.5])
def test_sign_position_reconstructs_longitude(longitude):
    pos = deg_to_sign_position(longitude)
    assert 0 <= pos.sign_index <= 11
    assert 0 <= pos.degree < 30
    assert 0 <= pos.minute < 60
    diff = (pos.longitude - longitude + 180) % 360 - 180
    assert abs(diff) <= 1 / 120 + 1e-9


def test_normalize_degrees_stays_below_360():
    assert normalize_degrees(-1e-17) == 0.0
    assert normalize_degrees(-90) == 270
    assert normalize_degrees(725) == 5


def test_capricorn_decans_follow_earth_cycle():
    assert sign_and_decan_at_longitude(275).ruling_sign == 'Capricorn'
    assert sign_and_decan_at_longitude(285).ruling_sign == 'Taurus'
    assert sign_and_decan_at_longitude(295).ruling_sign == 'Virgo'
    assert sign_and_decan_at_longitude(275).ruling_planet == 'Saturn'


def test_band_comes_from_longitude_within_sign():
    ref = sign_and_decan_at_longitude(18.3)
    assert ref.sign == 'Aries'
    assert ref.band == 1
    assert ref.ruling_sign == 'Leo'
    assert ref.ruling_planet == 'Sun'


def test_ruler_tables_stay_distinct():
    assert DECAN_RULERS[5] == 'Chiron'
    assert TRADITIONAL_RULERS[5] == 'Mercury'
    assert sign_and_decan_at_longitude(155).ruling_planet == 'Chiron'
    assert traditional_decan_at_longitude(155).ruler == 'Mercury'


def test_traditional_decan_with_chaldean_ruler():
    decan = traditional_decan_at_longitude(165)
    assert decan.face == 2
    assert decan.face_sign == 'Capricorn'
    assert decan.ruler == 'Saturn'
    assert decan.chaldean_ruler == 'Venus'
