import pytest

from decans import (
    compute_decans,
    decans_from_manual_entry,
    manual_base_signs,
    manual_span,
    place_planets,
)
from exceptions import InvalidInputError
from natal import PlanetPosition
from zodiac import deg_to_sign_position


def _equal_cusps(start):
    return [(start + 30 * i) % 360 for i in range(12)]


def test_capricorn_house_gives_three_ten_degree_decans():
    house = compute_decans(_equal_cusps(275))[0]
    assert house.sign == 'Capricorn'
    assert house.span == pytest.approx(1800)
    assert [d.span for d in house.decans] == [pytest.approx(600)] * 3
    assert [d.ruling_sign for d in house.decans] == ['Capricorn', 'Taurus', 'Virgo']
    assert [d.ruling_planet for d in house.decans] == ['Saturn', 'Venus', 'Chiron']


def test_decan_bands_follow_longitude_not_index():
    cusps = [5, 45, 80, 110, 150, 185, 200, 230, 260, 290, 320, 340]
    house = compute_decans(cusps)[0]
    assert house.span == pytest.approx(2400)
    assert [round(d.start_longitude, 4) for d in house.decans] == [5.0, 18.3333, 31.6667]
    assert [d.ruling_sign for d in house.decans] == ['Aries', 'Leo', 'Taurus']
    assert [d.ruling_planet for d in house.decans] == ['Mars', 'Sun', 'Venus']


def test_decan_spans_sum_to_house_span():
    cusps = [13.7, 41.2, 77.9, 104.05, 133.3, 166.6, 193.7, 221.2, 257.9, 284.05, 313.3, 346.6]
    houses = compute_decans(cusps)
    assert sum(h.span for h in houses) == pytest.approx(360 * 60)
    for house in houses:
        assert sum(d.span for d in house.decans) == pytest.approx(house.span, abs=1e-9)
        assert house.decans[0].start_offset == 0


def test_wrong_number_of_cusps():
    with pytest.raises(InvalidInputError):
        compute_decans([0, 30, 60])


def test_manual_base_signs():
    no_flags = [False] * 12
    assert manual_base_signs(0, no_flags, no_flags) == list(range(12))
    assert manual_base_signs(0, [True] + [False] * 11, no_flags)[:3] == [0, 0, 1]
    assert manual_base_signs(0, no_flags, [True] + [False] * 11)[:3] == [0, 2, 3]


def test_manual_span():
    assert manual_span(300, 900, same=True, add30=False) == 600
    assert manual_span(900, 300, same=True, add30=False) == 1200
    assert manual_span(300, 300, same=False, add30=False) == 1800
    assert manual_span(300, 300, same=False, add30=True) == 3600


def test_manual_entry_matches_equal_cusps():
    manual = decans_from_manual_entry(9, [(5, 0)] * 12, [False] * 12, [False] * 12)
    computed = compute_decans(_equal_cusps(275))
    assert manual[0].cusp == pytest.approx(275)
    assert manual[11].sign == 'Sagittarius'
    for a, b in zip(manual, computed):
        assert a.span == pytest.approx(b.span)
        assert [d.ruling_sign for d in a.decans] == [d.ruling_sign for d in b.decans]


def test_manual_entry_validation():
    with pytest.raises(InvalidInputError):
        decans_from_manual_entry(0, [(5, 0)] * 11, [False] * 12, [False] * 12)
    with pytest.raises(InvalidInputError):
        decans_from_manual_entry(0, [(31, 0)] * 12, [False] * 12, [False] * 12)


def test_place_planets_by_offset_in_house():
    houses = compute_decans(_equal_cusps(0))

    def planet(name, longitude, house):
        return PlanetPosition(name, longitude, deg_to_sign_position(longitude), house)

    placements = place_planets(houses, [planet('Sun', 5.0, 1), planet('Moon', 15.0, 1), planet('Mars', 59.0, 2)])
    assert [(p.planet, p.house, p.decan) for p in placements] == [
        ('Sun', 1, 1), ('Moon', 1, 2), ('Mars', 2, 3),
    ]
    assert placements[1].offset == pytest.approx(900)
