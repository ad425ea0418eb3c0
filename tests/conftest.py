import pytest

from config import Settings
from ephemeris import EphemerisContext
from fakes import FakeSwe, failing_loader
from natal import ChartAssembler


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def offline_ephemeris():
    return EphemerisContext(loader=failing_loader)


@pytest.fixture
def assembler(offline_ephemeris, settings):
    return ChartAssembler(offline_ephemeris, settings)


@pytest.fixture
def fake_swe():
    return FakeSwe()


@pytest.fixture
def fake_assembler(fake_swe, settings):
    context = EphemerisContext(loader=lambda path: (fake_swe, True))
    return ChartAssembler(context, settings)
