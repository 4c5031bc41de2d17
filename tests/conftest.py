import pytest
from mpmath import mp

from mandelbmp.buffer import PlaneRegion


@pytest.fixture
def full_region():
    return PlaneRegion(-2.0, 1.0, -1.0, 1.0)


@pytest.fixture
def restore_mp_precision():
    dps = mp.dps
    yield
    mp.dps = dps
