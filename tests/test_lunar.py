# tests/test_lunar.py
from __future__ import annotations

import math
import pytest

from hypothesis import given, strategies as st

from astrochart.core.errors import InputError
from astrochart.core.lunar import (
    MEAN_DISTANCE_KM,
    PERIODIC_TERMS,
    Observer,
    mean_arguments,
    moon_longitude,
    moon_parallax,
    moon_position,
)

J2000 = 2451545.0


def test_mean_arguments_at_j2000() -> None:
    args = mean_arguments(J2000)
    assert args.L == pytest.approx(218.3164477, abs=1e-9)
    assert args.D == pytest.approx(297.8501921, abs=1e-9)
    assert args.M_prime == pytest.approx(134.9633964, abs=1e-9)

def test_meeus_example_47a() -> None:
    # 1992-04-12 0h TD; full theory gives λ = 133.162655°
    assert moon_longitude(2448724.5) == pytest.approx(133.162655, abs=0.5)

@given(st.floats(min_value=2415020.0, max_value=2488070.0, allow_nan=False))
def test_correction_bounded_by_term_amplitudes(jd) -> None:
    pos = moon_position(jd)
    bound = sum(abs(t[0]) for t in PERIODIC_TERMS)
    assert abs(pos.correction) <= bound + 1e-9
    assert 0.0 <= pos.longitude < 360.0

def test_parallax_is_advisory_only() -> None:
    jd = 2460000.5
    bare = moon_position(jd)
    topo = moon_position(jd, Observer(51.5, -0.13, 35.0))
    assert bare.parallax is None
    assert topo.longitude == bare.longitude
    assert topo.parallax is not None and topo.parallax.applied is False
    assert topo.parallax_applied is False
    assert topo.notes
    assert topo.to_dict()["parallax_applied"] is False

def test_horizontal_parallax_from_mean_distance() -> None:
    p = moon_parallax(ra=0.0, dec=0.0, distance_km=MEAN_DISTANCE_KM, latitude=0.0,
                      elevation_m=0.0, local_sidereal_time=0.0)
    assert p.horizontal_parallax == pytest.approx(math.degrees(math.asin(6378.137 / MEAN_DISTANCE_KM)))
    # on the meridian there is no RA shift
    assert p.delta_ra == pytest.approx(0.0, abs=1e-12)

def test_parallax_rejects_distance_inside_earth() -> None:
    with pytest.raises(InputError):
        moon_parallax(0.0, 0.0, 6000.0, 0.0, 0.0, 0.0)

def test_observer_validation() -> None:
    with pytest.raises(InputError):
        Observer(95.0, 0.0)
    with pytest.raises(InputError):
        Observer(0.0, float("nan"))
