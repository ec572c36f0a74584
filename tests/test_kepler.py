# tests/test_kepler.py
from __future__ import annotations

import math
import pytest

from hypothesis import given, strategies as st

from astrochart.core.constants import Body
from astrochart.core.errors import ConvergenceWarning, InputError, UnknownEntityError
from astrochart.core.kepler import (
    ORBITAL_ELEMENTS,
    planet_position,
    solve_kepler,
    solve_kepler_detailed,
    true_anomaly,
)

J2000 = 2451545.0


def test_circular_orbit_is_exact() -> None:
    sol = solve_kepler_detailed(1.234, 0.0)
    assert sol.eccentric_anomaly == 1.234
    assert sol.converged and sol.iterations == 1
    assert true_anomaly(1.234, 0.0) == pytest.approx(1.234, abs=1e-12)

@given(
    m=st.floats(min_value=-math.pi, max_value=math.pi, allow_nan=False),
    e=st.floats(min_value=0.0, max_value=0.5, allow_nan=False),
)
def test_solution_satisfies_keplers_equation(m, e) -> None:
    sol = solve_kepler_detailed(m, e)
    assert sol.converged
    E = sol.eccentric_anomaly
    assert abs(E - e * math.sin(E) - m) < 1e-9

def test_iteration_cap_warns_and_returns_estimate() -> None:
    with pytest.warns(ConvergenceWarning):
        E = solve_kepler(0.5, 0.9, max_iter=1)
    assert math.isfinite(E)
    sol = solve_kepler_detailed(0.5, 0.9, max_iter=1)
    assert not sol.converged and sol.iterations == 1

def test_rejects_non_elliptic_or_non_finite() -> None:
    with pytest.raises(InputError):
        solve_kepler_detailed(0.1, 1.0)
    with pytest.raises(InputError):
        solve_kepler_detailed(0.1, -0.1)
    with pytest.raises(InputError):
        solve_kepler_detailed(float("nan"), 0.1)

def test_moon_has_no_elements() -> None:
    assert Body.MOON not in ORBITAL_ELEMENTS
    with pytest.raises(UnknownEntityError) as exc:
        planet_position(Body.MOON, J2000)
    assert exc.value.kind == "UnknownBody"

def test_sun_near_capricorn_10_at_j2000() -> None:
    sun = planet_position("Sun", J2000)
    assert sun.converged
    assert sun.longitude == pytest.approx(280.38, abs=0.2)
    assert sun.mean_longitude == pytest.approx(280.46646, abs=1e-9)

@pytest.mark.parametrize("body", [b for b in ORBITAL_ELEMENTS])
def test_all_bodies_in_range(body: Body) -> None:
    for jd in (2415020.0, J2000, 2470000.5):
        pos = planet_position(body, jd)
        assert 0.0 <= pos.longitude < 360.0
        assert pos.converged
        assert pos.to_dict()["body"] == body.value

def test_planet_position_warns_when_capped() -> None:
    with pytest.warns(ConvergenceWarning):
        pos = planet_position(Body.PLUTO, J2000 + 1234.5, tol=0.0, max_iter=2)
    assert not pos.converged
    assert 0.0 <= pos.longitude < 360.0
