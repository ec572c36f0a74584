# tests/test_aspects.py
from __future__ import annotations

import pytest

from hypothesis import given, strategies as st

from astrochart.core.constants import Aspect, abs_sep_deg
from astrochart.core.errors import InputError, UnknownEntityError
from astrochart.core.aspects import compute_aspects, resolve_orbs


def test_exact_trine_with_zero_orb() -> None:
    hits = compute_aspects({"A": 10.0, "B": 130.0}, orbs=0)
    assert len(hits) == 1
    h = hits[0]
    assert h.aspect is Aspect.TRINE
    assert h.exact and h.delta == pytest.approx(0.0, abs=1e-12)
    assert h.to_dict()["aspect"] == "trine"

def test_separation_wraps_through_zero() -> None:
    hits = compute_aspects({"A": 358.0, "B": 4.0})
    assert [h.aspect for h in hits] == [Aspect.CONJUNCTION]
    assert hits[0].separation == pytest.approx(6.0)
    assert hits[0].orb == 8.0

def test_orb_boundary_is_inclusive() -> None:
    assert compute_aspects({"A": 0.0, "B": 97.0})[0].aspect is Aspect.SQUARE
    assert compute_aspects({"A": 0.0, "B": 97.5}) == []

def test_per_aspect_override_and_ordering() -> None:
    # 65° is a sextile (5° off) and, with a wide square orb, also a square (25° off)
    hits = compute_aspects({"A": 0.0, "B": 65.0}, orbs={"square": 30.0})
    assert [h.aspect for h in hits] == [Aspect.SEXTILE, Aspect.SQUARE]

def test_restricting_aspect_kinds() -> None:
    hits = compute_aspects({"A": 0.0, "B": 180.0, "C": 90.0}, aspects=["square"])
    assert {(h.body_a, h.body_b) for h in hits} == {("A", "C"), ("B", "C")}

def test_accepts_pairs_and_objects() -> None:
    class P:
        def __init__(self, body, longitude):
            self.body, self.longitude = body, longitude

    a = compute_aspects([("Sun", 0.0), ("Moon", 180.0)])
    b = compute_aspects([P("Sun", 0.0), P("Moon", 180.0)])
    assert [h.to_dict() for h in a] == [h.to_dict() for h in b]
    assert a[0].aspect is Aspect.OPPOSITION

def test_resolve_orbs() -> None:
    assert resolve_orbs()[Aspect.SQUARE] == 7.0
    assert set(resolve_orbs(2.5).values()) == {2.5}
    assert resolve_orbs({"trine": 1})[Aspect.TRINE] == 1.0
    with pytest.raises(InputError):
        resolve_orbs(-1)
    with pytest.raises(InputError):
        resolve_orbs({"trine": float("inf")})
    with pytest.raises(UnknownEntityError):
        resolve_orbs({"quincunx": 2})

@given(
    a=st.floats(min_value=-720.0, max_value=720.0, allow_nan=False),
    b=st.floats(min_value=-720.0, max_value=720.0, allow_nan=False),
)
def test_separation_symmetric_and_bounded(a, b) -> None:
    d = abs_sep_deg(a, b)
    assert 0.0 <= d <= 180.0
    assert d == pytest.approx(abs_sep_deg(b, a), abs=1e-9)
