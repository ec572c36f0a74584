# astrochart/core/houses.py
"""
House geometry: Ascendant / MC from sidereal time, latitude and obliquity,
12-cusp subdivision (Whole Sign, Equal, Porphyry) and house membership.

Cusps are returned in house order 1..12 and increase with ecliptic
longitude (cyclically, wrapping once through 0°). For the quadrant system
(Porphyry) cusp 1 is the Ascendant, 4 the IC, 7 the Descendant, 10 the MC.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple, Union

from astrochart.core.constants import HouseSystem, ZodiacSign, format_longitude, normalize_angle
from astrochart.core.errors import InputError
from astrochart.core.timescales import lst as local_sidereal_time
from astrochart.core.timescales import obliquity

__all__ = [
    "ChartAngles",
    "HouseCusp",
    "HouseResult",
    "ascendant",
    "midheaven",
    "chart_angles",
    "whole_sign",
    "equal",
    "porphyry",
    "house_cusps",
    "house_of",
    "compute_houses",
]


# ───────────────────────── types ─────────────────────────
@dataclass(frozen=True)
class ChartAngles:
    ascendant: float
    mc: float
    descendant: float
    ic: float

    def to_dict(self) -> Dict[str, float]:
        return {"ascendant": self.ascendant, "mc": self.mc, "descendant": self.descendant, "ic": self.ic}


@dataclass(frozen=True)
class HouseCusp:
    index: int
    longitude: float

    @property
    def sign(self) -> ZodiacSign:
        return ZodiacSign.of(self.longitude)

    @property
    def degree_in_sign(self) -> float:
        return self.longitude % 30.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "longitude": self.longitude,
            "sign": self.sign.display_name,
            "degree_in_sign": self.degree_in_sign,
            "formatted": format_longitude(self.longitude),
        }


@dataclass(frozen=True)
class HouseResult:
    system: HouseSystem
    lst: float
    obliquity: float
    latitude: float
    longitude: float
    angles: ChartAngles
    cusps: Tuple[HouseCusp, ...]

    @property
    def cusp_longitudes(self) -> List[float]:
        return [c.longitude for c in self.cusps]

    def house_of(self, longitude: float) -> int:
        return house_of(longitude, self.cusp_longitudes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system": self.system.key,
            "lst": self.lst,
            "obliquity": self.obliquity,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "angles": self.angles.to_dict(),
            "cusps": [c.to_dict() for c in self.cusps],
        }


# ───────────────────────── helpers ─────────────────────────
def _check_latitude(lat: float) -> float:
    lat = float(lat)
    if not math.isfinite(lat) or not -90.0 <= lat <= 90.0:
        raise InputError(f"latitude must be a finite value in [-90, 90], got {lat!r}", field="latitude")
    return lat


def _as_cusps(longitudes: Sequence[float]) -> Tuple[HouseCusp, ...]:
    return tuple(HouseCusp(i + 1, normalize_angle(lon)) for i, lon in enumerate(longitudes))


# ───────────────────────── angles ─────────────────────────
def ascendant(lst: float, latitude: float, eps: float) -> float:
    """
    Eastern intersection of horizon and ecliptic (degrees).

    λ = atan2(cos θ, −(sin θ cos ε + tan φ sin ε)), which puts the result on
    the rising side, i.e. within 180° ahead of the MC. Flipping the sign of
    both arguments gives the setting (western) point instead.
    """
    phi = math.radians(_check_latitude(latitude))
    th = math.radians(float(lst))
    e = math.radians(float(eps))
    y = math.cos(th)
    x = -(math.sin(th) * math.cos(e) + math.tan(phi) * math.sin(e))
    return normalize_angle(math.degrees(math.atan2(y, x)))


def midheaven(lst: float, eps: float) -> float:
    th = math.radians(float(lst))
    e = math.radians(float(eps))
    return normalize_angle(math.degrees(math.atan2(math.sin(th), math.cos(th) * math.cos(e))))


def chart_angles(asc: float, mc: float) -> ChartAngles:
    asc = normalize_angle(asc)
    mc = normalize_angle(mc)
    return ChartAngles(asc, mc, normalize_angle(asc + 180.0), normalize_angle(mc + 180.0))


# ───────────────────────── systems ─────────────────────────
def whole_sign(asc: float) -> Tuple[HouseCusp, ...]:
    """House 1 = the whole sign holding the Ascendant."""
    first = math.floor(normalize_angle(asc) / 30.0) * 30.0
    return _as_cusps([first + 30.0 * i for i in range(12)])


def equal(asc: float) -> Tuple[HouseCusp, ...]:
    return _as_cusps([float(asc) + 30.0 * i for i in range(12)])


def porphyry(asc: float, mc: float) -> Tuple[HouseCusp, ...]:
    """Each quadrant ASC→IC→DSC→MC→ASC trisected into equal forward arcs."""
    a = normalize_angle(asc)
    m = normalize_angle(mc)
    d = normalize_angle(a + 180.0)
    i = normalize_angle(m + 180.0)

    def arc(start: float, end: float) -> float:
        return normalize_angle(end - start) / 3.0

    cusps = [0.0] * 12
    for slot, (start, end) in zip((0, 3, 6, 9), ((a, i), (i, d), (d, m), (m, a))):
        w = arc(start, end)
        cusps[slot] = start
        cusps[slot + 1] = start + w
        cusps[slot + 2] = start + 2.0 * w
    return _as_cusps(cusps)


def house_cusps(system: Union[HouseSystem, str, None], asc: float, mc: float) -> Tuple[HouseCusp, ...]:
    hs = HouseSystem.parse(system)
    if hs is HouseSystem.WHOLE_SIGN:
        return whole_sign(asc)
    if hs is HouseSystem.EQUAL:
        return equal(asc)
    if hs is HouseSystem.PORPHYRY:
        return porphyry(asc, mc)
    raise AssertionError(f"unhandled house system {hs!r}")


def house_of(longitude: float, cusps: Sequence[Union[float, HouseCusp]]) -> int:
    """
    1-based house holding ``longitude``.

    Each adjacent pair (c_i, c_i+1) is tested as c_i ≤ λ < c_i+1, or, when the
    pair straddles 0°, λ ≥ c_i or λ < c_i+1. Falls back to 1 when nothing
    matches (degenerate or duplicate cusps).
    """
    lons = [c.longitude if isinstance(c, HouseCusp) else float(c) for c in cusps]
    n = len(lons)
    lam = normalize_angle(longitude)
    for k in range(n):
        start, end = lons[k], lons[(k + 1) % n]
        if start < end:
            if start <= lam < end:
                return k + 1
        elif start > end:
            if lam >= start or lam < end:
                return k + 1
    return 1


# ───────────────────────── entry point ─────────────────────────
def compute_houses(
    jd_utc: float,
    jd_tt: float,
    latitude: float,
    east_longitude: float,
    system: Union[HouseSystem, str, None] = HouseSystem.PORPHYRY,
) -> HouseResult:
    """Sidereal time from UT, obliquity from TT."""
    hs = HouseSystem.parse(system)
    lat = _check_latitude(latitude)
    theta = local_sidereal_time(jd_utc, east_longitude)
    eps = obliquity(jd_tt)
    asc = ascendant(theta, lat, eps)
    mc = midheaven(theta, eps)
    return HouseResult(
        system=hs,
        lst=theta,
        obliquity=eps,
        latitude=lat,
        longitude=float(east_longitude),
        angles=chart_angles(asc, mc),
        cusps=house_cusps(hs, asc, mc),
    )
