# astrochart/core/lunar.py
"""
Truncated lunar longitude series (leading ELP-2000/82 terms, Meeus ch. 47)

- mean_arguments(jd): L′, D, M, M′, F as degree-4 polynomials in T (TT)
- moon_longitude(jd): L′ + Σ 10 leading sine terms, normalized (≈1–2° accuracy)
- moon_position(jd, observer): longitude plus metadata; when an observer is
  given a topocentric parallax estimate (Meeus ch. 40) is attached but is
  NOT applied to the longitude
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

from astrochart.core.constants import normalize_angle
from astrochart.core.errors import InputError
from astrochart.core.timescales import julian_centuries, lst, obliquity

__all__ = [
    "LunarArguments",
    "Observer",
    "ParallaxCorrection",
    "LunarPosition",
    "PERIODIC_TERMS",
    "MEAN_DISTANCE_KM",
    "mean_arguments",
    "moon_longitude",
    "moon_position",
    "moon_parallax",
]

METHOD = "lunar_series_10_terms"
MEAN_DISTANCE_KM: float = 385000.0
EARTH_EQUATORIAL_RADIUS_KM: float = 6378.137
WGS84_FLATTENING: float = 1.0 / 298.257223563


# ─────────────────────────────────────────────────────────────────────────────
# Mean arguments
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class LunarArguments:
    L: float          # Moon mean longitude
    D: float          # mean elongation
    M: float          # Sun mean anomaly
    M_prime: float    # Moon mean anomaly
    F: float          # argument of latitude


def _poly4(T: float, c0: float, c1: float, c2: float, c3: float, c4: float) -> float:
    return c0 + T * (c1 + T * (c2 + T * (c3 + T * c4)))


def mean_arguments(jd: float) -> LunarArguments:
    T = julian_centuries(jd)
    return LunarArguments(
        L=normalize_angle(_poly4(T, 218.3164477, 481267.88123421, -0.0015786, 1.0 / 538841.0, -1.0 / 65194000.0)),
        D=normalize_angle(_poly4(T, 297.8501921, 445267.1114034, -0.0018819, 1.0 / 545868.0, -1.0 / 113065000.0)),
        M=normalize_angle(_poly4(T, 357.5291092, 35999.0502909, -0.0001536, 1.0 / 24490000.0, 0.0)),
        M_prime=normalize_angle(_poly4(T, 134.9633964, 477198.8675055, 0.0087414, 1.0 / 69699.0, -1.0 / 14712000.0)),
        F=normalize_angle(_poly4(T, 93.2720950, 483202.0175233, -0.0036539, -1.0 / 3526000.0, 1.0 / 863310000.0)),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Periodic terms: (amplitude°, multipliers of D, M, M′, F)
# ─────────────────────────────────────────────────────────────────────────────
PERIODIC_TERMS: Tuple[Tuple[float, int, int, int, int], ...] = (
    (6.288774, 0, 0, 1, 0),
    (1.274027, 2, 0, -1, 0),
    (0.658314, 2, 0, 0, 0),
    (0.213618, 0, 0, 2, 0),
    (-0.185116, 0, 1, 0, 0),
    (-0.114332, 0, 0, 0, 2),
    (0.058793, 2, 0, -2, 0),
    (0.057066, 2, -1, -1, 0),
    (0.053322, 2, 0, 1, 0),
    (0.045758, 2, -1, 0, 0),
)


def _correction(args: LunarArguments) -> float:
    d, m, mp, f = (math.radians(v) for v in (args.D, args.M, args.M_prime, args.F))
    total = 0.0
    for amp, kd, km, kmp, kf in PERIODIC_TERMS:
        total += amp * math.sin(kd * d + km * m + kmp * mp + kf * f)
    return total


def moon_longitude(jd: float) -> float:
    """Geocentric ecliptic longitude of the Moon (deg) at ``jd`` (TT)."""
    args = mean_arguments(jd)
    return normalize_angle(args.L + _correction(args))


# ─────────────────────────────────────────────────────────────────────────────
# Parallax (advisory)
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Observer:
    latitude: float
    longitude: float            # east positive
    elevation_m: float = 0.0

    def __post_init__(self) -> None:
        for name in ("latitude", "longitude", "elevation_m"):
            if not math.isfinite(float(getattr(self, name))):
                raise InputError(f"observer {name} must be finite")
        if not -90.0 <= self.latitude <= 90.0:
            raise InputError(f"observer latitude must be within [-90, 90], got {self.latitude}")


@dataclass(frozen=True)
class ParallaxCorrection:
    delta_ra: float          # deg
    delta_dec: float         # deg
    horizontal_parallax: float   # deg
    applied: bool = False


def moon_parallax(
    ra: float,
    dec: float,
    distance_km: float,
    latitude: float,
    elevation_m: float,
    local_sidereal_time: float,
) -> ParallaxCorrection:
    """
    Small-angle topocentric parallax in RA/Dec on the WGS84 ellipsoid.

    All angles in degrees; elevation in metres.
    """
    if distance_km <= EARTH_EQUATORIAL_RADIUS_KM:
        raise InputError(f"distance must exceed the Earth radius, got {distance_km} km")
    f = WGS84_FLATTENING
    phi = math.radians(latitude)
    u = math.atan((1.0 - f) * math.tan(phi))
    h = (elevation_m / 1000.0) / EARTH_EQUATORIAL_RADIUS_KM
    rho_sin = (1.0 - f) * math.sin(u) + h * math.sin(phi)
    rho_cos = math.cos(u) + h * math.cos(phi)

    pi = math.asin(EARTH_EQUATORIAL_RADIUS_KM / distance_km)
    H = math.radians(local_sidereal_time - ra)
    d = math.radians(dec)

    d_ra = -pi * rho_cos * math.sin(H) / math.cos(d)
    d_dec = -pi * (rho_sin * math.cos(d) - rho_cos * math.sin(d) * math.cos(H))
    return ParallaxCorrection(
        delta_ra=math.degrees(d_ra),
        delta_dec=math.degrees(d_dec),
        horizontal_parallax=math.degrees(pi),
    )


def _ecliptic_to_equatorial(lon: float, eps: float) -> Tuple[float, float]:
    """(λ, β=0) → (α, δ), degrees."""
    lam, e = math.radians(lon), math.radians(eps)
    ra = math.degrees(math.atan2(math.sin(lam) * math.cos(e), math.cos(lam)))
    dec = math.degrees(math.asin(math.sin(e) * math.sin(lam)))
    return normalize_angle(ra), dec


# ─────────────────────────────────────────────────────────────────────────────
# Position
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class LunarPosition:
    longitude: float
    mean_longitude: float
    correction: float
    arguments: LunarArguments
    method: str = METHOD
    parallax: Optional[ParallaxCorrection] = None
    notes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def parallax_applied(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["parallax_applied"] = self.parallax_applied
        return out


def moon_position(
    jd: float,
    observer: Optional[Observer] = None,
    *,
    jd_ut: Optional[float] = None,
) -> LunarPosition:
    """
    Moon at ``jd`` (TT). ``jd_ut`` (defaults to ``jd``) drives the sidereal
    time used by the advisory parallax estimate.
    """
    args = mean_arguments(jd)
    corr = _correction(args)
    lon = normalize_angle(args.L + corr)

    parallax: Optional[ParallaxCorrection] = None
    notes: Tuple[str, ...] = ()
    if observer is not None:
        ra, dec = _ecliptic_to_equatorial(lon, obliquity(jd))
        theta = lst(jd if jd_ut is None else jd_ut, observer.longitude)
        parallax = moon_parallax(ra, dec, MEAN_DISTANCE_KM, observer.latitude, observer.elevation_m, theta)
        notes = ("parallax computed from mean distance and beta=0; not applied to longitude",)

    return LunarPosition(
        longitude=lon,
        mean_longitude=args.L,
        correction=corr,
        arguments=args,
        parallax=parallax,
        notes=notes,
    )
