# astrochart/core/kepler.py
"""
Analytic Kepler propagation for the Sun and the classical planets.

Fixed J2000 mean elements per body; mean anomaly advances linearly with the
daily motion ``n``, Kepler's equation is solved by Newton–Raphson and the
true anomaly is rotated by the longitude of perihelion.

Accuracy limit: for bodies other than the Sun the result is the
*heliocentric* longitude; no Earth-position (geocentric) correction is
applied. The Sun row uses the longitude of perigee of the apparent solar
orbit (Earth's perihelion + 180°) so the Sun comes out geocentric.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, NamedTuple, Union

from astrochart.core.constants import Body, normalize_angle
from astrochart.core.errors import ConvergenceWarning, InputError, UnknownEntityError
from astrochart.core.timescales import days_since_j2000, julian_centuries

__all__ = [
    "OrbitalElements",
    "ORBITAL_ELEMENTS",
    "KeplerSolution",
    "KeplerPosition",
    "solve_kepler",
    "solve_kepler_detailed",
    "planet_position",
    "true_anomaly",
    "DEFAULT_TOLERANCE",
    "DEFAULT_MAX_ITER",
]


DEFAULT_TOLERANCE: float = 1e-8
DEFAULT_MAX_ITER: int = 30


# ─────────────────────────────────────────────────────────────────────────────
# Elements
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class OrbitalElements:
    L0: float           # mean longitude at J2000 (deg)
    L1: float           # mean longitude rate (deg / Julian century)
    n: float            # mean daily motion (deg / day)
    M0: float           # mean anomaly at J2000 (deg)
    e: float            # eccentricity
    perihelion: float   # longitude of perihelion (deg)


ORBITAL_ELEMENTS: Mapping[Body, OrbitalElements] = {
    Body.SUN:     OrbitalElements(280.46646, 36000.76983, 0.9856473602, 357.52911, 0.01671022, 282.93735),
    Body.MERCURY: OrbitalElements(252.25084, 149472.67411175, 4.0923387847, 174.79439, 0.20563069, 77.45645),
    Body.VENUS:   OrbitalElements(181.97973, 58517.81538729, 1.6021304692, 50.44675, 0.00677323, 131.53298),
    Body.MARS:    OrbitalElements(355.45332, 19140.29934243, 0.5240328362, 19.41248, 0.09341233, 336.04084),
    Body.JUPITER: OrbitalElements(34.40438, 3034.74612775, 0.0830868207, 19.65053, 0.04839266, 14.75385),
    Body.SATURN:  OrbitalElements(49.94432, 1222.49362201, 0.0334700513, 317.51238, 0.05415060, 92.43194),
    Body.URANUS:  OrbitalElements(313.23218, 428.48202785, 0.0117311986, 142.26794, 0.04716771, 170.96424),
    Body.NEPTUNE: OrbitalElements(304.88003, 218.45945325, 0.0059810939, 259.90868, 0.00858587, 44.97135),
    Body.PLUTO:   OrbitalElements(238.92881, 145.20780515, 0.0039755730, 14.86205, 0.24882, 224.07),
}


# ─────────────────────────────────────────────────────────────────────────────
# Kepler's equation
# ─────────────────────────────────────────────────────────────────────────────
class KeplerSolution(NamedTuple):
    eccentric_anomaly: float    # radians
    iterations: int
    converged: bool


def solve_kepler_detailed(
    mean_anomaly: float,
    e: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITER,
) -> KeplerSolution:
    """
    Newton–Raphson on E − e·sin E = M, starting from E = M.

    Stops once |ΔE| < tol; after ``max_iter`` updates the last estimate is
    returned with ``converged=False``.
    """
    m = float(mean_anomaly)
    e = float(e)
    if not (math.isfinite(m) and math.isfinite(e)):
        raise InputError("mean anomaly and eccentricity must be finite")
    if not 0.0 <= e < 1.0:
        raise InputError(f"eccentricity must be in [0, 1) for an elliptic orbit, got {e}")

    E = m
    for i in range(1, int(max_iter) + 1):
        dE = (E - e * math.sin(E) - m) / (1.0 - e * math.cos(E))
        E -= dE
        if abs(dE) < tol:
            return KeplerSolution(E, i, True)
    return KeplerSolution(E, int(max_iter), False)


def solve_kepler(
    mean_anomaly: float,
    e: float,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITER,
) -> float:
    """Eccentric anomaly (radians). Emits ConvergenceWarning at the iteration cap."""
    sol = solve_kepler_detailed(mean_anomaly, e, tol, max_iter)
    if not sol.converged:
        warnings.warn(
            ConvergenceWarning(
                f"Kepler solver hit {sol.iterations} iterations (M={mean_anomaly!r} rad, e={e!r}); "
                "returning best estimate"
            ),
            stacklevel=2,
        )
    return sol.eccentric_anomaly


def true_anomaly(E: float, e: float) -> float:
    """ν = 2·atan2(√(1+e)·sin(E/2), √(1−e)·cos(E/2)), radians."""
    return 2.0 * math.atan2(math.sqrt(1.0 + e) * math.sin(E / 2.0), math.sqrt(1.0 - e) * math.cos(E / 2.0))


# ─────────────────────────────────────────────────────────────────────────────
# Positions
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class KeplerPosition:
    body: Body
    longitude: float            # deg, [0, 360)
    mean_longitude: float       # deg
    mean_anomaly: float         # deg
    eccentric_anomaly: float    # deg
    true_anomaly: float         # deg
    converged: bool

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["body"] = self.body.value
        return out


def planet_position(
    body: Union[Body, str],
    jd: float,
    *,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITER,
) -> KeplerPosition:
    """
    Longitude of ``body`` at ``jd`` (TT) from the fixed element table.

    Raises UnknownEntityError for names/bodies without elements (the Moon
    has its own series in :mod:`astrochart.core.lunar`).
    """
    b = Body.parse(body)
    el = ORBITAL_ELEMENTS.get(b)
    if el is None:
        pool = [k.value for k in ORBITAL_ELEMENTS]
        raise UnknownEntityError("UnknownBody", b.value, (), pool)

    jd = float(jd)
    if not math.isfinite(jd):
        raise InputError(f"jd must be finite, got {jd!r}")

    T = julian_centuries(jd)
    L = normalize_angle(el.L0 + el.L1 * T)
    M = normalize_angle(el.M0 + el.n * days_since_j2000(jd))

    sol = solve_kepler_detailed(math.radians(M), el.e, tol, max_iter)
    if not sol.converged:
        warnings.warn(
            ConvergenceWarning(f"{b.value}: Kepler solver did not converge in {sol.iterations} iterations"),
            stacklevel=2,
        )
    nu = true_anomaly(sol.eccentric_anomaly, el.e)
    lam = normalize_angle(math.degrees(nu) + el.perihelion)

    return KeplerPosition(
        body=b,
        longitude=lam,
        mean_longitude=L,
        mean_anomaly=M,
        eccentric_anomaly=math.degrees(sol.eccentric_anomaly),
        true_anomaly=normalize_angle(math.degrees(nu)),
        converged=sol.converged,
    )
