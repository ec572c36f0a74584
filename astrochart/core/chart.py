# astrochart/core/chart.py
"""
ChartComposer: time → positions → houses → aspects, all or nothing.

Source policy per body
----------------------
- bodies listed in ``ComposerConfig.ephemeris_bodies`` (default: Sun and
  Jupiter..Pluto) are interpolated from the sampled ephemeris at JD(TT);
- the Moon uses the truncated lunar series;
- everything else uses the Kepler propagator.

When the ephemeris lacks coverage for a body, the composer falls back to the
model (Moon → lunar series, others → Kepler) and records why in
``Chart.warnings``. With ``strict_ephemeris`` the RangeError propagates and no
chart is produced. Every planet carries the ``source_method`` that produced it.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from astrochart.core.aspects import AspectHit, OrbSpec, compute_aspects, resolve_orbs
from astrochart.core.constants import (
    DEFAULT_EPHEMERIS_BODIES,
    Body,
    HouseSystem,
    SourceMethod,
    ZodiacSign,
    format_longitude,
)
from astrochart.core.ephemeris import Availability, EphemerisTable
from astrochart.core.errors import InputError, RangeError
from astrochart.core.houses import HouseResult, compute_houses
from astrochart.core.kepler import DEFAULT_MAX_ITER, DEFAULT_TOLERANCE, planet_position
from astrochart.core.locations import format_coordinates
from astrochart.core.lunar import Observer, moon_position
from astrochart.core.timescales import Moment, TimeInstant, build_time_instant

__all__ = [
    "ComposerConfig",
    "PlanetPosition",
    "Chart",
    "ChartComposer",
    "compute_chart",
    "default_composer",
]

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────────────
def _get(m: Any, key: str, default: Any = None) -> Any:
    if isinstance(m, Mapping):
        v = m.get(key, default)
        return default if v is None else v
    return default


@dataclass(frozen=True)
class ComposerConfig:
    ephemeris_dir: Optional[str] = None
    ephemeris_bodies: Tuple[Body, ...] = DEFAULT_EPHEMERIS_BODIES
    reference_body: Body = Body.SUN
    strict_ephemeris: bool = False
    house_system: HouseSystem = HouseSystem.PORPHYRY
    bodies: Tuple[Body, ...] = tuple(Body)
    orbs: Mapping[str, float] = field(default_factory=dict)
    kepler_tolerance: float = DEFAULT_TOLERANCE
    kepler_max_iter: int = DEFAULT_MAX_ITER

    @classmethod
    def from_mapping(cls, cfg: Optional[Mapping[str, Any]]) -> "ComposerConfig":
        """Build from the YAML layout (see config/defaults.yaml); missing keys keep defaults."""
        cfg = cfg or {}
        eph = _get(cfg, "ephemeris", {})
        houses = _get(cfg, "houses", {})
        kep = _get(cfg, "kepler", {})
        asp = _get(cfg, "aspects", {})

        eph_bodies = _get(eph, "bodies")
        bodies = _get(cfg, "bodies")
        return cls(
            ephemeris_dir=_get(eph, "data_dir"),
            ephemeris_bodies=tuple(Body.parse(b) for b in eph_bodies) if eph_bodies is not None else DEFAULT_EPHEMERIS_BODIES,
            reference_body=Body.parse(_get(eph, "reference_body", "Sun")),
            strict_ephemeris=bool(_get(eph, "strict", False)),
            house_system=HouseSystem.parse(_get(houses, "default_system", "porphyry")),
            bodies=tuple(Body.parse(b) for b in bodies) if bodies is not None else tuple(Body),
            orbs=dict(_get(asp, "orbs", {})),
            kepler_tolerance=float(_get(kep, "tolerance", DEFAULT_TOLERANCE)),
            kepler_max_iter=int(_get(kep, "max_iter", DEFAULT_MAX_ITER)),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class PlanetPosition:
    body: Body
    longitude: float
    house_index: int
    source_method: SourceMethod
    meta: Mapping[str, Any] = field(default_factory=dict)

    @property
    def zodiac_sign(self) -> ZodiacSign:
        return ZodiacSign.of(self.longitude)

    @property
    def degree_in_sign(self) -> float:
        return self.longitude % 30.0

    @property
    def formatted(self) -> str:
        return format_longitude(self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "body": self.body.value,
            "longitude": self.longitude,
            "sign": self.zodiac_sign.display_name,
            "degree_in_sign": self.degree_in_sign,
            "formatted": self.formatted,
            "house": self.house_index,
            "source_method": self.source_method.value,
            "meta": dict(self.meta),
        }


@dataclass(frozen=True)
class Chart:
    time: TimeInstant
    latitude: float
    longitude: float
    houses: HouseResult
    planets: Tuple[PlanetPosition, ...]
    aspects: Tuple[AspectHit, ...]
    ephemeris: Availability
    warnings: Tuple[str, ...] = ()

    @property
    def angles(self):
        return self.houses.angles

    @property
    def cusps(self):
        return self.houses.cusps

    def planet(self, body: Union[Body, str]) -> PlanetPosition:
        b = Body.parse(body)
        for p in self.planets:
            if p.body is b:
                return p
        raise KeyError(b.value)

    def _find(self, body: Body) -> Optional[PlanetPosition]:
        return next((p for p in self.planets if p.body is body), None)

    def interpretation(self) -> str:
        """
        Markdown summary: Sun, Moon and rising signs, then one line per
        planet with its formatted position and house. Luminaries missing from
        a body subset are skipped.
        """
        lines = ["## Birth Chart Interpretation", ""]
        sun, moon = self._find(Body.SUN), self._find(Body.MOON)
        if sun is not None:
            lines.append(f"**Sun in {sun.zodiac_sign.display_name}**: Your core identity and life purpose.")
        if moon is not None:
            lines.append(f"**Moon in {moon.zodiac_sign.display_name}**: Your emotional nature and inner world.")
        rising = ZodiacSign.of(self.angles.ascendant).display_name
        lines.append(f"**Ascendant in {rising}**: How you present yourself to the world.")
        lines += ["", "### Planetary Positions"]
        lines += [f"- **{p.body.value}** in {p.formatted} (House {p.house_index})" for p in self.planets]
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.to_dict(),
            "location": {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "formatted": format_coordinates(self.latitude, self.longitude),
            },
            "house_system": self.houses.system.key,
            "lst": self.houses.lst,
            "obliquity": self.houses.obliquity,
            "angles": self.houses.angles.to_dict(),
            "houses": [c.to_dict() for c in self.houses.cusps],
            "planets": [p.to_dict() for p in self.planets],
            "aspects": [a.to_dict() for a in self.aspects],
            "ephemeris": self.ephemeris.to_dict(),
            "warnings": list(self.warnings),
            "interpretation": self.interpretation(),
        }


# ─────────────────────────────────────────────────────────────────────────────
# Composer
# ─────────────────────────────────────────────────────────────────────────────
class ChartComposer:
    def __init__(self, config: Optional[ComposerConfig] = None, ephemeris: Optional[EphemerisTable] = None):
        self.config = config or ComposerConfig()
        self.ephemeris = ephemeris if ephemeris is not None else EphemerisTable(self.config.ephemeris_dir)

    def _model_position(
        self, body: Body, instant: TimeInstant, observer: Optional[Observer], notes: List[str]
    ) -> Tuple[float, SourceMethod, Dict[str, Any]]:
        if body is Body.MOON:
            moon = moon_position(instant.jd_tt, observer, jd_ut=instant.jd_utc)
            meta: Dict[str, Any] = {"method": moon.method, "parallax_applied": False}
            if moon.parallax is not None:
                meta["parallax"] = {
                    "delta_ra": moon.parallax.delta_ra,
                    "delta_dec": moon.parallax.delta_dec,
                    "horizontal_parallax": moon.parallax.horizontal_parallax,
                }
            return moon.longitude, SourceMethod.LUNAR_SERIES, meta

        pos = planet_position(
            body, instant.jd_tt, tol=self.config.kepler_tolerance, max_iter=self.config.kepler_max_iter
        )
        meta = {"mean_anomaly": pos.mean_anomaly, "converged": pos.converged}
        if body is not Body.SUN:
            meta["frame"] = "heliocentric"
        if not pos.converged:
            notes.append(f"{body.value}: Kepler solver hit the iteration cap; longitude is under-converged")
        return pos.longitude, SourceMethod.KEPLER, meta

    def _position(
        self, body: Body, instant: TimeInstant, observer: Optional[Observer], notes: List[str]
    ) -> Tuple[float, SourceMethod, Dict[str, Any]]:
        if body in self.config.ephemeris_bodies:
            try:
                hit = self.ephemeris.lookup(body, instant.jd_tt)
            except RangeError as e:
                if self.config.strict_ephemeris:
                    raise
                lon, method, meta = self._model_position(body, instant, observer, notes)
                notes.append(f"{body.value}: {e.message}; used {method.value}")
                log.warning("ephemeris fallback for %s at jd_tt=%.6f: %s", body.value, instant.jd_tt, e.message)
                meta["fallback_from"] = SourceMethod.EPHEMERIS.value
                return lon, method, meta
            method = SourceMethod.EPHEMERIS if hit.interpolated else SourceMethod.EPHEMERIS_NEAREST
            return hit.longitude, method, {"before_jd": hit.before_jd, "after_jd": hit.after_jd}
        return self._model_position(body, instant, observer, notes)

    def compute_chart(
        self,
        when: Moment,
        latitude: float,
        longitude: float,
        house_system: Union[HouseSystem, str, None] = None,
        utc_offset_hours: float = 0.0,
        *,
        bodies: Optional[Iterable[Union[Body, str]]] = None,
        orbs: OrbSpec = None,
        elevation_m: float = 0.0,
    ) -> Chart:
        """
        Full chart for a civil time (at ``utc_offset_hours``) or a UTC JD.

        Raises InputError, UnknownEntityError or (strict mode) RangeError;
        never returns a partial chart.
        """
        lon = float(longitude)
        if not math.isfinite(lon):
            raise InputError(f"longitude must be finite, got {longitude!r}", field="longitude")
        hs = self.config.house_system if house_system is None else HouseSystem.parse(house_system)
        selected = tuple(Body.parse(b) for b in bodies) if bodies is not None else self.config.bodies
        orb_table = resolve_orbs(orbs if orbs is not None else (self.config.orbs or None))

        instant = build_time_instant(when, utc_offset_hours)
        houses = compute_houses(instant.jd_utc, instant.jd_tt, latitude, lon, hs)
        observer = Observer(houses.latitude, lon, float(elevation_m))

        notes: List[str] = []
        planets: List[PlanetPosition] = []
        for body in selected:
            lam, method, meta = self._position(body, instant, observer, notes)
            planets.append(PlanetPosition(body, lam, houses.house_of(lam), method, meta))

        hits = compute_aspects([(p.body.value, p.longitude) for p in planets], orb_table)
        availability = self.ephemeris.availability(instant.jd_tt, self.config.reference_body)

        return Chart(
            time=instant,
            latitude=houses.latitude,
            longitude=lon,
            houses=houses,
            planets=tuple(planets),
            aspects=tuple(hits),
            ephemeris=availability,
            warnings=tuple(notes),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Process default (lazy, double-checked)
# ─────────────────────────────────────────────────────────────────────────────
_DEFAULT: Optional[ChartComposer] = None
_DEFAULT_LOCK = threading.Lock()


def default_composer() -> ChartComposer:
    global _DEFAULT
    if _DEFAULT is None:
        with _DEFAULT_LOCK:
            if _DEFAULT is None:
                from astrochart.utils.config import load_config

                _DEFAULT = ChartComposer(ComposerConfig.from_mapping(load_config()))
                log.info(
                    "default composer ready (ephemeris_dir=%s, strict=%s)",
                    _DEFAULT.config.ephemeris_dir, _DEFAULT.config.strict_ephemeris,
                )
    return _DEFAULT


def compute_chart(
    when: Moment,
    latitude: float,
    longitude: float,
    house_system: Union[HouseSystem, str, None] = "porphyry",
    utc_offset_hours: float = 0.0,
    **kwargs: Any,
) -> Chart:
    """Module-level entry point backed by the process default composer."""
    return default_composer().compute_chart(when, latitude, longitude, house_system, utc_offset_hours, **kwargs)
