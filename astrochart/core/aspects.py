# astrochart/core/aspects.py
from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from astrochart.core.constants import DEFAULT_ORBS_DEG, Aspect, abs_sep_deg, normalize_angle
from astrochart.core.errors import InputError

__all__ = [
    "AspectHit",
    "resolve_orbs",
    "compute_aspects",
]

# float noise guard for exact aspects built from sums like 370.3 − 250.3
_EPS = 1e-9

OrbSpec = Union[None, float, int, Mapping[Any, float]]


@dataclass(frozen=True)
class AspectHit:
    body_a: str
    body_b: str
    aspect: Aspect
    separation: float     # circular distance in [0, 180]
    delta: float          # |separation − aspect angle|
    orb: float            # allowed orb for this aspect

    @property
    def exact(self) -> bool:
        return self.delta <= _EPS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "body_a": self.body_a,
            "body_b": self.body_b,
            "aspect": self.aspect.config_key,
            "name": self.aspect.display_name,
            "angle": self.aspect.degrees,
            "separation": self.separation,
            "delta": self.delta,
            "orb": self.orb,
            "exact": self.exact,
        }


def resolve_orbs(orbs: OrbSpec = None) -> Dict[Aspect, float]:
    """
    None → defaults; a number → that orb for every aspect; a mapping →
    per-aspect overrides on top of the defaults (keys: Aspect or name).
    """
    out = {a: DEFAULT_ORBS_DEG[a.config_key] for a in Aspect}
    if orbs is None:
        return out
    if isinstance(orbs, Mapping):
        for k, v in orbs.items():
            out[Aspect.parse(k)] = _orb_value(v, str(k))
        return out
    return {a: _orb_value(orbs, "orb") for a in Aspect}


def _orb_value(v: Any, name: str) -> float:
    try:
        x = float(v)
    except (TypeError, ValueError):
        raise InputError(f"orb {name!r} must be a number, got {v!r}", field=name) from None
    if not math.isfinite(x) or x < 0.0:
        raise InputError(f"orb {name!r} must be finite and ≥ 0, got {x}", field=name)
    return x


def _pairs_source(positions: Union[Mapping[str, float], Iterable[Any]]) -> List[Tuple[str, float]]:
    if isinstance(positions, Mapping):
        items = list(positions.items())
    else:
        items = []
        for p in positions:
            if isinstance(p, (tuple, list)) and len(p) == 2:
                items.append((p[0], p[1]))
            else:
                # PlanetPosition-like
                items.append((getattr(p, "body"), getattr(p, "longitude")))
    out: List[Tuple[str, float]] = []
    for name, lon in items:
        label = getattr(name, "value", name)
        out.append((str(label), normalize_angle(lon)))
    return out


def compute_aspects(
    positions: Union[Mapping[str, float], Iterable[Any]],
    orbs: OrbSpec = None,
    aspects: Optional[Sequence[Union[Aspect, str]]] = None,
) -> List[AspectHit]:
    """
    Pairwise aspects: d = min(|Δλ|, 360 − |Δλ|); hit when |d − angle| ≤ orb.

    ``positions`` is a {name: longitude} mapping, (name, longitude) pairs or
    objects exposing ``body`` and ``longitude``. Hits are ordered by pair
    (input order) then by closeness.
    """
    table = resolve_orbs(orbs)
    kinds = [Aspect.parse(a) for a in aspects] if aspects is not None else list(Aspect)
    hits: List[AspectHit] = []
    for (na, la), (nb, lb) in itertools.combinations(_pairs_source(positions), 2):
        d = abs_sep_deg(la, lb)
        pair: List[AspectHit] = []
        for kind in kinds:
            delta = abs(d - kind.degrees)
            if delta <= table[kind] + _EPS:
                pair.append(AspectHit(na, nb, kind, d, delta, table[kind]))
        pair.sort(key=lambda h: h.delta)
        hits.extend(pair)
    return hits
