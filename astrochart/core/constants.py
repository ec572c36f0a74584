# astrochart/core/constants.py
"""
Core constants, closed enumerations & small angle helpers

Single source of truth for:
- bodies (Body), zodiac signs (ZodiacSign), house systems (HouseSystem)
- aspect angles and default orbs (Aspect, DEFAULT_ORBS_DEG)
- computation-method tags (SourceMethod)
- tiny angle helpers (normalize / separation / display formatting)

Name parsing is slug based ("Whole Sign", "whole-sign", "WHOLESIGN" all
resolve to the same member) and unknown names raise UnknownEntityError with
close-match suggestions instead of falling through silently.
"""

from __future__ import annotations

import difflib
import math
from enum import Enum
from typing import Dict, List, Tuple, Union

from astrochart.core.errors import InputError, UnknownEntityError

__all__ = [
    "Body", "ZodiacSign", "HouseSystem", "Aspect", "SourceMethod",
    "DEFAULT_ORBS_DEG", "DEFAULT_EPHEMERIS_BODIES", "SIGN_WIDTH_DEG",
    "normalize_angle", "abs_sep_deg", "degree_in_sign", "format_longitude",
]

SIGN_WIDTH_DEG: float = 30.0


# ── angle helpers ────────────────────────────────────────────────────────────
def normalize_angle(x: float) -> float:
    """((x mod 360) + 360) mod 360, always in [0, 360)."""
    x = float(x)
    if not math.isfinite(x):
        raise InputError(f"angle must be finite, got {x!r}")
    v = ((x % 360.0) + 360.0) % 360.0
    # float rounding can land exactly on 360 for tiny negative inputs
    return 0.0 if v >= 360.0 else v


def abs_sep_deg(a: float, b: float) -> float:
    """Circular distance min(|Δ|, 360 − |Δ|) in [0, 180]."""
    d = abs(float(a) - float(b)) % 360.0
    return 360.0 - d if d > 180.0 else d


def _slug(s: object) -> str:
    if s is None:
        return ""
    return "".join(ch for ch in str(s).lower() if ch.isalnum())


def _suggest(name: str, pool: List[str], n: int = 3) -> List[str]:
    slugs = {_slug(p): p for p in pool}
    hits = difflib.get_close_matches(_slug(name), list(slugs), n=n, cutoff=0.6)
    return [slugs[h] for h in hits]


# ── bodies ───────────────────────────────────────────────────────────────────
class Body(Enum):
    SUN = "Sun"
    MOON = "Moon"
    MERCURY = "Mercury"
    VENUS = "Venus"
    MARS = "Mars"
    JUPITER = "Jupiter"
    SATURN = "Saturn"
    URANUS = "Uranus"
    NEPTUNE = "Neptune"
    PLUTO = "Pluto"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: Union[str, "Body"]) -> "Body":
        if isinstance(name, cls):
            return name
        key = _slug(name)
        for member in cls:
            if _slug(member.value) == key:
                return member
        pool = [m.value for m in cls]
        raise UnknownEntityError("UnknownBody", name, _suggest(str(name), pool), pool)


DEFAULT_EPHEMERIS_BODIES: Tuple[Body, ...] = (
    Body.SUN, Body.JUPITER, Body.SATURN, Body.URANUS, Body.NEPTUNE, Body.PLUTO,
)


# ── zodiac ───────────────────────────────────────────────────────────────────
class ZodiacSign(Enum):
    ARIES = (0, "Aries", "♈")
    TAURUS = (1, "Taurus", "♉")
    GEMINI = (2, "Gemini", "♊")
    CANCER = (3, "Cancer", "♋")
    LEO = (4, "Leo", "♌")
    VIRGO = (5, "Virgo", "♍")
    LIBRA = (6, "Libra", "♎")
    SCORPIO = (7, "Scorpio", "♏")
    SAGITTARIUS = (8, "Sagittarius", "♐")
    CAPRICORN = (9, "Capricorn", "♑")
    AQUARIUS = (10, "Aquarius", "♒")
    PISCES = (11, "Pisces", "♓")

    def __init__(self, ordinal: int, display_name: str, symbol: str):
        self.ordinal = ordinal
        self.display_name = display_name
        self.symbol = symbol

    @property
    def offset_deg(self) -> float:
        return self.ordinal * SIGN_WIDTH_DEG

    @classmethod
    def of(cls, longitude: float) -> "ZodiacSign":
        """Sign containing an ecliptic longitude."""
        idx = int(normalize_angle(longitude) // SIGN_WIDTH_DEG) % 12
        return _SIGNS_BY_ORDINAL[idx]

    @classmethod
    def parse(cls, name: Union[str, "ZodiacSign"]) -> "ZodiacSign":
        if isinstance(name, cls):
            return name
        key = _slug(name)
        for member in cls:
            if _slug(member.display_name) == key:
                return member
        raise ValueError(f"unknown zodiac sign {name!r}")


_SIGNS_BY_ORDINAL: Tuple[ZodiacSign, ...] = tuple(sorted(ZodiacSign, key=lambda s: s.ordinal))


def degree_in_sign(longitude: float) -> float:
    return normalize_angle(longitude) % SIGN_WIDTH_DEG


def format_longitude(longitude: float) -> str:
    """Truncated degrees and minutes within the sign, e.g. 280.12 → 10°♑07'."""
    lam = normalize_angle(longitude)
    sign = ZodiacSign.of(lam)
    total_min = int(math.floor((lam - sign.offset_deg) * 60.0))
    deg, minutes = divmod(total_min, 60)
    return f"{deg}°{sign.symbol}{minutes:02d}'"


# ── house systems ────────────────────────────────────────────────────────────
class HouseSystem(Enum):
    WHOLE_SIGN = ("whole_sign", "Whole Sign", False)
    EQUAL = ("equal", "Equal", False)
    PORPHYRY = ("porphyry", "Porphyry", True)

    def __init__(self, key: str, display_name: str, quadrant: bool):
        self.key = key
        self.display_name = display_name
        self.quadrant = quadrant

    @classmethod
    def parse(cls, name: Union[str, "HouseSystem", None]) -> "HouseSystem":
        if name is None or (isinstance(name, str) and not name.strip()):
            return cls.PORPHYRY
        if isinstance(name, cls):
            return name
        hit = _HOUSE_SYSTEM_ALIASES.get(_slug(name))
        if hit is not None:
            return hit
        pool = [m.key for m in cls]
        raise UnknownEntityError("UnknownHouseSystem", name, _suggest(str(name), pool), pool)


_HOUSE_SYSTEM_ALIASES: Dict[str, HouseSystem] = {
    "wholesign": HouseSystem.WHOLE_SIGN,
    "whole": HouseSystem.WHOLE_SIGN,
    "w": HouseSystem.WHOLE_SIGN,
    "equal": HouseSystem.EQUAL,
    "equalhouse": HouseSystem.EQUAL,
    "e": HouseSystem.EQUAL,
    "porphyry": HouseSystem.PORPHYRY,
    "porphyrius": HouseSystem.PORPHYRY,
    "o": HouseSystem.PORPHYRY,
}


# ── aspects ──────────────────────────────────────────────────────────────────
class Aspect(Enum):
    CONJUNCTION = (0.0, "conjunction", "Conjunction")
    OPPOSITION = (180.0, "opposition", "Opposition")
    TRINE = (120.0, "trine", "Trine")
    SQUARE = (90.0, "square", "Square")
    SEXTILE = (60.0, "sextile", "Sextile")

    def __init__(self, degrees: float, config_key: str, display_name: str):
        self.degrees = degrees
        self.config_key = config_key
        self.display_name = display_name

    @classmethod
    def parse(cls, name: Union[str, "Aspect"]) -> "Aspect":
        if isinstance(name, cls):
            return name
        key = _slug(name)
        for member in cls:
            if member.config_key == key:
                return member
        pool = [m.config_key for m in cls]
        raise UnknownEntityError("UnknownAspect", name, _suggest(str(name), pool), pool)


# Practical majors; trine and opposition share the luminary-friendly 8°.
DEFAULT_ORBS_DEG: Dict[str, float] = {
    "conjunction": 8.0,
    "opposition": 8.0,
    "trine": 8.0,
    "square": 7.0,
    "sextile": 6.0,
}


# ── provenance tags ──────────────────────────────────────────────────────────
class SourceMethod(Enum):
    EPHEMERIS = "ephemeris"
    EPHEMERIS_NEAREST = "ephemeris_nearest"
    KEPLER = "kepler"
    LUNAR_SERIES = "lunar_series"
