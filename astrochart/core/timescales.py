# astrochart/core/timescales.py
# -----------------------------------------------------------------------------
# Time reference: calendar ↔ JD, ΔT, UTC ↔ TT, sidereal time, obliquity
#
# Public API:
#   date_to_jd(y, m, d, h=12, mi=0, s=0)       -> JD (UTC), proleptic Gregorian
#   jd_to_date(jd)                              -> CalendarDate
#   delta_t(decimal_year)                       -> seconds (Espenak–Meeus)
#   utc_to_tt / tt_to_utc                       -> jd ± ΔT/86400
#   gmst(jd) / lst(jd, east_lon)                -> degrees in [0, 360)
#   obliquity(jd)                               -> mean obliquity, degrees
#   local_to_utc(y, m, d, h, mi, s, offset_h)   -> CalendarDate (UTC)
#   build_time_instant(when, utc_offset_hours)  -> TimeInstant
#
# Guarantees:
#   • Pure functions; only non-finite input (or a month outside 1..12) raises.
#   • date_to_jd and jd_to_date are both proleptic Gregorian, so they invert
#     each other for any date the float JD can resolve.
#   • Every angle returned passes through normalize_angle.
# -----------------------------------------------------------------------------

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, NamedTuple, Sequence, Union

from astrochart.core.constants import normalize_angle
from astrochart.core.errors import InputError

__all__ = [
    "J2000_JD",
    "DAYS_PER_CENTURY",
    "SECONDS_PER_DAY",
    "CalendarDate",
    "TimeInstant",
    "date_to_jd",
    "jd_to_date",
    "julian_centuries",
    "days_since_j2000",
    "decimal_year",
    "jd_to_decimal_year",
    "delta_t",
    "utc_to_tt",
    "tt_to_utc",
    "gmst",
    "lst",
    "obliquity",
    "local_to_utc",
    "build_time_instant",
    "normalize_angle",
]

J2000_JD: float = 2451545.0
DAYS_PER_CENTURY: float = 36525.0
SECONDS_PER_DAY: float = 86400.0

# ───────────────────────────── Types ─────────────────────────────


class CalendarDate(NamedTuple):
    year: int
    month: int
    day: int
    hour: int = 12
    minute: int = 0
    second: float = 0.0

    def isoformat(self) -> str:
        whole = int(self.second)
        return (
            f"{self.year:04d}-{self.month:02d}-{self.day:02d}T"
            f"{self.hour:02d}:{self.minute:02d}:{whole:02d}"
        )


@dataclass(frozen=True)
class TimeInstant:
    jd_utc: float
    jd_tt: float
    delta_t_seconds: float      # TT − UTC [s]
    decimal_year: float         # epoch used to evaluate ΔT
    utc_offset_hours: float = 0.0

    @classmethod
    def from_jd_utc(cls, jd_utc: float, *, utc_offset_hours: float = 0.0) -> "TimeInstant":
        jd_utc = _finite(jd_utc, "jd_utc")
        year = jd_to_decimal_year(jd_utc)
        dt = delta_t(year)
        return cls(
            jd_utc=jd_utc,
            jd_tt=jd_utc + dt / SECONDS_PER_DAY,
            delta_t_seconds=dt,
            decimal_year=year,
            utc_offset_hours=float(utc_offset_hours),
        )

    @classmethod
    def from_calendar(
        cls,
        year: int,
        month: int,
        day: int,
        hour: float = 12,
        minute: float = 0,
        second: float = 0,
        *,
        utc_offset_hours: float = 0.0,
    ) -> "TimeInstant":
        """Local civil time + caller-supplied UTC offset → instant."""
        offset = _finite(utc_offset_hours, "utc_offset_hours")
        jd_local = date_to_jd(year, month, day, hour, minute, second)
        jd_utc = jd_local - offset / 24.0
        utc = jd_to_date(jd_utc)
        yr = decimal_year(utc.year, utc.month)
        dt = delta_t(yr)
        return cls(
            jd_utc=jd_utc,
            jd_tt=jd_utc + dt / SECONDS_PER_DAY,
            delta_t_seconds=dt,
            decimal_year=yr,
            utc_offset_hours=offset,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["utc"] = jd_to_date(self.jd_utc).isoformat() + "Z"
        return out


# ───────────────────────────── Helpers ─────────────────────────────

def _finite(x: Any, name: str, kind: str = "InvalidInput") -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        raise InputError(f"{name} must be a number, got {x!r}", kind=kind, field=name) from None
    if not math.isfinite(v):
        raise InputError(f"{name} must be finite, got {v!r}", kind=kind, field=name)
    return v


def julian_centuries(jd: float) -> float:
    """T = (jd − J2000) / 36525."""
    return (float(jd) - J2000_JD) / DAYS_PER_CENTURY


def days_since_j2000(jd: float) -> float:
    return float(jd) - J2000_JD


# ───────────────────────────── Calendar ↔ JD ─────────────────────────────

def date_to_jd(
    year: float,
    month: float,
    day: float,
    hour: float = 12,
    minute: float = 0,
    second: float = 0,
) -> float:
    """
    Meeus (ch. 7) Gregorian calendar → Julian Day.

    Hours/minutes/seconds may overflow their usual ranges; the excess simply
    rolls into the day fraction.
    """
    y = _finite(year, "year", "InvalidDate")
    m = _finite(month, "month", "InvalidDate")
    d = _finite(day, "day", "InvalidDate")
    h = _finite(hour, "hour", "InvalidDate")
    mi = _finite(minute, "minute", "InvalidDate")
    s = _finite(second, "second", "InvalidDate")
    if not (1 <= m <= 12) or m != int(m):
        raise InputError(f"month must be an integer in 1..12, got {month!r}", kind="InvalidDate", field="month")

    day_frac = d + (h + (mi + s / 60.0) / 60.0) / 24.0
    if m <= 2:
        y -= 1
        m += 12
    a = math.floor(y / 100.0)
    b = 2 - a + math.floor(a / 4.0)
    return math.floor(365.25 * (y + 4716)) + math.floor(30.6001 * (m + 1)) + day_frac + b - 1524.5


def jd_to_date(jd: float) -> CalendarDate:
    """
    Inverse of date_to_jd (proleptic Gregorian throughout).

    The day fraction is rounded to the millisecond first so that a value like
    23:59:59.9999 carries into the next day instead of truncating.
    """
    jd = _finite(jd, "jd", "InvalidDate")
    z = math.floor(jd + 0.5)
    f = (jd + 0.5) - z
    secs = round(f * SECONDS_PER_DAY, 3)
    if secs >= SECONDS_PER_DAY:
        z += 1
        secs -= SECONDS_PER_DAY

    alpha = math.floor((z - 1867216.25) / 36524.25)
    a = z + 1 + alpha - math.floor(alpha / 4.0)
    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)

    day = int(b - d - math.floor(30.6001 * e))
    month = int(e - 1 if e < 14 else e - 13)
    year = int(c - 4716 if month > 2 else c - 4715)

    hour = int(secs // 3600)
    minute = int((secs - hour * 3600) // 60)
    second = round(secs - hour * 3600 - minute * 60, 3)
    return CalendarDate(year, month, day, hour, minute, second)


def decimal_year(year: int, month: int = 6) -> float:
    """Epoch convention for ΔT: mid-month, y + (m − 0.5)/12."""
    return float(year) + (float(month) - 0.5) / 12.0


def jd_to_decimal_year(jd: float) -> float:
    return 2000.0 + (float(jd) - J2000_JD) / 365.25


# ───────────────────────────── ΔT (Espenak–Meeus) ─────────────────────────────

def _poly(t: float, coeffs: Sequence[float]) -> float:
    acc = 0.0
    for c in reversed(coeffs):
        acc = acc * t + c
    return acc


def delta_t(year: float) -> float:
    """
    ΔT = TT − UT in seconds for a decimal year, Espenak & Meeus (2006)
    piecewise polynomials, 15 segments.
    """
    y = _finite(year, "year")

    if y < -500:
        u = (y - 1820.0) / 100.0
        return -20.0 + 32.0 * u * u
    if y < 500:
        u = y / 100.0
        return _poly(u, (10583.6, -1014.41, 33.78311, -5.952053, -0.1798452, 0.022174192, 0.0090316521))
    if y < 1600:
        u = (y - 1000.0) / 100.0
        return _poly(u, (1574.2, -556.01, 71.23472, 0.319781, -0.8503463, -0.005050998, 0.0083572073))
    if y < 1700:
        t = y - 1600.0
        return 120.0 - 0.9808 * t - 0.01532 * t ** 2 + t ** 3 / 7129.0
    if y < 1800:
        t = y - 1700.0
        return 8.83 + 0.1603 * t - 0.0059285 * t ** 2 + 0.00013336 * t ** 3 - t ** 4 / 1174000.0
    if y < 1860:
        t = y - 1800.0
        return _poly(t, (13.72, -0.332447, 0.0068612, 0.0041116, -0.00037436,
                         0.0000121272, -0.0000001699, 0.000000000875))
    if y < 1900:
        t = y - 1860.0
        return 7.62 + 0.5737 * t - 0.251754 * t ** 2 + 0.01680668 * t ** 3 \
            - 0.0004473624 * t ** 4 + t ** 5 / 233174.0
    if y < 1920:
        t = y - 1900.0
        return _poly(t, (-2.79, 1.494119, -0.0598939, 0.0061966, -0.000197))
    if y < 1941:
        t = y - 1920.0
        return _poly(t, (21.20, 0.84493, -0.076100, 0.0020936))
    if y < 1961:
        t = y - 1950.0
        return 29.07 + 0.407 * t - t ** 2 / 233.0 + t ** 3 / 2547.0
    if y < 1986:
        t = y - 1975.0
        return 45.45 + 1.067 * t - t ** 2 / 260.0 - t ** 3 / 718.0
    if y < 2005:
        t = y - 2000.0
        return _poly(t, (63.86, 0.3345, -0.060374, 0.0017275, 0.000651814, 0.00002373599))
    if y < 2050:
        t = y - 2000.0
        return 62.92 + 0.32217 * t + 0.005589 * t ** 2
    if y < 2150:
        u = (y - 1820.0) / 100.0
        return -20.0 + 32.0 * u * u - 0.5628 * (2150.0 - y)
    u = (y - 1820.0) / 100.0
    return -20.0 + 32.0 * u * u


def utc_to_tt(jd_utc: float, year: float | None = None) -> float:
    """jd_utc + ΔT/86400; ΔT epoch defaults to the JD's own decimal year."""
    jd_utc = _finite(jd_utc, "jd_utc")
    yr = jd_to_decimal_year(jd_utc) if year is None else year
    return jd_utc + delta_t(yr) / SECONDS_PER_DAY


def tt_to_utc(jd_tt: float, year: float | None = None) -> float:
    jd_tt = _finite(jd_tt, "jd_tt")
    yr = jd_to_decimal_year(jd_tt) if year is None else year
    return jd_tt - delta_t(yr) / SECONDS_PER_DAY


# ───────────────────────────── Sidereal time & obliquity ─────────────────────────────

def gmst(jd: float) -> float:
    """Greenwich mean sidereal time (degrees) for a UT Julian Day."""
    jd = _finite(jd, "jd")
    d = jd - J2000_JD
    t = d / DAYS_PER_CENTURY
    theta = 280.46061837 + 360.98564736629 * d + 0.000387933 * t * t - t ** 3 / 38710000.0
    return normalize_angle(theta)


def lst(jd: float, east_longitude: float) -> float:
    """Local sidereal time (degrees); longitude positive east."""
    return normalize_angle(gmst(jd) + _finite(east_longitude, "longitude"))


# Laskar (1986), arcseconds, in U = T/100 (valid |U| < 1)
_OBLIQUITY_COEFFS = (84381.448, -4680.93, -1.55, 1999.25, -51.38, -249.67)


def obliquity(jd: float) -> float:
    """Mean obliquity of the ecliptic in degrees (obliquity(J2000) = 23.4392911°)."""
    u = julian_centuries(_finite(jd, "jd")) / 100.0
    return _poly(u, _OBLIQUITY_COEFFS) / 3600.0


# ───────────────────────────── Civil time ─────────────────────────────

def local_to_utc(
    year: int,
    month: int,
    day: int,
    hour: float,
    minute: float,
    second: float,
    utc_offset_hours: float,
) -> CalendarDate:
    """
    Local civil time → UTC calendar date. DST is the caller's responsibility:
    pass the offset actually in force (e.g. -4 for EDT, -5 for EST).
    """
    offset = _finite(utc_offset_hours, "utc_offset_hours")
    return jd_to_date(date_to_jd(year, month, day, hour, minute, second) - offset / 24.0)


Moment = Union[CalendarDate, Sequence[float], datetime, date, float, int, TimeInstant]


def build_time_instant(when: Moment, utc_offset_hours: float = 0.0) -> TimeInstant:
    """
    Normalize the accepted input shapes into a TimeInstant.

    - TimeInstant: returned unchanged
    - number: JD in UTC (the offset is recorded but not applied)
    - CalendarDate / (y, m, d[, h, mi, s]): local civil time at ``utc_offset_hours``
    - naive datetime/date: local civil time at ``utc_offset_hours``
    - aware datetime: converted with its own tzinfo; ``utc_offset_hours`` ignored
    """
    if isinstance(when, TimeInstant):
        return when
    if isinstance(when, bool):
        raise InputError("boolean is not a valid time input", kind="InvalidDate")
    if isinstance(when, (int, float)):
        return TimeInstant.from_jd_utc(float(when), utc_offset_hours=utc_offset_hours)
    if isinstance(when, datetime):
        if when.tzinfo is not None and when.utcoffset() is not None:
            utc = when.astimezone(timezone.utc)
            inst = TimeInstant.from_calendar(
                utc.year, utc.month, utc.day, utc.hour, utc.minute,
                utc.second + utc.microsecond / 1e6,
            )
            return replace(inst, utc_offset_hours=when.utcoffset() / timedelta(hours=1))
        return TimeInstant.from_calendar(
            when.year, when.month, when.day, when.hour, when.minute,
            when.second + when.microsecond / 1e6,
            utc_offset_hours=utc_offset_hours,
        )
    if isinstance(when, date):
        return TimeInstant.from_calendar(when.year, when.month, when.day, 0, 0, 0, utc_offset_hours=utc_offset_hours)
    if isinstance(when, (tuple, list)):
        if not 3 <= len(when) <= 6:
            raise InputError(
                f"calendar tuple needs 3..6 fields (y, m, d[, h, mi, s]), got {len(when)}",
                kind="InvalidDate",
            )
        return TimeInstant.from_calendar(*when, utc_offset_hours=utc_offset_hours)
    raise InputError(f"unsupported time input {type(when).__name__}", kind="InvalidDate")
