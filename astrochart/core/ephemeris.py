# astrochart/core/ephemeris.py
"""
Sampled-ephemeris table: load, cache and interpolate per-body longitudes.

Input records (JSON list or CSV with a header row)::

    {"JulianDay": 2451545.0, "Sign": "Capricorn", "Deg": 10.37, "Date_UT": "2000-01-01 12:00"}

``JD`` is accepted as an alias of ``JulianDay``. Absolute longitude is
``sign offset + Deg``. Records with a non-finite JD/degree, an unparsable
value or an unknown sign are discarded and counted in the LoadReport.

Files live in ``<data_dir>/ephemeris_<body>.json`` (or ``.csv``).

Caching
-------
EphemerisCache memoizes one immutable BodySeries per body. First access to
a body is serialized by a per-body lock (double-checked); reads after that
take no lock. A table owns its cache unless one is passed in, so several
tables/composers may share it by reference.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
import threading
from bisect import bisect_right
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from astrochart.core.constants import Body, ZodiacSign, normalize_angle
from astrochart.core.errors import AstroError, RangeError
from astrochart.core.timescales import jd_to_date

__all__ = [
    "SIGN_OFFSETS",
    "EphemerisSample",
    "LoadReport",
    "BodySeries",
    "EphemerisLookup",
    "Availability",
    "EphemerisCache",
    "EphemerisTable",
    "parse_records",
    "read_records",
]

log = logging.getLogger(__name__)

SIGN_OFFSETS: Dict[str, float] = {s.display_name: s.offset_deg for s in ZodiacSign}

_JD_KEYS = ("JulianDay", "JD", "jd", "julian_day")
_SIGN_KEYS = ("Sign", "sign")
_DEG_KEYS = ("Deg", "deg", "degree_in_sign")
_DATE_KEYS = ("Date_UT", "date", "Date")


# ─────────────────────────────────────────────────────────────────────────────
# Data types
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class EphemerisSample:
    jd: float
    longitude: float            # [0, 360)
    sign: ZodiacSign
    degree_in_sign: float
    source_date: Optional[str] = None


@dataclass(frozen=True)
class LoadReport:
    body: Body
    source: Optional[str]       # file path, "<memory>" or None when nothing was found
    total: int = 0
    kept: int = 0
    discarded: int = 0
    duplicates: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["body"] = self.body.value
        return out


@dataclass(frozen=True)
class BodySeries:
    body: Body
    samples: Tuple[EphemerisSample, ...]
    report: LoadReport
    jds: Tuple[float, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "jds", tuple(s.jd for s in self.samples))

    @property
    def empty(self) -> bool:
        return not self.samples

    @property
    def min_jd(self) -> Optional[float]:
        return self.samples[0].jd if self.samples else None

    @property
    def max_jd(self) -> Optional[float]:
        return self.samples[-1].jd if self.samples else None

    @property
    def min_date(self) -> Optional[str]:
        return _display_date(self.samples[0]) if self.samples else None

    @property
    def max_date(self) -> Optional[str]:
        return _display_date(self.samples[-1]) if self.samples else None

    def covers(self, jd: float) -> bool:
        return bool(self.samples) and self.samples[0].jd <= jd <= self.samples[-1].jd


@dataclass(frozen=True)
class EphemerisLookup:
    body: Body
    jd: float
    longitude: float
    interpolated: bool
    before_jd: Optional[float] = None
    after_jd: Optional[float] = None

    @property
    def sign(self) -> ZodiacSign:
        return ZodiacSign.of(self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["body"] = self.body.value
        out["sign"] = self.sign.display_name
        return out


@dataclass(frozen=True)
class Availability:
    available: bool
    reference_body: Body
    min_jd: Optional[float] = None
    max_jd: Optional[float] = None
    min_date: Optional[str] = None
    max_date: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["reference_body"] = self.reference_body.value
        return out


def _display_date(s: EphemerisSample) -> str:
    if s.source_date:
        return s.source_date
    return jd_to_date(s.jd).isoformat()


# ─────────────────────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────────────────────
def _first(rec: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for k in keys:
        if k in rec and rec[k] not in (None, ""):
            return rec[k]
    return None


def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(str(v).strip()) if isinstance(v, str) else float(v)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


def _sample_from(rec: Mapping[str, Any]) -> Optional[EphemerisSample]:
    if not isinstance(rec, Mapping):
        return None
    jd = _as_float(_first(rec, _JD_KEYS))
    deg = _as_float(_first(rec, _DEG_KEYS))
    sign_raw = _first(rec, _SIGN_KEYS)
    if jd is None or deg is None or sign_raw is None:
        return None
    if not 0.0 <= deg <= 30.0:
        return None
    try:
        sign = ZodiacSign.parse(str(sign_raw))
    except ValueError:
        return None
    lon = normalize_angle(sign.offset_deg + deg)
    date = _first(rec, _DATE_KEYS)
    return EphemerisSample(
        jd=jd,
        longitude=lon,
        sign=ZodiacSign.of(lon),
        degree_in_sign=lon % 30.0,
        source_date=str(date).strip() if date is not None else None,
    )


def parse_records(
    records: Iterable[Mapping[str, Any]],
) -> Tuple[Tuple[EphemerisSample, ...], int, int, int]:
    """
    Records → (samples sorted by jd and deduplicated, total, discarded, duplicates).

    On duplicate JDs the first record in input order wins.
    """
    total = 0
    parsed: List[EphemerisSample] = []
    for rec in records:
        total += 1
        s = _sample_from(rec)
        if s is not None:
            parsed.append(s)
    parsed.sort(key=lambda s: s.jd)   # stable: input order kept among equal jds

    out: List[EphemerisSample] = []
    dups = 0
    for s in parsed:
        if out and out[-1].jd == s.jd:
            dups += 1
            continue
        out.append(s)
    return tuple(out), total, total - len(parsed), dups


def read_records(path: str) -> List[Dict[str, Any]]:
    """Read a JSON list (or {"records": [...]}) or a CSV file with a header row."""
    if path.lower().endswith(".csv"):
        with open(path, "r", encoding="utf-8", newline="") as f:
            return [dict(row) for row in csv.DictReader(f)]
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise AstroError(f"ephemeris file {path} is not valid JSON: {e}", kind="EphemerisDataError", path=path) from e
    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list):
        raise AstroError(f"ephemeris file {path} must hold a list of records", kind="EphemerisDataError", path=path)
    return data


# ─────────────────────────────────────────────────────────────────────────────
# Cache
# ─────────────────────────────────────────────────────────────────────────────
class EphemerisCache:
    """Per-body memo; immutable series after first successful load."""

    def __init__(self) -> None:
        self._series: Dict[Body, BodySeries] = {}
        self._locks: Dict[Body, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, body: Body) -> threading.Lock:
        lock = self._locks.get(body)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.get(body)
                if lock is None:
                    lock = threading.Lock()
                    self._locks[body] = lock
        return lock

    def get(self, body: Body) -> Optional[BodySeries]:
        return self._series.get(body)

    def get_or_load(self, body: Body, loader: Callable[[Body], BodySeries]) -> BodySeries:
        series = self._series.get(body)
        if series is not None:
            return series
        with self._lock_for(body):
            series = self._series.get(body)
            if series is None:
                series = loader(body)
                self._series[body] = series
        return series

    def put(self, series: BodySeries) -> None:
        with self._lock_for(series.body):
            self._series[series.body] = series

    def clear(self) -> None:
        with self._registry_lock:
            self._series.clear()

    def __contains__(self, body: object) -> bool:
        return body in self._series

    def __len__(self) -> int:
        return len(self._series)


# ─────────────────────────────────────────────────────────────────────────────
# Table
# ─────────────────────────────────────────────────────────────────────────────
BodyLike = Union[Body, str]


class EphemerisTable:
    def __init__(
        self,
        data_dir: Optional[str] = None,
        *,
        cache: Optional[EphemerisCache] = None,
        records: Optional[Mapping[BodyLike, Iterable[Mapping[str, Any]]]] = None,
    ):
        self.data_dir = data_dir
        self.cache = cache if cache is not None else EphemerisCache()
        for body, recs in (records or {}).items():
            self.register(body, recs)

    # ── loading ──────────────────────────────────────────────────────────────
    def _candidate_paths(self, body: Body) -> List[str]:
        if not self.data_dir:
            return []
        stem = f"ephemeris_{body.value.lower().replace(' ', '_')}"
        return [os.path.join(self.data_dir, stem + ext) for ext in (".json", ".csv")]

    def _load_from_disk(self, body: Body) -> BodySeries:
        for path in self._candidate_paths(body):
            if os.path.isfile(path):
                samples, total, discarded, dups = parse_records(read_records(path))
                report = LoadReport(body, path, total, len(samples), discarded, dups)
                log.debug(
                    "ephemeris %s: loaded %d/%d samples from %s (discarded=%d duplicates=%d)",
                    body.value, len(samples), total, path, discarded, dups,
                )
                return BodySeries(body, samples, report)
        reason = f"no ephemeris file for {body.value}" + (f" in {self.data_dir}" if self.data_dir else "")
        log.debug("ephemeris %s: %s", body.value, reason)
        return BodySeries(body, (), LoadReport(body, None, reason=reason))

    def load(self, body: BodyLike) -> BodySeries:
        """Idempotent; the first call per body reads disk, later calls hit the cache."""
        b = Body.parse(body)
        return self.cache.get_or_load(b, self._load_from_disk)

    def register(self, body: BodyLike, records: Iterable[Mapping[str, Any]]) -> LoadReport:
        """Install in-memory records for a body (replaces any cached series)."""
        b = Body.parse(body)
        samples, total, discarded, dups = parse_records(records)
        report = LoadReport(b, "<memory>", total, len(samples), discarded, dups)
        self.cache.put(BodySeries(b, samples, report))
        return report

    # ── queries ──────────────────────────────────────────────────────────────
    def covers(self, body: BodyLike, jd: float) -> bool:
        return self.load(body).covers(float(jd))

    def lookup(self, body: BodyLike, jd: float) -> EphemerisLookup:
        """
        Interpolated longitude of ``body`` at ``jd``.

        Raises RangeError (with min/max bounds) when ``jd`` is outside the
        table or the body has no data.
        """
        series = self.load(body)
        b = series.body
        jd = float(jd)
        if series.empty:
            raise RangeError(
                f"ephemeris unavailable for {b.value}: {series.report.reason or 'no samples'}",
                body=b.value,
                jd=jd,
            )
        if not series.covers(jd):
            raise RangeError(
                f"jd {jd} outside ephemeris range for {b.value} [{series.min_jd}, {series.max_jd}]",
                body=b.value,
                jd=jd,
                min_jd=series.min_jd,
                max_jd=series.max_jd,
                min_date=series.min_date,
                max_date=series.max_date,
            )

        samples = series.samples
        i = bisect_right(series.jds, jd)
        lo, hi = (i - 1, i) if i < len(samples) else (i - 2, i - 1)
        if lo < 0 or samples[lo].jd == samples[hi].jd or not samples[lo].jd <= jd <= samples[hi].jd:
            nearest = min(samples, key=lambda s: abs(s.jd - jd))
            return EphemerisLookup(b, jd, nearest.longitude, False)

        before, after = samples[lo], samples[hi]
        l1, l2 = before.longitude, after.longitude
        if abs(l2 - l1) > 180.0:
            if l2 < l1:
                l2 += 360.0
            else:
                l1 += 360.0
        frac = (jd - before.jd) / (after.jd - before.jd)
        lon = normalize_angle(l1 + (l2 - l1) * frac)
        return EphemerisLookup(b, jd, lon, True, before.jd, after.jd)

    def lookup_many(self, bodies: Iterable[BodyLike], jd: float) -> Dict[Body, EphemerisLookup]:
        """Lookups for every body the table covers at ``jd``; uncovered bodies are omitted."""
        out: Dict[Body, EphemerisLookup] = {}
        for body in bodies:
            b = Body.parse(body)
            if self.covers(b, jd):
                out[b] = self.lookup(b, jd)
        return out

    def availability(self, jd: float, reference: BodyLike = Body.SUN) -> Availability:
        series = self.load(reference)
        if series.empty:
            return Availability(False, series.body, reason=series.report.reason or "no ephemeris data loaded")
        return Availability(
            available=series.covers(float(jd)),
            reference_body=series.body,
            min_jd=series.min_jd,
            max_jd=series.max_jd,
            min_date=series.min_date,
            max_date=series.max_date,
        )
