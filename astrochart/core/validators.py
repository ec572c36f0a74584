# astrochart/core/validators.py
from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from astrochart.core.constants import Aspect, Body, HouseSystem
from astrochart.core.errors import InputError, UnknownEntityError
from astrochart.core.locations import City, find_city
from astrochart.core.timescales import CalendarDate, jd_to_date

__all__ = [
    "ValidationError",
    "parse_date",
    "parse_time",
    "parse_when",
    "parse_chart_payload",
    "parse_houses_payload",
    "parse_timescales_payload",
    "parse_aspects_payload",
]

# ───────────────────────── errors ─────────────────────────

class ValidationError(InputError):
    """Structured request error; ``.errors()`` lists {loc, msg, type} entries."""

    kind = "ValidationError"

    def __init__(self, details: Union[str, Dict[str, Any], List[Dict[str, Any]]]):
        if isinstance(details, str):
            self._details = [{"loc": [], "msg": details, "type": "value_error"}]
        elif isinstance(details, dict):
            self._details = [details]
        else:
            self._details = list(details) or [{"loc": [], "msg": "validation_error", "type": "value_error"}]
        super().__init__(self._details[0]["msg"], details=self._details)

    def errors(self) -> List[Dict[str, Any]]:
        return list(self._details)


# ───────────────────────── helpers ─────────────────────────

def _err(loc: Union[List[str], str], msg: str, typ: str = "value_error") -> Dict[str, Any]:
    return {"loc": [loc] if isinstance(loc, str) else loc, "msg": msg, "type": typ}

def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None

def _first_key(body: Mapping[str, Any], *keys: str) -> Tuple[Optional[str], Any]:
    for k in keys:
        if k in body and body[k] is not None:
            return k, body[k]
    return None, None

def _is_leap(y: int) -> bool:
    return y % 4 == 0 and (y % 100 != 0 or y % 400 == 0)

_MONTH_DAYS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


# ───────────────────────── atomic parsers ─────────────────────────

_DATE_RE = re.compile(r"^\s*(?P<y>-?\d{1,5})-(?P<m>\d{1,2})-(?P<d>\d{1,2})\s*$")
_TIME_RE = re.compile(r"^\s*(?P<h>\d{1,2}):(?P<m>\d{2})(?::(?P<s>\d{2})(?:\.(?P<f>\d+))?)?\s*$")

def parse_date(s: Any, loc: str = "date") -> Tuple[int, int, int]:
    """'YYYY-MM-DD' (proleptic Gregorian; negative years allowed)."""
    m = _DATE_RE.match(s) if isinstance(s, str) else None
    if not m:
        raise ValidationError(_err(loc, "must be 'YYYY-MM-DD'"))
    y, mo, d = int(m.group("y")), int(m.group("m")), int(m.group("d"))
    if not 1 <= mo <= 12:
        raise ValidationError(_err(loc, "month must be 1..12"))
    dim = 29 if (mo == 2 and _is_leap(y)) else _MONTH_DAYS[mo - 1]
    if not 1 <= d <= dim:
        raise ValidationError(_err(loc, f"day must be 1..{dim} for {y:04d}-{mo:02d}"))
    return y, mo, d

def parse_time(s: Any, loc: str = "time") -> Tuple[int, int, float]:
    """
    Accept 'HH:MM', 'HH:MM:SS' or 'HH:MM:SS.frac'. 24:00 is allowed only
    exactly (it rolls into the next day through the JD arithmetic).
    """
    m = _TIME_RE.match(s) if isinstance(s, str) else None
    if not m:
        raise ValidationError(_err(loc, "must be 'HH:MM' or 'HH:MM:SS[.frac]'"))
    hh, mm = int(m.group("h")), int(m.group("m"))
    ss = float(f"{m.group('s') or '0'}.{m.group('f') or '0'}")
    if not (0 <= hh <= 24 and 0 <= mm <= 59 and 0 <= ss < 60):
        raise ValidationError(_err(loc, "time fields out of range"))
    if hh == 24 and (mm or ss):
        raise ValidationError(_err(loc, "24:00 is only allowed exactly"))
    return hh, mm, ss

def parse_when(body: Mapping[str, Any]) -> Union[float, CalendarDate]:
    """Either ``jd`` (UTC) or ``date`` + optional ``time`` (default 12:00)."""
    if body.get("jd") is not None:
        jd = _as_float(body.get("jd"))
        if jd is None:
            raise ValidationError(_err("jd", "must be a finite number"))
        return jd
    if body.get("date") is None:
        raise ValidationError(_err("date", "provide 'date' (YYYY-MM-DD) or 'jd'", "missing"))
    y, mo, d = parse_date(body.get("date"))
    hh, mm, ss = parse_time(body.get("time") or "12:00")
    return CalendarDate(y, mo, d, hh, mm, ss)

_OFFSET_KEYS = ("utc_offset_hours", "utc_offset", "tz_offset_hours")

def _parse_offset(body: Mapping[str, Any], errs: List[Dict[str, Any]]) -> float:
    key, raw = _first_key(body, *_OFFSET_KEYS)
    if key is None:
        return 0.0
    v = _as_float(raw)
    if v is None or not -14.0 <= v <= 14.0:
        errs.append(_err(key, "must be a number of hours within [-14, 14]"))
        return 0.0
    return v

def _parse_location(body: Mapping[str, Any], errs: List[Dict[str, Any]]) -> Tuple[Dict[str, Any], Optional[City]]:
    out: Dict[str, Any] = {}
    city_name = body.get("city")
    lat_key, lat_raw = _first_key(body, "latitude", "lat")
    lon_key, lon_raw = _first_key(body, "longitude", "lon")
    if city_name is not None and lat_key is None and lon_key is None:
        try:
            city = find_city(str(city_name))
        except UnknownEntityError as e:
            errs.append({"loc": ["city"], "msg": e.message, "type": "unknown_location", "suggestions": e.suggestions})
            return out, None
        out.update(
            latitude=city.latitude,
            longitude=city.longitude,
            city={**city.to_dict(), "formatted": city.formatted},
        )
        return out, city

    lat = _as_float(lat_raw)
    lon = _as_float(lon_raw)
    if lat is None or not -90.0 <= lat <= 90.0:
        errs.append(_err(lat_key or "latitude", "required; number within [-90, 90]"))
    if lon is None or not -180.0 <= lon <= 360.0:
        errs.append(_err(lon_key or "longitude", "required; number within [-180, 360] (east positive)"))
    out.update(latitude=lat, longitude=lon)
    return out, None

def _zone_instant(when: Union[float, CalendarDate]) -> datetime:
    """
    Datetime to ask a city's zone about: the local wall clock for a calendar
    date, the UTC instant for a bare JD. Years are clamped to what datetime
    can hold; the offset is then the zone's nearest known rule.
    """
    if isinstance(when, CalendarDate):
        y, mo, d, hh, mm, ss = when
        tz = None
    else:
        y, mo, d, hh, mm, ss = jd_to_date(when)
        tz = timezone.utc
    y = min(max(int(y), 1), 9998)
    # days/hours go through timedelta so 24:00 and Feb 29 of a clamped year roll over
    local = datetime(y, int(mo), 1) + timedelta(days=int(d) - 1, hours=hh, minutes=mm, seconds=float(ss))
    return local.replace(tzinfo=tz)

def _parse_orbs(raw: Any, errs: List[Dict[str, Any]]) -> Any:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        out: Dict[str, float] = {}
        for k, v in raw.items():
            try:
                key = Aspect.parse(k).config_key
            except UnknownEntityError as e:
                errs.append(_err(["orbs", str(k)], e.message, "unknown_aspect"))
                continue
            x = _as_float(v)
            if x is None or x < 0:
                errs.append(_err(["orbs", str(k)], "must be a number ≥ 0"))
                continue
            out[key] = x
        return out
    x = _as_float(raw)
    if x is None or x < 0:
        errs.append(_err("orbs", "must be a number ≥ 0 or a mapping of aspect → orb"))
        return None
    return x


# ───────────────────────── payload parsers ─────────────────────────

def parse_chart_payload(body: Any) -> Dict[str, Any]:
    """
    Validate a /api/chart body. Returns kwargs for ChartComposer.compute_chart
    (``when``, ``latitude``, ``longitude``, ``house_system``,
    ``utc_offset_hours``, ``bodies``, ``orbs``, ``elevation_m``) plus ``city``
    when resolved from the table.
    """
    if not isinstance(body, Mapping):
        raise ValidationError("JSON body must be an object")
    errs: List[Dict[str, Any]] = []
    out: Dict[str, Any] = {}

    try:
        out["when"] = parse_when(body)
    except ValidationError as e:
        errs.extend(e.errors())
    out["utc_offset_hours"] = _parse_offset(body, errs)
    loc, city = _parse_location(body, errs)
    out.update(loc)
    # a city without an explicit offset supplies its own zone offset
    if city is not None and _first_key(body, *_OFFSET_KEYS)[0] is None and "when" in out:
        off = city.utc_offset_hours(_zone_instant(out["when"]))
        out["utc_offset_hours"] = off
        out["city"]["utc_offset_hours"] = off

    bodies = body.get("bodies")
    if bodies is not None and (not isinstance(bodies, list) or not bodies):
        errs.append(_err("bodies", "must be a non-empty list of body names"))

    out["orbs"] = _parse_orbs(body.get("orbs"), errs)

    elev = body.get("elevation_m")
    if elev is not None:
        x = _as_float(elev)
        if x is None or not -500.0 <= x <= 10000.0:
            errs.append(_err("elevation_m", "must be a number within [-500, 10000] metres"))
        else:
            out["elevation_m"] = x

    if errs:
        raise ValidationError(errs)

    # unknown names surface as UnknownBody / UnknownHouseSystem with suggestions
    if body.get("house_system") is not None:
        out["house_system"] = HouseSystem.parse(body.get("house_system"))
    if bodies is not None:
        out["bodies"] = [Body.parse(b) for b in bodies]
    return out

def parse_houses_payload(body: Any) -> Dict[str, Any]:
    out = parse_chart_payload(body)
    for k in ("bodies", "orbs", "elevation_m"):
        out.pop(k, None)
    return out

def parse_timescales_payload(body: Any) -> Dict[str, Any]:
    if not isinstance(body, Mapping):
        raise ValidationError("JSON body must be an object")
    errs: List[Dict[str, Any]] = []
    out: Dict[str, Any] = {}
    try:
        out["when"] = parse_when(body)
    except ValidationError as e:
        errs.extend(e.errors())
    out["utc_offset_hours"] = _parse_offset(body, errs)
    lon = body.get("longitude")
    if lon is not None:
        x = _as_float(lon)
        if x is None:
            errs.append(_err("longitude", "must be a finite number"))
        out["longitude"] = x
    if errs:
        raise ValidationError(errs)
    return out

def parse_aspects_payload(body: Any) -> Dict[str, Any]:
    """``{"longitudes": {name: deg, ...}, "orbs": number | {aspect: orb}}``."""
    if not isinstance(body, Mapping):
        raise ValidationError("JSON body must be an object")
    errs: List[Dict[str, Any]] = []
    raw = body.get("longitudes")
    lons: Dict[str, float] = {}
    if not isinstance(raw, Mapping) or len(raw) < 2:
        errs.append(_err("longitudes", "must map at least two names to longitudes"))
    else:
        for k, v in raw.items():
            x = _as_float(v)
            if x is None:
                errs.append(_err(["longitudes", str(k)], "must be a finite number"))
            else:
                lons[str(k)] = x
    orbs = _parse_orbs(body.get("orbs"), errs)
    if errs:
        raise ValidationError(errs)
    return {"longitudes": lons, "orbs": orbs}
