# astrochart/api/routes.py
"""
astrochart — API routes
- Chart (positions + houses + aspects)
- Houses / angles only
- Timescales (JD UTC/TT, ΔT, sidereal time, obliquity)
- Aspects for arbitrary longitudes
- Ephemeris coverage, city table, enumerations

Domain errors (AstroError and subclasses) propagate to the app-level
handlers in astrochart.main, which turn them into JSON with a stable
``error`` kind.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from astrochart.core.aspects import compute_aspects
from astrochart.core.chart import ChartComposer, default_composer
from astrochart.core.constants import Aspect, Body, HouseSystem, DEFAULT_ORBS_DEG
from astrochart.core.houses import compute_houses
from astrochart.core.locations import MAJOR_CITIES, search_cities
from astrochart.core.timescales import build_time_instant, gmst, lst, obliquity
from astrochart.core.validators import (
    ValidationError,
    parse_aspects_payload,
    parse_chart_payload,
    parse_houses_payload,
    parse_timescales_payload,
)
from astrochart.utils.metrics import MET_CHARTS, record_chart_warnings
from astrochart.version import VERSION

log = logging.getLogger(__name__)
api = Blueprint("api", __name__)


# ───────────────────────── helpers ─────────────────────────
def _body_json() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def _composer() -> ChartComposer:
    comp = current_app.extensions.get("astrochart.composer")
    return comp if comp is not None else default_composer()


def _meta(**extra: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {"version": VERSION}
    out.update({k: v for k, v in extra.items() if v is not None})
    return out


# ───────────────────────── endpoints ─────────────────────────
@api.post("/api/chart")
def chart():
    payload = parse_chart_payload(_body_json())
    city = payload.pop("city", None)
    when = payload.pop("when")
    result = _composer().compute_chart(when, **payload)

    MET_CHARTS.labels(house_system=result.houses.system.key).inc()
    record_chart_warnings(result.warnings)
    if result.warnings:
        log.info("chart computed with %d warning(s)", len(result.warnings))
    return jsonify({"ok": True, "chart": result.to_dict(), "meta": _meta(city=city)}), 200


@api.post("/api/houses")
def houses():
    payload = parse_houses_payload(_body_json())
    instant = build_time_instant(payload["when"], payload["utc_offset_hours"])
    system = payload.get("house_system") or _composer().config.house_system
    res = compute_houses(instant.jd_utc, instant.jd_tt, payload["latitude"], payload["longitude"], system)
    return jsonify({
        "ok": True,
        "time": instant.to_dict(),
        "houses": res.to_dict(),
        "meta": _meta(city=payload.get("city")),
    }), 200


@api.post("/api/timescales")
def timescales():
    payload = parse_timescales_payload(_body_json())
    instant = build_time_instant(payload["when"], payload["utc_offset_hours"])
    out = instant.to_dict()
    out["delta_t"] = instant.delta_t_seconds
    out["year"] = instant.decimal_year
    out["gmst"] = gmst(instant.jd_utc)
    out["obliquity"] = obliquity(instant.jd_tt)
    if payload.get("longitude") is not None:
        out["lst"] = lst(instant.jd_utc, payload["longitude"])
    return jsonify({"ok": True, "timescales": out, "meta": _meta()}), 200


@api.post("/api/aspects")
def aspects():
    payload = parse_aspects_payload(_body_json())
    hits = compute_aspects(payload["longitudes"], payload["orbs"])
    return jsonify({"ok": True, "aspects": [h.to_dict() for h in hits], "meta": _meta()}), 200


@api.get("/api/ephemeris/availability")
def ephemeris_availability():
    raw = request.args.get("jd")
    try:
        jd = float(raw) if raw is not None else None
    except ValueError:
        jd = None
    if jd is None or not math.isfinite(jd):
        raise ValidationError([{"loc": ["jd"], "msg": "query parameter 'jd' must be a finite number",
                                "type": "value_error"}])
    body = request.args.get("body") or _composer().config.reference_body
    avail = _composer().ephemeris.availability(jd, Body.parse(body))
    return jsonify({"ok": True, "availability": avail.to_dict(), "meta": _meta()}), 200


@api.get("/api/locations")
def locations():
    q = request.args.get("q", "")
    cities = search_cities(q, limit=len(MAJOR_CITIES)) if q else list(MAJOR_CITIES)
    return jsonify({"ok": True, "count": len(cities), "locations": [c.to_dict() for c in cities]}), 200


@api.get("/api/systems")
def systems():
    cfg = _composer().config
    return jsonify({
        "ok": True,
        "house_systems": [h.key for h in HouseSystem],
        "default_house_system": cfg.house_system.key,
        "bodies": [b.value for b in Body],
        "ephemeris_bodies": [b.value for b in cfg.ephemeris_bodies],
        "aspects": {a.config_key: a.degrees for a in Aspect},
        "default_orbs": dict(DEFAULT_ORBS_DEG, **{k: float(v) for k, v in cfg.orbs.items()}),
        "strict_ephemeris": cfg.strict_ephemeris,
        "meta": _meta(),
    }), 200
