# tests/test_endpoints.py
from __future__ import annotations

import base64
import pytest

from astrochart.core.chart import ChartComposer, ComposerConfig
from astrochart.core.constants import Body
from astrochart.main import create_app

sample = {
    "date": "2000-01-01",
    "time": "12:00",
    "latitude": 0.0,
    "longitude": 0.0,
}


@pytest.fixture()
def client(composer):
    app = create_app(composer=composer)
    app.testing = True
    return app.test_client()


def test_health(client) -> None:
    for path in ("/health", "/healthz"):
        rv = client.get(path)
        assert rv.status_code == 200
        assert rv.get_json()["status"] == "ok"
    assert client.get("/").get_json()["ok"] is True

def test_chart(client) -> None:
    rv = client.post("/api/chart", json=sample)
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["ok"] is True
    chart = data["chart"]
    assert len(chart["planets"]) == 10
    assert len(chart["houses"]) == 12
    assert chart["angles"]["ascendant"] == pytest.approx(11.37787598, abs=1e-5)
    assert chart["warnings"] == []
    assert "version" in data["meta"]

def test_chart_by_city(client) -> None:
    rv = client.post("/api/chart", json={"date": "1992-11-04", "time": "05:25", "utc_offset_hours": 5.5,
                                         "city": "mumbai", "house_system": "whole sign"})
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["meta"]["city"]["name"] == "Mumbai, India"
    assert data["chart"]["location"]["latitude"] == pytest.approx(19.0760)
    assert data["chart"]["house_system"] == "whole_sign"

def test_chart_by_city_uses_city_zone_offset(client, ensure_tzdata) -> None:
    rv = client.post("/api/chart", json={"date": "2000-01-01", "time": "21:00", "city": "Tokyo"})
    assert rv.status_code == 200
    data = rv.get_json()
    t = data["chart"]["time"]
    assert t["utc"] == "2000-01-01T12:00:00Z"
    assert t["utc_offset_hours"] == 9.0
    assert data["meta"]["city"]["utc_offset_hours"] == 9.0
    assert data["meta"]["city"]["formatted"] == "35.6762°N, 139.6503°E"

def test_city_zone_follows_dst(client, ensure_tzdata) -> None:
    summer = client.post("/api/houses", json={"date": "2021-07-01", "time": "13:00", "city": "London"})
    winter = client.post("/api/houses", json={"date": "2021-01-15", "time": "12:00", "city": "London"})
    assert summer.get_json()["time"]["utc"] == "2021-07-01T12:00:00Z"
    assert winter.get_json()["time"]["utc"] == "2021-01-15T12:00:00Z"

def test_explicit_offset_beats_city_zone(client) -> None:
    rv = client.post("/api/chart", json={"date": "2000-01-01", "time": "21:00", "city": "Tokyo",
                                         "utc_offset_hours": 0})
    assert rv.get_json()["chart"]["time"]["utc"] == "2000-01-01T21:00:00Z"

def test_chart_validation_errors(client) -> None:
    rv = client.post("/api/chart", json={"time": "25:00", "latitude": 100})
    assert rv.status_code == 422
    data = rv.get_json()
    assert data["ok"] is False and data["error"] == "validation_error"
    locs = {tuple(d["loc"]) for d in data["details"]}
    assert ("date",) in locs and ("latitude",) in locs and ("longitude",) in locs

def test_unknown_body_is_400_with_suggestions(client) -> None:
    rv = client.post("/api/chart", json={**sample, "bodies": ["Sun", "Marz"]})
    assert rv.status_code == 400
    data = rv.get_json()
    assert data["error"] == "UnknownBody"
    assert "Mars" in data["suggestions"]

def test_unknown_house_system_is_400(client) -> None:
    rv = client.post("/api/chart", json={**sample, "house_system": "placidus"})
    assert rv.status_code == 400
    assert rv.get_json()["error"] == "UnknownHouseSystem"

def test_strict_ephemeris_is_422(sun_table) -> None:
    comp = ChartComposer(ComposerConfig(strict_ephemeris=True, ephemeris_bodies=(Body.SUN,)), ephemeris=sun_table)
    c = create_app(composer=comp).test_client()
    rv = c.post("/api/chart", json={**sample, "date": "2024-06-01"})
    assert rv.status_code == 422
    data = rv.get_json()
    assert data["error"] == "EphemerisUnavailable"
    assert (data["min_jd"], data["max_jd"]) == (2451543.0, 2451547.0)
    assert data["min_date"] == "1999-12-30 12:00"

def test_body_must_be_json_object(client) -> None:
    rv = client.post("/api/chart", data="[1, 2]", content_type="application/json")
    assert rv.status_code == 400
    assert rv.get_json()["error"] == "http_error"

def test_houses(client) -> None:
    rv = client.post("/api/houses", json={**sample, "house_system": "equal"})
    assert rv.status_code == 200
    houses = rv.get_json()["houses"]
    assert houses["system"] == "equal"
    assert houses["cusps"][0]["longitude"] == pytest.approx(11.37787598, abs=1e-5)

def test_timescales(client) -> None:
    rv = client.post("/api/timescales", json={"jd": 2451545.0, "longitude": 90.0})
    assert rv.status_code == 200
    ts = rv.get_json()["timescales"]
    assert ts["jd_utc"] == 2451545.0
    assert ts["delta_t"] == pytest.approx(63.86, abs=1e-6)
    assert ts["gmst"] == pytest.approx(280.46061837, abs=1e-8)
    assert ts["lst"] == pytest.approx(10.46061837, abs=1e-8)
    assert ts["utc"] == "2000-01-01T12:00:00Z"

def test_aspects(client) -> None:
    rv = client.post("/api/aspects", json={"longitudes": {"A": 10, "B": 130}, "orbs": 0})
    assert rv.status_code == 200
    hits = rv.get_json()["aspects"]
    assert [h["aspect"] for h in hits] == ["trine"]
    assert hits[0]["exact"] is True

def test_aspects_needs_two_longitudes(client) -> None:
    rv = client.post("/api/aspects", json={"longitudes": {"A": 10}})
    assert rv.status_code == 422

def test_ephemeris_availability(client) -> None:
    rv = client.get("/api/ephemeris/availability?jd=2451545.0")
    assert rv.status_code == 200
    avail = rv.get_json()["availability"]
    assert avail["available"] is True and avail["reference_body"] == "Sun"
    assert client.get("/api/ephemeris/availability?jd=abc").status_code == 422
    assert client.get("/api/ephemeris/availability").status_code == 422

def test_locations(client) -> None:
    rv = client.get("/api/locations?q=lon")
    names = [c["name"] for c in rv.get_json()["locations"]]
    assert names == ["London, UK"]
    assert client.get("/api/locations").get_json()["count"] == 25

def test_systems(client) -> None:
    data = client.get("/api/systems").get_json()
    assert data["house_systems"] == ["whole_sign", "equal", "porphyry"]
    assert data["aspects"]["trine"] == 120.0

def test_metrics_requires_basic_auth(client, monkeypatch) -> None:
    monkeypatch.setenv("METRICS_USER", "ops")
    monkeypatch.setenv("METRICS_PASS", "s3cret")
    assert client.get("/metrics").status_code == 401
    token = base64.b64encode(b"ops:s3cret").decode("ascii")
    rv = client.get("/metrics", headers={"Authorization": f"Basic {token}"})
    assert rv.status_code == 200
    assert b"astro_api_requests_total" in rv.data
