# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the astrochart suite.

- Registers Hypothesis profiles for local dev and CI.
- Freezes the process TZ to UTC (offsets are always passed explicitly).
- Provides an ERFA handle for cross-checks and small ephemeris fixtures.
"""

import os
import pytest
from hypothesis import settings, HealthCheck

from astrochart.core.chart import ChartComposer, ComposerConfig
from astrochart.core.ephemeris import EphemerisTable


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,           # avoid flaky timeouts on slower runners
        max_examples=60,         # fast local runs
        suppress_health_check=[HealthCheck.too_slow],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=120,        # a bit more coverage in CI
        suppress_health_check=[HealthCheck.too_slow],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("filterwarnings", "ignore::DeprecationWarning")


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session", autouse=True)
def freeze_tz_env():
    prev = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    try:
        yield
    finally:
        if prev is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = prev


@pytest.fixture(scope="session")
def ensure_erfa():
    """
    Fail early if ERFA/pyERFA isn't importable or missing key functions.
    """
    import erfa  # pyERFA exposes the ERFA namespace as 'erfa'
    assert hasattr(erfa, "cal2jd"), "ERFA.cal2jd not available"
    assert hasattr(erfa, "gmst82"), "ERFA.gmst82 not available"
    assert hasattr(erfa, "obl80"), "ERFA.obl80 not available"
    return erfa


@pytest.fixture(scope="session")
def ensure_tzdata():
    """
    Sanity-check that the IANA zones the city table uses resolve on this machine.
    If tzdata is missing on a CI runner, install the 'tzdata' package.
    """
    from zoneinfo import ZoneInfo
    for name in ("UTC", "Asia/Tokyo", "Europe/London", "Asia/Kolkata"):
        ZoneInfo(name)


# J2000 ± 2 days of Sun samples, 1°/day so interpolation is easy to check by hand
SUN_RECORDS = [
    {"JulianDay": 2451543.0, "Sign": "Capricorn", "Deg": 8.0, "Date_UT": "1999-12-30 12:00"},
    {"JulianDay": 2451544.0, "Sign": "Capricorn", "Deg": 9.0, "Date_UT": "1999-12-31 12:00"},
    {"JulianDay": 2451545.0, "Sign": "Capricorn", "Deg": 10.0, "Date_UT": "2000-01-01 12:00"},
    {"JulianDay": 2451546.0, "Sign": "Capricorn", "Deg": 11.0, "Date_UT": "2000-01-02 12:00"},
    {"JulianDay": 2451547.0, "Sign": "Capricorn", "Deg": 12.0, "Date_UT": "2000-01-03 12:00"},
]


@pytest.fixture()
def sun_records() -> list:
    return [dict(r) for r in SUN_RECORDS]


@pytest.fixture()
def sun_table(sun_records: list) -> EphemerisTable:
    return EphemerisTable(records={"Sun": sun_records})


@pytest.fixture()
def composer(sun_table: EphemerisTable) -> ChartComposer:
    cfg = ComposerConfig(ephemeris_bodies=(sun_table.load("Sun").body,))
    return ChartComposer(cfg, ephemeris=sun_table)
