# tests/test_timescales.py
from __future__ import annotations

import math
import pytest

from datetime import date, datetime, timedelta, timezone
from hypothesis import given, strategies as st

from astrochart.core.errors import InputError
from astrochart.core.timescales import (
    J2000_JD,
    CalendarDate,
    TimeInstant,
    build_time_instant,
    date_to_jd,
    delta_t,
    gmst,
    jd_to_date,
    local_to_utc,
    lst,
    normalize_angle,
    obliquity,
    tt_to_utc,
    utc_to_tt,
)

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────
def _circ(a: float, b: float) -> float:
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


def _seconds_between(a: CalendarDate, b: CalendarDate) -> float:
    return abs(date_to_jd(*a) - date_to_jd(*b)) * 86400.0


# ─────────────────────────────────────────────────────────────────────────────
# Calendar ↔ JD
# ─────────────────────────────────────────────────────────────────────────────

def test_j2000_epoch() -> None:
    assert date_to_jd(2000, 1, 1, 12, 0, 0) == J2000_JD
    assert jd_to_date(J2000_JD) == CalendarDate(2000, 1, 1, 12, 0, 0.0)

def test_known_dates() -> None:
    # Meeus ch. 7 examples
    assert date_to_jd(1957, 10, 4.81, 0) == pytest.approx(2436116.31, abs=1e-6)
    assert date_to_jd(1987, 1, 27, 0) == pytest.approx(2446822.5, abs=1e-9)
    assert date_to_jd(1600, 1, 1, 0) == pytest.approx(2305447.5, abs=1e-9)

def test_midnight_rollover_carries_into_next_day() -> None:
    # 23:59:59.9999 rounds to the millisecond and lands on the next midnight
    jd = date_to_jd(2021, 12, 31, 23, 59, 59.9999)
    assert jd_to_date(jd)[:5] == (2022, 1, 1, 0, 0)

def test_hour_overflow_rolls_into_day() -> None:
    assert date_to_jd(2020, 2, 28, 36) == pytest.approx(date_to_jd(2020, 2, 29, 12), abs=1e-9)

def test_month_out_of_range_is_invalid_date() -> None:
    with pytest.raises(InputError) as exc:
        date_to_jd(2020, 13, 1)
    assert exc.value.kind == "InvalidDate"

def test_non_finite_inputs_raise() -> None:
    with pytest.raises(InputError):
        date_to_jd(float("nan"), 1, 1)
    with pytest.raises(InputError):
        jd_to_date(float("inf"))
    with pytest.raises(InputError):
        gmst(float("nan"))

@given(
    y=st.integers(min_value=1600, max_value=2400),
    m=st.integers(min_value=1, max_value=12),
    d=st.integers(min_value=1, max_value=28),
    hh=st.integers(min_value=0, max_value=23),
    mm=st.integers(min_value=0, max_value=59),
    ss=st.integers(min_value=0, max_value=59),
)
def test_jd_round_trip_within_one_second(y, m, d, hh, mm, ss) -> None:
    back = jd_to_date(date_to_jd(y, m, d, hh, mm, ss))
    assert _seconds_between(back, CalendarDate(y, m, d, hh, mm, ss)) < 1.0


# ─────────────────────────────────────────────────────────────────────────────
# ΔT
# ─────────────────────────────────────────────────────────────────────────────

def test_delta_t_reference_values() -> None:
    assert delta_t(2000.0) == pytest.approx(63.86, abs=1e-9)
    assert delta_t(1900.0) == pytest.approx(-2.79, abs=1e-9)
    # far past uses the long-term parabola
    assert delta_t(-1000.0) == pytest.approx(-20.0 + 32.0 * ((-1000.0 - 1820.0) / 100.0) ** 2)

@pytest.mark.parametrize("year", [-500, 500, 1800, 1860, 1900, 1920, 1941, 1961, 1986, 2005, 2050, 2150])
def test_delta_t_continuous_at_segment_boundaries(year: int) -> None:
    eps = 1e-6
    assert abs(delta_t(year - eps) - delta_t(year + eps)) < 0.1

def test_delta_t_positive_in_modern_era() -> None:
    for y in (1950.0, 1975.0, 2000.0, 2020.0, 2040.0):
        assert delta_t(y) > 0.0

def test_utc_tt_round_trip() -> None:
    jd = 2459000.5
    tt = utc_to_tt(jd)
    assert (tt - jd) * 86400.0 == pytest.approx(delta_t(2000.0 + (jd - J2000_JD) / 365.25), abs=1e-3)
    assert tt_to_utc(tt, year=2000.0 + (jd - J2000_JD) / 365.25) == pytest.approx(jd, abs=1e-8)


# ─────────────────────────────────────────────────────────────────────────────
# Sidereal time & obliquity
# ─────────────────────────────────────────────────────────────────────────────

def test_gmst_at_j2000() -> None:
    assert gmst(J2000_JD) == pytest.approx(280.46061837, abs=1e-8)

def test_lst_adds_east_longitude() -> None:
    assert _circ(lst(J2000_JD, 90.0), 280.46061837 + 90.0) < 1e-8
    assert _circ(lst(J2000_JD, -180.0), 100.46061837) < 1e-8

def test_gmst_matches_erfa(ensure_erfa) -> None:
    erfa = ensure_erfa
    for jd in (2440000.5, 2451545.0, 2460000.25):
        ref = math.degrees(erfa.gmst82(jd, 0.0))
        assert _circ(gmst(jd), ref) < 1e-4

def test_obliquity_at_j2000() -> None:
    assert obliquity(J2000_JD) == pytest.approx(23.4392911, abs=1e-7)

def test_obliquity_close_to_erfa_iau1980(ensure_erfa) -> None:
    erfa = ensure_erfa
    for jd in (2415020.0, 2451545.0, 2488070.0):
        ref = math.degrees(erfa.obl80(jd, 0.0))
        assert abs(obliquity(jd) - ref) < 1e-3

def test_cal2jd_matches_erfa(ensure_erfa) -> None:
    erfa = ensure_erfa
    for y, m, d in ((1858, 11, 17), (1999, 12, 31), (2024, 2, 29), (2100, 3, 1)):
        djm0, djm = erfa.cal2jd(y, m, d)
        assert date_to_jd(y, m, d, 0) == pytest.approx(djm0 + djm, abs=1e-9)


# ─────────────────────────────────────────────────────────────────────────────
# Angles
# ─────────────────────────────────────────────────────────────────────────────

@given(st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False))
def test_normalize_angle_range(x) -> None:
    v = normalize_angle(x)
    assert 0.0 <= v < 360.0
    assert normalize_angle(v) == pytest.approx(v, abs=1e-12)

@given(
    x=st.floats(min_value=-1e4, max_value=1e4, allow_nan=False, allow_infinity=False),
    k=st.integers(min_value=-1000, max_value=1000),
)
def test_normalize_angle_is_periodic(x, k) -> None:
    assert _circ(normalize_angle(x), normalize_angle(x + 360.0 * k)) < 1e-9

def test_normalize_angle_examples() -> None:
    assert normalize_angle(360.0) == 0.0
    assert normalize_angle(-30.0) == 330.0
    assert normalize_angle(725.0) == pytest.approx(5.0)
    assert normalize_angle(-1e-18) == 0.0
    with pytest.raises(InputError):
        normalize_angle(float("nan"))


# ─────────────────────────────────────────────────────────────────────────────
# Civil time
# ─────────────────────────────────────────────────────────────────────────────

def test_local_to_utc_applies_offset() -> None:
    # 05:25 IST (+5:30) is 23:55 UTC the previous day
    utc = local_to_utc(1992, 11, 4, 5, 25, 0, 5.5)
    assert utc[:5] == (1992, 11, 3, 23, 55)

def test_local_to_utc_negative_offset_crosses_year() -> None:
    utc = local_to_utc(2020, 12, 31, 20, 0, 0, -5.0)
    assert utc[:5] == (2021, 1, 1, 1, 0)


# ─────────────────────────────────────────────────────────────────────────────
# TimeInstant construction
# ─────────────────────────────────────────────────────────────────────────────

def test_instant_from_jd() -> None:
    inst = build_time_instant(J2000_JD)
    assert inst.jd_utc == J2000_JD
    assert inst.delta_t_seconds == pytest.approx(63.86, abs=1e-9)
    assert (inst.jd_tt - inst.jd_utc) * 86400.0 == pytest.approx(inst.delta_t_seconds, abs=1e-3)

def test_instant_from_calendar_with_offset() -> None:
    inst = build_time_instant((2000, 1, 1, 17, 30, 0), 5.5)
    assert inst.jd_utc == pytest.approx(J2000_JD, abs=1e-8)
    assert inst.utc_offset_hours == 5.5
    assert inst.to_dict()["utc"] == "2000-01-01T12:00:00Z"

def test_instant_from_aware_datetime() -> None:
    tz = timezone(timedelta(hours=-5))
    inst = build_time_instant(datetime(2000, 1, 1, 7, 0, tzinfo=tz), utc_offset_hours=3.0)
    assert inst.jd_utc == pytest.approx(J2000_JD, abs=1e-8)
    assert inst.utc_offset_hours == -5.0

def test_instant_from_naive_datetime_and_date() -> None:
    a = build_time_instant(datetime(2000, 1, 1, 12, 0))
    b = build_time_instant(date(2000, 1, 1))
    assert a.jd_utc == pytest.approx(J2000_JD, abs=1e-9)
    assert b.jd_utc == pytest.approx(J2000_JD - 0.5, abs=1e-9)

def test_instant_passthrough_and_rejects() -> None:
    inst = TimeInstant.from_jd_utc(J2000_JD)
    assert build_time_instant(inst) is inst
    with pytest.raises(InputError):
        build_time_instant(True)
    with pytest.raises(InputError):
        build_time_instant((2000, 1))
    with pytest.raises(InputError):
        build_time_instant("2000-01-01")  # type: ignore[arg-type]
