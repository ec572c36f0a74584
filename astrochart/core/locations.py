# astrochart/core/locations.py
"""
Static lookup table of major cities (latitude, east longitude, IANA zone name).

The zone name is resolved through zoneinfo, so the UTC offset a city reports
follows its DST rules at the requested moment.
"""

from __future__ import annotations

import difflib
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from astrochart.core.errors import InputError, UnknownEntityError

__all__ = ["City", "MAJOR_CITIES", "find_city", "search_cities", "format_coordinates"]


@dataclass(frozen=True)
class City:
    name: str
    latitude: float
    longitude: float
    timezone: str

    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError as e:
            raise InputError(
                f"time zone {self.timezone!r} for {self.name} is not available (install tzdata)",
                kind="UnknownTimezone", field="city",
            ) from e

    def utc_offset_hours(self, when: datetime) -> float:
        """
        Offset (hours east of UTC) in force at ``when``.

        A naive ``when`` is read as local wall-clock time in this city; on a
        DST overlap the earlier reading (fold=0) wins, and a time inside a
        spring-forward gap takes the pre-transition offset. An aware ``when``
        is an absolute instant.
        """
        z = self.zone()
        if when.tzinfo is not None:
            off = when.astimezone(z).utcoffset()
        else:
            off = when.replace(tzinfo=z, fold=0).utcoffset()
        return off / timedelta(hours=1)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def formatted(self) -> str:
        return format_coordinates(self.latitude, self.longitude)


def format_coordinates(latitude: float, longitude: float) -> str:
    """'19.0760°N, 72.8777°E'; east longitudes past 180 are shown west."""
    lon = float(longitude)
    if lon > 180.0:
        lon -= 360.0
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if lon >= 0 else "W"
    return f"{abs(latitude):.4f}°{lat_dir}, {abs(lon):.4f}°{lon_dir}"


MAJOR_CITIES: Tuple[City, ...] = (
    City("New York, NY, USA", 40.7128, -74.0060, "America/New_York"),
    City("Los Angeles, CA, USA", 34.0522, -118.2437, "America/Los_Angeles"),
    City("London, UK", 51.5074, -0.1278, "Europe/London"),
    City("Paris, France", 48.8566, 2.3522, "Europe/Paris"),
    City("Tokyo, Japan", 35.6762, 139.6503, "Asia/Tokyo"),
    City("Sydney, Australia", -33.8688, 151.2093, "Australia/Sydney"),
    City("Mumbai, India", 19.0760, 72.8777, "Asia/Kolkata"),
    City("Dubai, UAE", 25.2048, 55.2708, "Asia/Dubai"),
    City("São Paulo, Brazil", -23.5505, -46.6333, "America/Sao_Paulo"),
    City("Mexico City, Mexico", 19.4326, -99.1332, "America/Mexico_City"),
    City("Moscow, Russia", 55.7558, 37.6173, "Europe/Moscow"),
    City("Cairo, Egypt", 30.0444, 31.2357, "Africa/Cairo"),
    City("Beijing, China", 39.9042, 116.4074, "Asia/Shanghai"),
    City("Singapore", 1.3521, 103.8198, "Asia/Singapore"),
    City("Toronto, Canada", 43.6532, -79.3832, "America/Toronto"),
    City("Berlin, Germany", 52.5200, 13.4050, "Europe/Berlin"),
    City("Rome, Italy", 41.9028, 12.4964, "Europe/Rome"),
    City("Madrid, Spain", 40.4168, -3.7038, "Europe/Madrid"),
    City("Athens, Greece", 37.9838, 23.7275, "Europe/Athens"),
    City("Istanbul, Turkey", 41.0082, 28.9784, "Europe/Istanbul"),
    City("Bangkok, Thailand", 13.7563, 100.5018, "Asia/Bangkok"),
    City("Seoul, South Korea", 37.5665, 126.9780, "Asia/Seoul"),
    City("Buenos Aires, Argentina", -34.6037, -58.3816, "America/Argentina/Buenos_Aires"),
    City("Lagos, Nigeria", 6.5244, 3.3792, "Africa/Lagos"),
    City("Johannesburg, South Africa", -26.2041, 28.0473, "Africa/Johannesburg"),
)


def _slug(s: str) -> str:
    return "".join(ch for ch in s.lower() if ch.isalnum())


def _city_slug(c: City) -> str:
    # "London, UK" → "london"
    return _slug(c.name.split(",")[0])


def search_cities(query: str, limit: int = 10) -> List[City]:
    """Case-insensitive substring match on the full city label."""
    q = _slug(query or "")
    if not q:
        return list(MAJOR_CITIES[:limit])
    return [c for c in MAJOR_CITIES if q in _slug(c.name)][:limit]


def find_city(name: str) -> City:
    """Exact match on the full label or the bare city name; raises UnknownEntityError."""
    key = _slug(name or "")
    for c in MAJOR_CITIES:
        if key and key in (_slug(c.name), _city_slug(c)):
            return c
    pool = [c.name for c in MAJOR_CITIES]
    hits = difflib.get_close_matches(key, [_city_slug(c) for c in MAJOR_CITIES], n=3, cutoff=0.6)
    suggestions = [c.name for c in MAJOR_CITIES if _city_slug(c) in hits]
    raise UnknownEntityError("UnknownLocation", name, suggestions, pool)
