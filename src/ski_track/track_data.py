"""Ski track data models: movement modes, raw GPS samples and coordinates.

Three coordinate representations are supported: degree/minute/second
(:class:`DMSCoordinate`), decimal degrees on WGS 84 (:class:`WGSCoordinate`)
and projected UTM metres (:class:`UTMCoordinate`). Conversions live in
:mod:`ski_track.projection`.
"""

from __future__ import annotations

import datetime
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

import pydantic

from ski_track.errors import CoordinateError

# ---------------------------------------------------------------------------
# Movement classification
# ---------------------------------------------------------------------------


class Mode(StrEnum):
    STOP = "STOP"
    SKI = "SKI"
    LIFT = "LIFT"


# ---------------------------------------------------------------------------
# Raw GPS sample
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Datum:
    """One decoded GPS sample, before classification."""

    time: int  # epoch seconds (UTC)
    latitude: float  # decimal degrees
    longitude: float  # decimal degrees
    x: float  # UTM easting, metres
    y: float  # UTM northing, metres
    altitude: int  # metres
    speed: float  # km/h

    @property
    def timestamp(self) -> datetime.datetime:
        return datetime.datetime.fromtimestamp(self.time, tz=datetime.timezone.utc)

    def __str__(self) -> str:
        return (
            f"[{self.time}]:({self.latitude:2.5f},{self.longitude:2.5f}):"
            f"({self.x:.0f},{self.y:.0f}):{self.altitude}:{self.speed:2.2f}"
        )


# ---------------------------------------------------------------------------
# Coordinate models
# ---------------------------------------------------------------------------


class WGSCoordinate(pydantic.BaseModel):
    """A position on the WGS 84 ellipsoid in decimal degrees."""

    model_config = pydantic.ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @pydantic.model_validator(mode="after")
    def _check_range(self) -> WGSCoordinate:
        if not -90.0 <= self.latitude <= 90.0:
            raise CoordinateError(f"Latitude degree input out of range ({self.latitude})")
        if not -180.0 <= self.longitude <= 180.0:
            raise CoordinateError(f"Longitude degree input out of range ({self.longitude})")
        return self

    @classmethod
    def from_radians(cls, latitude: float, longitude: float) -> WGSCoordinate:
        if not -math.pi / 2.0 <= latitude <= math.pi / 2.0:
            raise CoordinateError(f"Latitude radian input out of range ({latitude})")
        if not -math.pi <= longitude <= math.pi:
            raise CoordinateError(f"Longitude radian input out of range ({longitude})")
        return cls(latitude=math.degrees(latitude), longitude=math.degrees(longitude))

    @property
    def latitude_rad(self) -> float:
        return math.radians(self.latitude)

    @property
    def longitude_rad(self) -> float:
        return math.radians(self.longitude)

    def __str__(self) -> str:
        return f"{self.latitude:3.5f}, {self.longitude:3.5f}"


class UTMCoordinate(pydantic.BaseModel):
    """A projected Universal Transverse Mercator position (metres)."""

    model_config = pydantic.ConfigDict(frozen=True)

    x: float
    """Easting, including the 500 km false easting."""

    y: float
    """Northing, including the 10 000 km false northing in band ``S``."""

    zone: int
    band: str

    @pydantic.model_validator(mode="after")
    def _check_range(self) -> UTMCoordinate:
        if self.x < 0:
            raise CoordinateError(f"UTM easting coordinate out of range ({self.x})")
        if self.y < 0:
            raise CoordinateError(f"UTM northing coordinate out of range ({self.y})")
        if not 1 <= self.zone <= 60:
            raise CoordinateError(f"UTM zone input out of range ({self.zone})")
        if self.band not in ("N", "S"):
            raise CoordinateError(f"UTM band input out of range ({self.band})")
        return self

    @property
    def central_meridian(self) -> float:
        """Central meridian of the zone, radians."""
        return central_meridian(self.zone)

    def __str__(self) -> str:
        return f"{self.zone}{self.band} {self.x:.0f} {self.y:.0f}"


def central_meridian(zone: int) -> float:
    if not 1 <= zone <= 60:
        return 0.0
    return math.radians(-183.0 + zone * 6.0)


class DMSElement(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    degrees: int
    minutes: int
    seconds: float
    hemisphere: Literal["N", "S", "E", "W"]

    def __str__(self) -> str:
        return f"{self.degrees} {self.minutes}'{self.seconds:.2f}\"{self.hemisphere}"


def _normalize(degrees: int, minutes: int, seconds: float) -> tuple[int, int, float]:
    """Roll seconds >= 60 into minutes and minutes >= 60 into degrees."""
    if seconds >= 60:
        minutes += int(seconds // 60)
        seconds = seconds % 60
    if minutes >= 60:
        degrees += minutes // 60
        minutes = minutes % 60
    return degrees, minutes, seconds


class DMSCoordinate(pydantic.BaseModel):
    """A position as degrees, minutes and seconds with hemisphere letters.

    Use :meth:`from_components` or :meth:`from_decimal_minutes`; both
    normalize overflowing minutes/seconds and validate the degree range.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    latitude: DMSElement
    longitude: DMSElement

    @classmethod
    def from_components(
        cls,
        lat_d: int,
        lat_m: int,
        lat_s: float,
        lon_d: int,
        lon_m: int,
        lon_s: float,
        lat_hemisphere: str | None = None,
        lon_hemisphere: str | None = None,
    ) -> DMSCoordinate:
        lat_x = lat_hemisphere or ("S" if lat_d < 0 else "N")
        lat_d, lat_m, lat_s = _normalize(abs(lat_d), lat_m, lat_s)
        if lat_d > 90:
            raise CoordinateError(f"DMS latitude out of range ({lat_d})")

        lon_x = lon_hemisphere or ("W" if lon_d < 0 else "E")
        lon_d, lon_m, lon_s = _normalize(abs(lon_d), lon_m, lon_s)
        if lon_d > 180:
            raise CoordinateError(f"DMS longitude out of range ({lon_d})")

        return cls(
            latitude=DMSElement(degrees=lat_d, minutes=lat_m, seconds=lat_s, hemisphere=lat_x),
            longitude=DMSElement(degrees=lon_d, minutes=lon_m, seconds=lon_s, hemisphere=lon_x),
        )

    @classmethod
    def from_decimal_minutes(
        cls, lat_d: int, lat_m: float, lon_d: int, lon_m: float
    ) -> DMSCoordinate:
        """Build from whole degrees plus decimal minutes (``45``, ``30.1234``)."""
        lat_whole = math.floor(lat_m)
        lon_whole = math.floor(lon_m)
        return cls.from_components(
            lat_d,
            lat_whole,
            (lat_m - lat_whole) * 60.0,
            lon_d,
            lon_whole,
            (lon_m - lon_whole) * 60.0,
        )

    def __str__(self) -> str:
        return f"{self.latitude},{self.longitude}"
