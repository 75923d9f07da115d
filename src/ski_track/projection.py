"""Conversions between DMS, WGS 84 decimal degrees and UTM.

The UTM projection uses the closed-form Transverse Mercator series from
Hoffmann-Wellenhof, Lichtenegger & Collins, *GPS: Theory and Practice*
(eqs. 10.17 - 10.23), carried to the 8th order terms.

Hemisphere band: the device software assigns band ``S`` to every point with a
negative *longitude* and ``N`` otherwise. That is not a hemisphere test, but
projected coordinates already stored by the device depend on it, so
:func:`wgs_to_utm` keeps the rule and :func:`utm_to_wgs` honours it. A round
trip is exact only where the rule agrees with the real hemisphere (north-east
and south-west quadrants).
"""

from __future__ import annotations

import math

from ski_track.track_data import (
    DMSCoordinate,
    UTMCoordinate,
    WGSCoordinate,
    central_meridian,
)

# Reference ellipsoid (metres)
SM_A = 6378137.0
SM_B = 6356752.314

UTM_SCALE_FACTOR = 0.9996
FALSE_EASTING = 500_000.0
FALSE_NORTHING = 10_000_000.0

_N = (SM_A - SM_B) / (SM_A + SM_B)
_EP2 = (SM_A**2 - SM_B**2) / SM_B**2
_ALPHA = ((SM_A + SM_B) / 2.0) * (1.0 + _N**2 / 4.0 + _N**4 / 64.0)


# ---------------------------------------------------------------------------
# Series helpers
# ---------------------------------------------------------------------------


def arc_length_of_meridian(phi: float) -> float:
    """Ellipsoidal distance from the equator to latitude *phi* (radians), metres."""
    beta = -3.0 * _N / 2.0 + 9.0 * _N**3 / 16.0 - 3.0 * _N**5 / 32.0
    gamma = 15.0 * _N**2 / 16.0 - 15.0 * _N**4 / 32.0
    delta = -35.0 * _N**3 / 48.0 + 105.0 * _N**5 / 256.0
    epsilon = 315.0 * _N**4 / 512.0

    return _ALPHA * (
        phi
        + beta * math.sin(2.0 * phi)
        + gamma * math.sin(4.0 * phi)
        + delta * math.sin(6.0 * phi)
        + epsilon * math.sin(8.0 * phi)
    )


def footpoint_latitude(y: float) -> float:
    """Latitude (radians) at which the meridian arc length equals *y* metres."""
    y_ = y / _ALPHA
    beta_ = 3.0 * _N / 2.0 - 27.0 * _N**3 / 32.0 + 269.0 * _N**5 / 512.0
    gamma_ = 21.0 * _N**2 / 16.0 - 55.0 * _N**4 / 32.0
    delta_ = 151.0 * _N**3 / 96.0 - 417.0 * _N**5 / 128.0
    epsilon_ = 1097.0 * _N**4 / 512.0

    return (
        y_
        + beta_ * math.sin(2.0 * y_)
        + gamma_ * math.sin(4.0 * y_)
        + delta_ * math.sin(6.0 * y_)
        + epsilon_ * math.sin(8.0 * y_)
    )


def utm_zone(longitude: float) -> int:
    return int(math.floor((longitude + 180.0) / 6.0)) + 1


# ---------------------------------------------------------------------------
# DMS <-> WGS 84
# ---------------------------------------------------------------------------


def dms_to_wgs(dms: DMSCoordinate) -> WGSCoordinate:
    lat = dms.latitude.degrees + dms.latitude.minutes / 60.0 + dms.latitude.seconds / 3600.0
    if dms.latitude.hemisphere == "S":
        lat = -lat

    lon = dms.longitude.degrees + dms.longitude.minutes / 60.0 + dms.longitude.seconds / 3600.0
    if dms.longitude.hemisphere == "W":
        lon = -lon

    return WGSCoordinate(latitude=lat, longitude=lon)


def _split_degrees(value: float) -> tuple[int, int, float]:
    magnitude = abs(value)
    degrees = int(magnitude)
    minute_seconds = (magnitude - degrees) * 3600.0
    return degrees, int(minute_seconds // 60), minute_seconds % 60


def wgs_to_dms(wgs: WGSCoordinate) -> DMSCoordinate:
    lat_d, lat_m, lat_s = _split_degrees(wgs.latitude)
    lon_d, lon_m, lon_s = _split_degrees(wgs.longitude)
    return DMSCoordinate.from_components(
        lat_d,
        lat_m,
        lat_s,
        lon_d,
        lon_m,
        lon_s,
        lat_hemisphere="S" if wgs.latitude < 0 else "N",
        lon_hemisphere="W" if wgs.longitude < 0 else "E",
    )


# ---------------------------------------------------------------------------
# WGS 84 <-> UTM
# ---------------------------------------------------------------------------


def wgs_to_utm(wgs: WGSCoordinate) -> UTMCoordinate:
    """Project a WGS 84 position onto its UTM zone.

    Parameters
    ----------
    wgs:
        Position in decimal degrees.

    Returns
    -------
    UTMCoordinate
        Easting/northing in metres (not rounded), the zone derived from the
        longitude and the band chosen by longitude sign (see module notes).

    Raises
    ------
    CoordinateError
        If the derived zone is outside 1..60 (longitude of exactly 180°).
    """
    phi = wgs.latitude_rad
    lam = wgs.longitude_rad
    zone = utm_zone(wgs.longitude)

    cos_phi = math.cos(phi)
    nu2 = _EP2 * cos_phi**2
    n = SM_A**2 / (SM_B * math.sqrt(1.0 + nu2))
    t = math.tan(phi)
    t2 = t * t
    l = lam - central_meridian(zone)  # noqa: E741

    # Coefficients for l**n; l1 and l2 have coefficient 1
    l3coef = 1.0 - t2 + nu2
    l4coef = 5.0 - t2 + 9.0 * nu2 + 4.0 * (nu2 * nu2)
    l5coef = 5.0 - 18.0 * t2 + (t2 * t2) + 14.0 * nu2 - 58.0 * t2 * nu2
    l6coef = 61.0 - 58.0 * t2 + (t2 * t2) + 270.0 * nu2 - 330.0 * t2 * nu2
    l7coef = 61.0 - 479.0 * t2 + 179.0 * (t2 * t2) - (t2 * t2 * t2)
    l8coef = 1385.0 - 3111.0 * t2 + 543.0 * (t2 * t2) - (t2 * t2 * t2)

    x = (
        n * cos_phi * l
        + n / 6.0 * cos_phi**3 * l3coef * l**3
        + n / 120.0 * cos_phi**5 * l5coef * l**5
        + n / 5040.0 * cos_phi**7 * l7coef * l**7
    )

    y = (
        arc_length_of_meridian(phi)
        + t / 2.0 * n * cos_phi**2 * l**2
        + t / 24.0 * n * cos_phi**4 * l4coef * l**4
        + t / 720.0 * n * cos_phi**6 * l6coef * l**6
        + t / 40320.0 * n * cos_phi**8 * l8coef * l**8
    )

    easting = x * UTM_SCALE_FACTOR + FALSE_EASTING
    northing = y * UTM_SCALE_FACTOR
    if northing < 0:
        northing += FALSE_NORTHING

    return UTMCoordinate(
        x=easting,
        y=northing,
        zone=zone,
        band="S" if wgs.longitude < 0 else "N",
    )


def utm_to_wgs(utm: UTMCoordinate) -> WGSCoordinate:
    """Inverse projection of :func:`wgs_to_utm`."""
    x = (utm.x - FALSE_EASTING) / UTM_SCALE_FACTOR
    y = utm.y
    if utm.band == "S":
        y -= FALSE_NORTHING
    y /= UTM_SCALE_FACTOR

    lambda0 = utm.central_meridian
    phif = footpoint_latitude(y)

    cf = math.cos(phif)
    nuf2 = _EP2 * cf**2
    nf = SM_A**2 / (SM_B * math.sqrt(1.0 + nuf2))
    tf = math.tan(phif)
    tf2 = tf * tf
    tf4 = tf2 * tf2

    # Fractional coefficients for x**n
    nfpow = nf
    x1frac = 1.0 / (nfpow * cf)
    nfpow *= nf  # Nf^2
    x2frac = tf / (2.0 * nfpow)
    nfpow *= nf  # Nf^3
    x3frac = 1.0 / (6.0 * nfpow * cf)
    nfpow *= nf  # Nf^4
    x4frac = tf / (24.0 * nfpow)
    nfpow *= nf  # Nf^5
    x5frac = 1.0 / (120.0 * nfpow * cf)
    nfpow *= nf  # Nf^6
    x6frac = tf / (720.0 * nfpow)
    nfpow *= nf  # Nf^7
    x7frac = 1.0 / (5040.0 * nfpow * cf)
    nfpow *= nf  # Nf^8
    x8frac = tf / (40320.0 * nfpow)

    # Polynomial coefficients for x**n; x**1 has none
    x2poly = -1.0 - nuf2
    x3poly = -1.0 - 2.0 * tf2 - nuf2
    x4poly = (
        5.0
        + 3.0 * tf2
        + 6.0 * nuf2
        - 6.0 * tf2 * nuf2
        - 3.0 * (nuf2 * nuf2)
        - 9.0 * tf2 * (nuf2 * nuf2)
    )
    x5poly = 5.0 + 28.0 * tf2 + 24.0 * tf4 + 6.0 * nuf2 + 8.0 * tf2 * nuf2
    x6poly = -61.0 - 90.0 * tf2 - 45.0 * tf4 - 107.0 * nuf2 + 162.0 * tf2 * nuf2
    x7poly = -61.0 - 662.0 * tf2 - 1320.0 * tf4 - 720.0 * (tf4 * tf2)
    x8poly = 1385.0 + 3633.0 * tf2 + 4095.0 * tf4 + 1575.0 * (tf4 * tf2)

    lat = (
        phif
        + x2frac * x2poly * x**2
        + x4frac * x4poly * x**4
        + x6frac * x6poly * x**6
        + x8frac * x8poly * x**8
    )
    lon = (
        lambda0
        + x1frac * x
        + x3frac * x3poly * x**3
        + x5frac * x5poly * x**5
        + x7frac * x7poly * x**7
    )

    return WGSCoordinate.from_radians(lat, lon)
