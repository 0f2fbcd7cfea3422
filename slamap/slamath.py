"""Conversions between WGS84 and the drawing's projected coordinates.

The drawing is either in spherical Web Mercator (EPSG:3857) or in a UTM zone.
"""

from __future__ import annotations

import math

_A = 6378137.0
_ECC_SQ = 0.0066943799901413165
_ECC_PRIME_SQ = _ECC_SQ / (1.0 - _ECC_SQ)
_K0 = 0.9996
_FALSE_EASTING = 500000.0
_FALSE_NORTHING_SOUTH = 10000000.0


def _central_meridian_rad(zone: int) -> float:
    return math.radians(-183.0 + zone * 6.0)


def wgs84_to_webmercator(lat: float, lon: float) -> tuple[float, float]:
    """Project ``(lat, lon)`` degrees to Web Mercator ``(x, y)`` metres."""
    x = lon * (math.pi * _A) / 180.0
    y = math.log(math.tan((90.0 + lat) * math.pi / 360.0)) * _A
    return x, y


def wgs84_to_utm(lat: float, lon: float, zone: int, is_south: bool) -> tuple[float, float]:
    """Project ``(lat, lon)`` degrees to UTM ``(easting, northing)`` in ``zone``."""
    e2 = _ECC_SQ
    rad_lat = math.radians(lat)
    rad_lon = math.radians(lon)
    lon_origin = _central_meridian_rad(zone)

    sin_lat = math.sin(rad_lat)
    cos_lat = math.cos(rad_lat)
    tan_lat = math.tan(rad_lat)

    n = _A / math.sqrt(1.0 - e2 * sin_lat * sin_lat)
    t = tan_lat * tan_lat
    c = _ECC_PRIME_SQ * cos_lat * cos_lat
    a = cos_lat * (rad_lon - lon_origin)

    m = _A * (
        (1.0 - e2 / 4.0 - 3.0 * e2**2 / 64.0 - 5.0 * e2**3 / 256.0) * rad_lat
        - (3.0 * e2 / 8.0 + 3.0 * e2**2 / 32.0 + 45.0 * e2**3 / 1024.0) * math.sin(2.0 * rad_lat)
        + (15.0 * e2**2 / 256.0 + 45.0 * e2**3 / 1024.0) * math.sin(4.0 * rad_lat)
        - (35.0 * e2**3 / 3072.0) * math.sin(6.0 * rad_lat)
    )

    x = (
        _K0
        * n
        * a
        * (
            1.0
            + a**2 / 6.0 * (1.0 - t + c)
            + a**4 / 120.0 * (5.0 - 18.0 * t + t * t + 72.0 * c - 58.0 * _ECC_PRIME_SQ)
        )
        + _FALSE_EASTING
    )
    y = _K0 * (
        m
        + n
        * tan_lat
        * (
            a**2 / 2.0
            + a**4 / 24.0 * (5.0 - t + 9.0 * c + 4.0 * c * c)
            + a**6 / 720.0 * (61.0 - 58.0 * t + t * t + 600.0 * c - 330.0 * _ECC_PRIME_SQ)
        )
    )
    if is_south:
        y += _FALSE_NORTHING_SOUTH
    return x, y


def wgs84_to_cad(
    lat: float, lon: float, zone: int, is_south: bool, use_3857: bool
) -> tuple[float, float]:
    """Project to Web Mercator when ``use_3857`` is set, otherwise to UTM."""
    if use_3857:
        return wgs84_to_webmercator(lat, lon)
    return wgs84_to_utm(lat, lon, zone, is_south)


def webmercator_to_wgs84(x: float, y: float) -> tuple[float, float]:
    """Unproject Web Mercator ``(x, y)`` metres to ``(lat, lon)`` degrees."""
    lon = (x / _A) * 180.0 / math.pi
    lat = math.atan(math.exp(y / _A)) * 360.0 / math.pi - 90.0
    return lat, lon


def utm_to_wgs84(x: float, y: float, zone: int, is_south: bool) -> tuple[float, float]:
    """Unproject UTM ``(easting, northing)`` in ``zone`` to ``(lat, lon)`` degrees."""
    e2 = _ECC_SQ
    root = math.sqrt(1.0 - e2)
    e1 = (1.0 - root) / (1.0 + root)

    x_adj = x - _FALSE_EASTING
    y_adj = y - _FALSE_NORTHING_SOUTH if is_south else y

    m = y_adj / _K0
    mu = m / (_A * (1.0 - e2 / 4.0 - 3.0 * e2**2 / 64.0 - 5.0 * e2**3 / 256.0))

    phi1 = (
        mu
        + (3.0 * e1 / 2.0 - 27.0 * e1**3 / 32.0) * math.sin(2.0 * mu)
        + (21.0 * e1**2 / 16.0 - 55.0 * e1**4 / 32.0) * math.sin(4.0 * mu)
        + (151.0 * e1**3 / 96.0) * math.sin(6.0 * mu)
    )

    sin_phi = math.sin(phi1)
    cos_phi = math.cos(phi1)
    tan_phi = math.tan(phi1)

    n1 = _A / math.sqrt(1.0 - e2 * sin_phi * sin_phi)
    t1 = tan_phi * tan_phi
    c1 = _ECC_PRIME_SQ * cos_phi * cos_phi
    r1 = _A * (1.0 - e2) / math.pow(1.0 - e2 * sin_phi * sin_phi, 1.5)
    d = x_adj / (n1 * _K0)

    t_lat = phi1 - (n1 * tan_phi / r1) * (
        d**2 / 2.0
        - (5.0 + 3.0 * t1 + 10.0 * c1 - 4.0 * c1 * c1 - 9.0 * _ECC_PRIME_SQ) * d**4 / 24.0
        + (61.0 + 90.0 * t1 + 298.0 * c1 + 45.0 * t1 * t1 - 252.0 * _ECC_PRIME_SQ - 3.0 * c1 * c1)
        * d**6
        / 720.0
    )

    t_lon = _central_meridian_rad(zone) + (
        d
        - (1.0 + 2.0 * t1 + c1) * d**3 / 6.0
        + (5.0 - 2.0 * c1 + 28.0 * t1 - 3.0 * c1 * c1 + 8.0 * _ECC_PRIME_SQ + 24.0 * t1 * t1)
        * d**5
        / 120.0
    ) / cos_phi

    return math.degrees(t_lat), math.degrees(t_lon)


def cad_to_wgs84(
    x: float, y: float, zone: int, is_south: bool, use_3857: bool
) -> tuple[float, float]:
    """Unproject from Web Mercator when ``use_3857`` is set, otherwise from UTM."""
    if use_3857:
        return webmercator_to_wgs84(x, y)
    return utm_to_wgs84(x, y, zone, is_south)