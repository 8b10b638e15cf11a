"""Spherical Web-Mercator projection onto the unit square."""

from __future__ import annotations

import numpy as np


def lng_to_x(lng):
    """Longitude in degrees to x in [0, 1]."""
    return np.asarray(lng, dtype=float) / 360.0 + 0.5


def lat_to_y(lat):
    """Latitude in degrees to y in [0, 1], clamped at the Mercator poles."""
    sin = np.sin(np.radians(np.asarray(lat, dtype=float)))
    with np.errstate(divide="ignore"):
        y = 0.5 - 0.25 * np.log((1.0 + sin) / (1.0 - sin)) / np.pi
    return np.clip(y, 0.0, 1.0)


def x_to_lng(x):
    return (np.asarray(x, dtype=float) - 0.5) * 360.0


def y_to_lat(y):
    y2 = np.radians(180.0 - np.asarray(y, dtype=float) * 360.0)
    return 360.0 * np.arctan(np.exp(y2)) / np.pi - 90.0


__all__ = ["lng_to_x", "lat_to_y", "x_to_lng", "y_to_lat"]
