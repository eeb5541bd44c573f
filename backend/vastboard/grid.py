"""
Spatial discretization of the city plane.

A cell is identified either by its index ``(floor(x/s), floor(y/s))`` or by its
lower-left origin ``(floor(x/s)*s, floor(y/s)*s)``. Both conventions are in use by
the dashboard and are kept apart as named GridKey variants.
"""
import math
from enum import Enum

from .errors import InputError


class GridKey(str, Enum):
    INDEX = "index"
    ORIGIN = "origin"


def validate_cell_size(cell_size):
    if isinstance(cell_size, bool) or not isinstance(cell_size, (int, float)):
        raise InputError(f"cell_size must be a number, got {cell_size!r}")
    if not math.isfinite(cell_size) or cell_size <= 0:
        raise InputError(f"cell_size must be positive, got {cell_size}")
    return cell_size


def cell_of(x, y, cell_size):
    """Index of the cell containing (x, y)."""
    validate_cell_size(cell_size)
    return math.floor(x / cell_size), math.floor(y / cell_size)


def center_of(gx, gy, cell_size):
    """Center coordinate of the cell with index (gx, gy)."""
    validate_cell_size(cell_size)
    half = cell_size / 2
    return gx * cell_size + half, gy * cell_size + half


def cell_key(gx, gy, cell_size, key=GridKey.INDEX):
    """Externally visible key of an indexed cell under the given convention."""
    if GridKey(key) is GridKey.ORIGIN:
        return _tidy(gx * cell_size), _tidy(gy * cell_size)
    return gx, gy


def index_from_key(kx, ky, cell_size, key=GridKey.INDEX):
    """Inverse of cell_key: recover the cell index from an emitted key."""
    validate_cell_size(cell_size)
    if GridKey(key) is GridKey.ORIGIN:
        # emitted origins are gx * cell_size, so the quotient only misses an integer by rounding
        return math.floor(round(kx / cell_size, 9)), math.floor(round(ky / cell_size, 9))
    if kx != math.floor(kx) or ky != math.floor(ky):
        raise InputError(f"grid index must be integral, got ({kx}, {ky})")
    return int(kx), int(ky)


def polygon_centroid(vertices):
    """
    Area-weighted centroid of a simple polygon given as an ordered ring.

    The ring may or may not repeat its first vertex. Degenerate rings (zero area)
    fall back to the mean of their distinct vertices.
    """
    points = list(vertices)
    if not points:
        raise InputError("polygon has no vertices")
    if len(points) > 1 and points[0] == points[-1]:
        points = points[:-1]

    area2 = 0.0
    cx = 0.0
    cy = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:] + points[:1]):
        cross = x0 * y1 - x1 * y0
        area2 += cross
        cx += (x0 + x1) * cross
        cy += (y0 + y1) * cross

    if abs(area2) < 1e-12:
        n = len(points)
        return sum(p[0] for p in points) / n, sum(p[1] for p in points) / n
    return cx / (3.0 * area2), cy / (3.0 * area2)


def _tidy(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
