"""
Bilinear lookup on the uniform (rho, De) grid with clamped linear extrapolation.

Query points outside the grid are not rejected: the lower cell index is
clamped to [0, n-2], so the nearest boundary cell's slope is extended
linearly. The blend runs along y (De) at the two x nodes first, then along x.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from core.types import FloatArray, TableAxes

# relative index margin within which a boundary point still counts as inside
EDGE_RTOL = 1e-9


@dataclass(frozen=True, slots=True)
class CellLocation:
    ix: float  # fractional density index
    iy: float  # fractional energy-deviation index
    ixl: int
    iyl: int
    extrapolated: bool


@dataclass(frozen=True, slots=True)
class LookupResult:
    value: float
    extrapolated: bool


def _lower_index(frac: float, n: int) -> int:
    # truncation then clamp; NaN maps to cell 0 so the blend carries the NaN
    if math.isnan(frac):
        return 0
    if frac <= 0.0:
        return 0
    if frac >= n - 2:
        return n - 2
    return int(frac)


def _inside(frac: float, n: int) -> bool:
    # round-off margin so a solved point on the last node is not flagged
    eps = EDGE_RTOL * (n - 1)
    return -eps <= frac <= (n - 1) + eps


class GridInterpolator:
    """Pure O(1) lookups against one set of axes."""

    __slots__ = ("axes", "_x0", "_y0", "_dx", "_dy", "_ny")

    def __init__(self, axes: TableAxes) -> None:
        self.axes = axes
        self._x0, x1 = axes.rho_bounds
        self._y0, y1 = axes.de_bounds
        self._dx = x1 - self._x0
        self._dy = y1 - self._y0
        self._ny = axes.ny

    def locate(self, x: float, y: float) -> CellLocation:
        nx, ny = self.axes.nx, self.axes.ny
        ix = (float(x) - self._x0) / self._dx * (nx - 1)
        iy = (float(y) - self._y0) / self._dy * (ny - 1)
        extrapolated = not (_inside(ix, nx) and _inside(iy, ny))
        return CellLocation(
            ix=ix,
            iy=iy,
            ixl=_lower_index(ix, nx),
            iyl=_lower_index(iy, ny),
            extrapolated=extrapolated,
        )

    def lookup(self, x: float, y: float, z: FloatArray) -> float:
        """Interpolate the flattened table z at (x, y) = (rho, De)."""
        loc = self.locate(x, y)
        return self.blend(loc, z)

    def lookup_with_status(self, x: float, y: float, z: FloatArray) -> LookupResult:
        loc = self.locate(x, y)
        return LookupResult(value=self.blend(loc, z), extrapolated=loc.extrapolated)

    def blend(self, loc: CellLocation, z: FloatArray) -> float:
        """Bilinear blend of z on an already located cell (y first, then x)."""
        ny = self._ny
        ixl, iyl = loc.ixl, loc.iyl
        ixr, iyr = ixl + 1, iyl + 1
        ty = loc.iy - iyl
        tx = loc.ix - ixl
        zl = z[ixl * ny + iyl] + ty * (z[ixl * ny + iyr] - z[ixl * ny + iyl])
        zr = z[ixr * ny + iyl] + ty * (z[ixr * ny + iyr] - z[ixr * ny + iyl])
        return float(zl + tx * (zr - zl))


def node_value(axes: TableAxes, z: FloatArray, i: int, j: int) -> float:
    """Stored value at lattice node (i, j)."""
    return float(np.asarray(z)[i * axes.ny + j])
