"""
Property table provider: assemble PropertyTable objects and move them to/from .npz files.

Archive layout (numpy .npz):
- rho_bounds : (2,)  density bounds [kg/m^3]
- de_bounds  : (2,)  energy-deviation bounds [J/kg]
- nx, ny     : ()    node counts
- esat_coeffs: (4,)  saturation-energy coefficients
- one (nx*ny,) array per property key (pressure, temperature, ...), row-major ix*ny + iy

Usage:
    table = load_property_table("tables/co2.npz")
    fluid = TableFluid(table, compute_entropy=True)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Mapping, Sequence, Tuple

import numpy as np

from core.types import (
    N_ESAT_COEFFS,
    OPTIONAL_PROPERTY_KEYS,
    PROPERTY_KEYS,
    PropertyTable,
    TableAxes,
)

logger = logging.getLogger(__name__)

_HEADER_KEYS = ("rho_bounds", "de_bounds", "nx", "ny", "esat_coeffs")


def _flatten(key: str, arr, nx: int, ny: int) -> np.ndarray:
    """Accept (nx, ny) grids or flat (nx*ny,) arrays; return the flat row-major view."""
    a = np.asarray(arr, dtype=np.float64)
    if a.shape == (nx, ny):
        return np.ascontiguousarray(a).reshape(nx * ny)
    if a.shape == (nx * ny,):
        return a
    raise ValueError(
        f"Property '{key}' has shape {a.shape}; expected ({nx}, {ny}) or ({nx * ny},)."
    )


def build_property_table(
    rho_bounds: Tuple[float, float],
    de_bounds: Tuple[float, float],
    nx: int,
    ny: int,
    esat_coeffs: Sequence[float],
    values: Mapping[str, np.ndarray],
) -> PropertyTable:
    """
    Build a PropertyTable from axis bounds, coefficients and per-property arrays.

    Args:
        rho_bounds: (rho_min, rho_max)
        de_bounds: (De_min, De_max)
        nx, ny: Node counts along density and energy deviation
        esat_coeffs: 4 saturation-energy coefficients
        values: property key -> (nx, ny) or (nx*ny,) array

    Returns:
        PropertyTable (arrays flagged read-only)

    Raises:
        ValueError: On bad axes, unknown/missing properties or wrong shapes
    """
    axes = TableAxes(rho_bounds=tuple(rho_bounds), de_bounds=tuple(de_bounds), nx=nx, ny=ny)
    flat = {key: _flatten(key, arr, axes.nx, axes.ny) for key, arr in values.items()}
    return PropertyTable(axes=axes, esat_coeffs=tuple(esat_coeffs), values=flat)


def tabulate(
    rho_bounds: Tuple[float, float],
    de_bounds: Tuple[float, float],
    nx: int,
    ny: int,
    esat_coeffs: Sequence[float],
    funcs: Mapping[str, Callable[[np.ndarray, np.ndarray], np.ndarray]],
) -> PropertyTable:
    """
    Sample callables f(rho, De) on the grid nodes and build a PropertyTable.

    Each callable receives broadcast (nx, ny) arrays of node coordinates.
    """
    rho = np.linspace(float(rho_bounds[0]), float(rho_bounds[1]), int(nx))
    de = np.linspace(float(de_bounds[0]), float(de_bounds[1]), int(ny))
    R, D = np.meshgrid(rho, de, indexing="ij")
    values = {key: np.broadcast_to(f(R, D), R.shape) for key, f in funcs.items()}
    return build_property_table(rho_bounds, de_bounds, nx, ny, esat_coeffs, values)


def load_property_table(npz_path: str | Path) -> PropertyTable:
    """
    Load a property table from a .npz archive.

    Raises:
        FileNotFoundError: If the archive doesn't exist
        ValueError: If header entries or required properties are missing
    """
    npz_path = Path(npz_path)
    if not npz_path.exists():
        raise FileNotFoundError(f"Property table file not found: {npz_path}")

    with np.load(npz_path, allow_pickle=False) as data:
        for key in _HEADER_KEYS:
            if key not in data.files:
                raise ValueError(f"Missing header entry '{key}' in {npz_path}")

        esat_coeffs = np.asarray(data["esat_coeffs"], dtype=np.float64).ravel()
        if esat_coeffs.size != N_ESAT_COEFFS:
            raise ValueError(
                f"esat_coeffs in {npz_path} must have {N_ESAT_COEFFS} entries (got {esat_coeffs.size})"
            )

        required = [k for k in PROPERTY_KEYS if k not in OPTIONAL_PROPERTY_KEYS]
        for key in required:
            if key not in data.files:
                raise ValueError(f"Missing required property '{key}' in {npz_path}")

        values = {key: np.array(data[key], dtype=np.float64) for key in PROPERTY_KEYS if key in data.files}
        ignored = sorted(set(data.files) - set(PROPERTY_KEYS) - set(_HEADER_KEYS))
        if ignored:
            logger.warning("Ignoring unknown entries in %s: %s", npz_path, ignored)

        table = build_property_table(
            rho_bounds=tuple(np.asarray(data["rho_bounds"], dtype=np.float64).ravel()),
            de_bounds=tuple(np.asarray(data["de_bounds"], dtype=np.float64).ravel()),
            nx=int(data["nx"]),
            ny=int(data["ny"]),
            esat_coeffs=tuple(esat_coeffs),
            values=values,
        )

    logger.info(
        "Loaded property table %s (%dx%d, properties=%s)",
        npz_path,
        table.axes.nx,
        table.axes.ny,
        sorted(table.values),
    )
    return table


def save_property_table(table: PropertyTable, npz_path: str | Path) -> Path:
    """Write a PropertyTable to a .npz archive readable by load_property_table."""
    npz_path = Path(npz_path)
    if npz_path.suffix != ".npz":
        # append like np.savez does, so "co2.v2" becomes "co2.v2.npz"
        npz_path = npz_path.with_name(npz_path.name + ".npz")
    npz_path.parent.mkdir(parents=True, exist_ok=True)
    axes = table.axes
    np.savez(
        npz_path,
        rho_bounds=np.asarray(axes.rho_bounds, dtype=np.float64),
        de_bounds=np.asarray(axes.de_bounds, dtype=np.float64),
        nx=np.int64(axes.nx),
        ny=np.int64(axes.ny),
        esat_coeffs=np.asarray(table.esat_coeffs, dtype=np.float64),
        **{key: np.asarray(arr) for key, arr in table.values.items()},
    )
    return npz_path
