"""
Strongly typed containers for the tabulated fluid: grid axes, property table, state, config.

Global layout conventions:
- Nx: number of density nodes; Ny: number of energy-deviation nodes; both >= 2
- Axes are uniform: rho_bounds = (rho_min, rho_max), de_bounds = (de_min, de_max)
- Property arrays are flattened row-major with index ix*Ny + iy (density-major, energy-minor)
- De = e - e_sat(rho) is the second table coordinate, never raw energy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.float64]

PROPERTY_KEYS: Tuple[str, ...] = (
    "pressure",
    "temperature",
    "enthalpy",
    "entropy",
    "cv",
    "cp",
    "sound_speed2",
    "dpdrho_e",
    "dpde_rho",
    "dtdrho_e",
    "dtde_rho",
)

# entropy may be absent; everything else is needed by the state setters
OPTIONAL_PROPERTY_KEYS: Tuple[str, ...] = ("entropy",)

N_ESAT_COEFFS = 4


@dataclass(frozen=True, slots=True)
class TableAxes:
    """Uniform 2-D grid over (density, energy deviation)."""

    rho_bounds: Tuple[float, float]
    de_bounds: Tuple[float, float]
    nx: int
    ny: int

    def __post_init__(self) -> None:
        rho0, rho1 = (float(v) for v in self.rho_bounds)
        de0, de1 = (float(v) for v in self.de_bounds)
        if not rho1 > rho0:
            raise ValueError(f"rho_bounds must be strictly increasing (got {self.rho_bounds}).")
        if not de1 > de0:
            raise ValueError(f"de_bounds must be strictly increasing (got {self.de_bounds}).")
        if int(self.nx) < 2 or int(self.ny) < 2:
            raise ValueError(f"nx and ny must be >= 2 (got nx={self.nx}, ny={self.ny}).")
        object.__setattr__(self, "rho_bounds", (rho0, rho1))
        object.__setattr__(self, "de_bounds", (de0, de1))
        object.__setattr__(self, "nx", int(self.nx))
        object.__setattr__(self, "ny", int(self.ny))

    @property
    def size(self) -> int:
        return self.nx * self.ny

    @property
    def rho_nodes(self) -> FloatArray:
        return np.linspace(self.rho_bounds[0], self.rho_bounds[1], self.nx)

    @property
    def de_nodes(self) -> FloatArray:
        return np.linspace(self.de_bounds[0], self.de_bounds[1], self.ny)


@dataclass(frozen=True, slots=True)
class PropertyTable:
    """Immutable property tables sharing one set of axes.

    Attributes
    ----------
    axes : TableAxes
        Grid shared by every property.
    esat_coeffs : tuple of 4 floats
        Saturation-energy coefficients (constant, linear, sqrt, cube root in rho).
    values : read-only Mapping[str, ndarray]
        One flattened float64 array of length nx*ny per property key.
        Arrays are read-only views of the caller's data; nothing is copied.
    """

    axes: TableAxes
    esat_coeffs: Tuple[float, float, float, float]
    values: Mapping[str, FloatArray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        coeffs = tuple(float(c) for c in self.esat_coeffs)
        if len(coeffs) != N_ESAT_COEFFS:
            raise ValueError(
                f"esat_coeffs must have {N_ESAT_COEFFS} entries (got {len(coeffs)})."
            )
        object.__setattr__(self, "esat_coeffs", coeffs)

        checked = {}
        for key, arr in self.values.items():
            if key not in PROPERTY_KEYS:
                raise ValueError(f"Unknown property '{key}'. Known: {list(PROPERTY_KEYS)}")
            # own view so the read-only flag does not freeze the caller's array
            a = np.asarray(arr, dtype=np.float64).view()
            if a.ndim != 1 or a.size != self.axes.size:
                raise ValueError(
                    f"Property '{key}' must be a flat array of length nx*ny={self.axes.size} "
                    f"(got shape {a.shape})."
                )
            a.flags.writeable = False
            checked[key] = a

        missing = [k for k in PROPERTY_KEYS if k not in checked and k not in OPTIONAL_PROPERTY_KEYS]
        if missing:
            raise ValueError(f"PropertyTable is missing required properties: {missing}")
        object.__setattr__(self, "values", MappingProxyType(checked))

    def has(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str) -> FloatArray:
        """Return the flattened array for one property (KeyError if absent)."""
        try:
            return self.values[key]
        except KeyError:
            raise KeyError(
                f"Property '{key}' is not tabulated. Available: {sorted(self.values)}"
            ) from None


@dataclass(slots=True)
class FluidState:
    """Thermodynamic state written by TableFluid.set_state_* (replaced wholesale)."""

    density: float = np.nan
    energy: float = np.nan
    pressure: float = np.nan
    temperature: float = np.nan
    sound_speed2: float = np.nan
    cv: float = np.nan
    cp: float = np.nan
    dpdrho_e: float = np.nan
    dpde_rho: float = np.nan
    dtdrho_e: float = np.nan
    dtde_rho: float = np.nan
    entropy: Optional[float] = None

    @property
    def sound_speed(self) -> float:
        return float(np.sqrt(self.sound_speed2))

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.__slots__}


# -----------------------------------------------------------------------------
# Configuration (YAML-aligned)
# -----------------------------------------------------------------------------
@dataclass(slots=True)
class TableSection:
    """Where the tabulated data lives (table block)."""

    path: Path

    def __post_init__(self) -> None:
        if not isinstance(self.path, Path):
            raise TypeError("table.path must be pathlib.Path (loader must convert str -> Path).")


@dataclass(slots=True)
class FluidSection:
    """Evaluator options (fluid block)."""

    compute_entropy: bool = False
    strict: bool = False


@dataclass(slots=True)
class SolverSection:
    """Secant settings shared by the energy and density inversions (solver block)."""

    max_iter: int = 20
    rtol: float = 1.0e-9
    perturbation: float = 0.01

    def __post_init__(self) -> None:
        if self.max_iter < 1:
            raise ValueError(f"solver.max_iter must be >= 1 (got {self.max_iter}).")
        if self.rtol < 0.0:
            raise ValueError(f"solver.rtol must be non-negative (got {self.rtol}).")
        if self.perturbation == 0.0:
            raise ValueError("solver.perturbation must be non-zero.")


@dataclass(slots=True)
class TableFluidConfig:
    """Top-level configuration assembled from YAML."""

    table: TableSection
    fluid: FluidSection = field(default_factory=FluidSection)
    solver: SolverSection = field(default_factory=SolverSection)
