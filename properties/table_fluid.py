"""
Tabulated fluid model: state setters on top of the (rho, De) property table.

Cost classes:
- rho-e: one saturation call and one lookup per property.
- P-rho, rho-T, rho-h: one energy inversion (secant over e at fixed rho),
  whose residual re-evaluates the saturation curve and a lookup every step.
- P-T, P-s, h-s: an outer secant over rho whose residual runs a full energy
  inversion every step (at most max_iter**2 property evaluations).

Every setter replaces self.state wholesale and records self.diagnostics.
Nothing raises on the hot path: points off the grid are extrapolated and
solves that do not converge return their last iterate. strict=True turns
those outcomes into TableFluidError after the state has been written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.types import FluidState, PropertyTable, TableFluidConfig
from properties.residuals import DensityResidual, EnergyResidual, PropertyFn
from properties.saturation import SaturationCurve
from properties.table_interp import GridInterpolator
from solvers.root_types import RootDiagnostics, RootSolveResult, RootStatus
from solvers.secant import SecantSolver

logger = logging.getLogger(__name__)

# properties written by every evaluation, in state-field order
_STATE_PROPERTIES = (
    "pressure",
    "temperature",
    "sound_speed2",
    "dpdrho_e",
    "dpde_rho",
    "dtdrho_e",
    "dtde_rho",
    "cv",
    "cp",
)


@dataclass(slots=True)
class StateDiagnostics:
    """How the last state was obtained."""

    pair: str
    inner: Optional[RootDiagnostics] = None
    outer: Optional[RootDiagnostics] = None
    extrapolated: bool = False

    @property
    def ok(self) -> bool:
        for diag in (self.inner, self.outer):
            if diag is not None and diag.status is not RootStatus.CONVERGED:
                return False
        return not self.extrapolated

    def describe(self) -> str:
        parts = [f"pair={self.pair}"]
        if self.outer is not None:
            parts.append(f"outer={self.outer.status.value} (n_iter={self.outer.n_iter})")
        if self.inner is not None:
            parts.append(f"inner={self.inner.status.value} (n_iter={self.inner.n_iter})")
        if self.extrapolated:
            parts.append("extrapolated")
        return ", ".join(parts)


class TableFluidError(RuntimeError):
    """Raised in strict mode when a state was extrapolated or a solve did not converge."""

    def __init__(self, message: str, diagnostics: StateDiagnostics) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class TableFluid:
    """
    Fluid model evaluated from a shared, read-only PropertyTable.

    Parameters
    ----------
    table : PropertyTable
        Grid, saturation coefficients and property arrays. Referenced, never copied.
    compute_entropy : bool
        Also look up entropy on every evaluation (skipped otherwise).
    solver : SecantSolver, optional
        Used for both energy and density inversions.
    strict : bool
        Raise TableFluidError on non-converged or extrapolated states.
    """

    def __init__(
        self,
        table: PropertyTable,
        compute_entropy: bool = False,
        solver: Optional[SecantSolver] = None,
        strict: bool = False,
    ) -> None:
        if compute_entropy and not table.has("entropy"):
            raise ValueError("compute_entropy=True but the table has no 'entropy' property.")
        self.table = table
        self.compute_entropy = bool(compute_entropy)
        self.solver = solver if solver is not None else SecantSolver()
        self.strict = bool(strict)

        self.saturation = SaturationCurve(table.esat_coeffs)
        self.interp = GridInterpolator(table.axes)
        self.state = FluidState()
        self.diagnostics: Optional[StateDiagnostics] = None

    # ------------------------------------------------------------------
    # Property functions of (rho, e)
    # ------------------------------------------------------------------
    def esat_rho(self, rho: float) -> float:
        return self.saturation.esat(rho)

    def _lookup(self, key: str, rho: float, e: float) -> float:
        de = self.saturation.de(rho, e)
        return self.interp.lookup(rho, de, self.table.get(key))

    def pressure_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("pressure", rho, e)

    def temperature_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("temperature", rho, e)

    def enthalpy_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("enthalpy", rho, e)

    def entropy_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("entropy", rho, e)

    def cv_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("cv", rho, e)

    def cp_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("cp", rho, e)

    def sound_speed2_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("sound_speed2", rho, e)

    def dpdrho_e_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("dpdrho_e", rho, e)

    def dpde_rho_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("dpde_rho", rho, e)

    def dtdrho_e_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("dtdrho_e", rho, e)

    def dtde_rho_rhoe(self, rho: float, e: float) -> float:
        return self._lookup("dtde_rho", rho, e)

    # ------------------------------------------------------------------
    # Inversions
    # ------------------------------------------------------------------
    def invert_energy(self, rho: float, target: float, prop: PropertyFn) -> RootSolveResult:
        """Find e with prop(rho, e) = target, seeded at e_sat(rho) + De_min."""
        e0 = self.saturation.esat(rho) + self.table.axes.de_bounds[0]
        return self.solver.solve(e0, EnergyResidual(prop, float(rho), float(target)))

    def energy_rhoP(self, rho: float, P: float) -> RootSolveResult:
        return self.invert_energy(rho, P, self.pressure_rhoe)

    def energy_rhoT(self, rho: float, T: float) -> RootSolveResult:
        return self.invert_energy(rho, T, self.temperature_rhoe)

    def energy_rhoh(self, rho: float, h: float) -> RootSolveResult:
        return self.invert_energy(rho, h, self.enthalpy_rhoe)

    def _invert_density(self, residual: DensityResidual) -> RootSolveResult:
        rho0 = self.table.axes.rho_bounds[0]
        return self.solver.solve(rho0, residual)

    def density_PT(self, P: float, T: float) -> RootSolveResult:
        """Density at which the pressure-consistent energy gives temperature T."""
        return self._invert_density(
            DensityResidual(self.energy_rhoP, P, self.temperature_rhoe, T)
        )

    def density_Ps(self, P: float, s: float) -> RootSolveResult:
        self.table.get("entropy")  # KeyError up front when entropy is not tabulated
        return self._invert_density(DensityResidual(self.energy_rhoP, P, self.entropy_rhoe, s))

    def density_hs(self, h: float, s: float) -> RootSolveResult:
        self.table.get("entropy")  # KeyError up front when entropy is not tabulated
        return self._invert_density(DensityResidual(self.energy_rhoh, h, self.entropy_rhoe, s))

    # ------------------------------------------------------------------
    # State setters
    # ------------------------------------------------------------------
    def _evaluate(self, rho: float, e: float) -> bool:
        """Overwrite self.state from the table at (rho, e); return the extrapolation flag."""
        rho = float(rho)
        e = float(e)
        loc = self.interp.locate(rho, self.saturation.de(rho, e))
        values = {key: self.interp.blend(loc, self.table.get(key)) for key in _STATE_PROPERTIES}
        if self.compute_entropy:
            values["entropy"] = self.interp.blend(loc, self.table.get("entropy"))
        self.state = FluidState(density=rho, energy=e, **values)
        return loc.extrapolated

    def _finish(
        self,
        pair: str,
        rho: float,
        e: float,
        inner: Optional[RootSolveResult] = None,
        outer: Optional[RootSolveResult] = None,
    ) -> None:
        extrapolated = self._evaluate(rho, e)
        diag = StateDiagnostics(
            pair=pair,
            inner=None if inner is None else inner.diag,
            outer=None if outer is None else outer.diag,
            extrapolated=extrapolated,
        )
        self.diagnostics = diag
        if extrapolated:
            logger.debug("state %s at rho=%.6e e=%.6e lies outside the table", pair, rho, e)
        if self.strict and not diag.ok:
            logger.warning("strict table lookup failed: %s", diag.describe())
            raise TableFluidError(f"Table state not trusted: {diag.describe()}", diag)

    def set_state_rhoe(self, rho: float, e: float) -> None:
        self._finish("rhoe", rho, e)

    def set_state_Prho(self, P: float, rho: float) -> None:
        inner = self.energy_rhoP(rho, P)
        self._finish("Prho", rho, inner.x, inner=inner)

    def set_state_rhoT(self, rho: float, T: float) -> None:
        inner = self.energy_rhoT(rho, T)
        self._finish("rhoT", rho, inner.x, inner=inner)

    def set_state_rhoh(self, rho: float, h: float) -> None:
        inner = self.energy_rhoh(rho, h)
        self._finish("rhoh", rho, inner.x, inner=inner)

    def set_state_PT(self, P: float, T: float) -> None:
        outer = self.density_PT(P, T)
        inner = self.energy_rhoP(outer.x, P)
        self._finish("PT", outer.x, inner.x, inner=inner, outer=outer)

    def set_state_Ps(self, P: float, s: float) -> None:
        outer = self.density_Ps(P, s)
        inner = self.energy_rhoP(outer.x, P)
        self._finish("Ps", outer.x, inner.x, inner=inner, outer=outer)

    def set_state_hs(self, h: float, s: float) -> None:
        outer = self.density_hs(h, s)
        inner = self.energy_rhoh(outer.x, h)
        self._finish("hs", outer.x, inner.x, inner=inner, outer=outer)

    def set_energy_Prho(self, P: float, rho: float) -> None:
        """Update only state.energy from (P, rho); other fields keep their values."""
        inner = self.energy_rhoP(rho, P)
        self.state.energy = inner.x
        loc = self.interp.locate(rho, self.saturation.de(rho, inner.x))
        self.diagnostics = StateDiagnostics(
            pair="Prho_energy", inner=inner.diag, extrapolated=loc.extrapolated
        )
        if self.strict and not self.diagnostics.ok:
            logger.warning("strict table lookup failed: %s", self.diagnostics.describe())
            raise TableFluidError(
                f"Table energy not trusted: {self.diagnostics.describe()}", self.diagnostics
            )

    # dispatch used by the driver
    SETTERS = {
        "rhoe": "set_state_rhoe",
        "Prho": "set_state_Prho",
        "rhoT": "set_state_rhoT",
        "rhoh": "set_state_rhoh",
        "PT": "set_state_PT",
        "Ps": "set_state_Ps",
        "hs": "set_state_hs",
    }

    def set_state(self, pair: str, a: float, b: float) -> None:
        """Dispatch to set_state_<pair>(a, b); unknown pairs raise ValueError."""
        try:
            name = self.SETTERS[pair]
        except KeyError:
            raise ValueError(f"Unknown input pair '{pair}'. Known: {list(self.SETTERS)}") from None
        getattr(self, name)(a, b)


def build_table_fluid(cfg: TableFluidConfig, table: Optional[PropertyTable] = None) -> TableFluid:
    """Build a TableFluid from config, loading the table file unless one is given."""
    if table is None:
        from properties.table_db import load_property_table

        table = load_property_table(cfg.table.path)
    solver = SecantSolver(
        max_iter=cfg.solver.max_iter,
        rtol=cfg.solver.rtol,
        perturbation=cfg.solver.perturbation,
    )
    logger.info(
        "TableFluid: grid %dx%d, rho in [%.6g, %.6g], De in [%.6g, %.6g], entropy=%s, strict=%s",
        table.axes.nx,
        table.axes.ny,
        table.axes.rho_bounds[0],
        table.axes.rho_bounds[1],
        table.axes.de_bounds[0],
        table.axes.de_bounds[1],
        cfg.fluid.compute_entropy,
        cfg.fluid.strict,
    )
    return TableFluid(
        table,
        compute_entropy=cfg.fluid.compute_entropy,
        solver=solver,
        strict=cfg.fluid.strict,
    )
