"""
Explicit residual objects handed to the secant solver.

Each residual holds its inputs (the property function, the fixed coordinate
and the target) instead of closing over the fluid, so the read-only table
dependency stays visible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from solvers.root_types import RootSolveResult

# f(rho, e) -> property value
PropertyFn = Callable[[float, float], float]
# g(rho, target) -> RootSolveResult of the energy inversion at that density
EnergyInversion = Callable[[float, float], RootSolveResult]


@dataclass(frozen=True, slots=True)
class EnergyResidual:
    """r(e) = prop(rho, e) - target at fixed density."""

    prop: PropertyFn
    rho: float
    target: float

    def __call__(self, e: float) -> float:
        return self.prop(self.rho, e) - self.target


class DensityResidual:
    """
    r(rho) = outer_prop(rho, e(rho)) - outer_target, where e(rho) comes from
    the energy inversion inner(rho, inner_target).

    The last inner result is kept so callers can report its diagnostics.
    """

    __slots__ = ("inner", "inner_target", "outer_prop", "outer_target", "last_inner")

    def __init__(
        self,
        inner: EnergyInversion,
        inner_target: float,
        outer_prop: PropertyFn,
        outer_target: float,
    ) -> None:
        self.inner = inner
        self.inner_target = float(inner_target)
        self.outer_prop = outer_prop
        self.outer_target = float(outer_target)
        self.last_inner: RootSolveResult | None = None

    def __call__(self, rho: float) -> float:
        res = self.inner(rho, self.inner_target)
        self.last_inner = res
        return self.outer_prop(rho, res.x) - self.outer_target
