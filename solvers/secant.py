"""
Secant solver for scalar residuals.

This module only runs the iteration; residuals are built elsewhere
(properties.residuals). The loop is bounded by max_iter and never raises:
non-convergence and degenerate steps are reported through RootStatus.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List

from solvers.root_types import RootDiagnostics, RootSolveResult, RootStatus

logger = logging.getLogger(__name__)

Residual = Callable[[float], float]

DEFAULT_MAX_ITER = 20
DEFAULT_RTOL = 1.0e-9
DEFAULT_PERTURBATION = 0.01


class SecantSolver:
    """
    Secant iteration seeded at x0 and (1 + perturbation)*x0.

    Convergence test: |f(x_n)| <= rtol*|x0|, with x0 the original seed
    (not the current iterate). At most max_iter secant updates are made;
    the last evaluated iterate is returned whatever the outcome.
    """

    def __init__(
        self,
        max_iter: int = DEFAULT_MAX_ITER,
        rtol: float = DEFAULT_RTOL,
        perturbation: float = DEFAULT_PERTURBATION,
    ) -> None:
        if int(max_iter) < 1:
            raise ValueError(f"max_iter must be >= 1 (got {max_iter}).")
        if float(perturbation) == 0.0:
            raise ValueError("perturbation must be non-zero (both seeds would coincide).")
        self.max_iter = int(max_iter)
        self.rtol = float(rtol)
        self.perturbation = float(perturbation)

    def solve(self, x0: float, residual: Residual) -> RootSolveResult:
        x0 = float(x0)
        tol = self.rtol * abs(x0)

        x = x0
        y = float(residual(x))
        x_next = (1.0 + self.perturbation) * x0
        history: List[float] = [y]
        n_iter = 0
        n_eval = 1
        status = None
        message = None

        while abs(y) > tol and n_iter < self.max_iter:
            y_next = float(residual(x_next))
            n_eval += 1
            history.append(y_next)
            if not math.isfinite(y_next):
                status = RootStatus.DEGENERATE
                message = f"non-finite residual at x={x_next!r}"
                break
            dy = y - y_next
            dx = x - x_next
            x, y = x_next, y_next
            n_iter += 1
            if abs(y) <= tol:
                break
            if dy == 0.0:
                status = RootStatus.DEGENERATE
                message = "zero residual difference between consecutive iterates"
                break
            x_next = x_next - y_next * dx / dy

        if status is None:
            if abs(y) <= tol:
                status = RootStatus.CONVERGED
            elif not math.isfinite(y):
                status = RootStatus.DEGENERATE
                message = "non-finite residual at the seed"
            else:
                status = RootStatus.MAX_ITERATIONS

        if status is not RootStatus.CONVERGED:
            logger.debug(
                "secant stopped with %s after %d iterations: x=%.9e |f|=%.3e tol=%.3e",
                status.value,
                n_iter,
                x,
                abs(y),
                tol,
            )

        diag = RootDiagnostics(
            status=status,
            method="secant",
            n_iter=n_iter,
            n_eval=n_eval,
            x0=x0,
            tol=tol,
            residual=y,
            history_residual=history,
            message=message,
        )
        return RootSolveResult(x=x, diag=diag)


def secant_root(x0: float, residual: Residual) -> float:
    """Solve residual(x) = 0 with default settings and return only the iterate."""
    return SecantSolver().solve(x0, residual).x
