"""
Saturation-energy curve e_sat(rho) used to re-center the table energy axis.

e_sat(rho) = c0 + c1*rho + c2*rho**(1/2) + c3*rho**(1/3)

The polynomial is evaluated for any input. rho >= 0 is a precondition:
negative density yields NaN (numpy semantics), nothing is checked here.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.types import N_ESAT_COEFFS

ONE2 = 1.0 / 2.0
ONE3 = 1.0 / 3.0


class SaturationCurve:
    """Saturation energy as a function of density."""

    __slots__ = ("coeffs",)

    def __init__(self, coeffs: Sequence[float]) -> None:
        coeffs = tuple(float(c) for c in coeffs)
        if len(coeffs) != N_ESAT_COEFFS:
            raise ValueError(
                f"Saturation curve needs {N_ESAT_COEFFS} coefficients (got {len(coeffs)})."
            )
        self.coeffs = coeffs

    def esat(self, rho: float) -> float:
        c0, c1, c2, c3 = self.coeffs
        r = np.float64(rho)
        with np.errstate(invalid="ignore"):
            return float(c0 + c1 * r + c2 * np.power(r, ONE2) + c3 * np.power(r, ONE3))

    __call__ = esat

    def de(self, rho: float, e: float) -> float:
        """Energy deviation De = e - e_sat(rho) (the table's second coordinate)."""
        return float(e) - self.esat(rho)
