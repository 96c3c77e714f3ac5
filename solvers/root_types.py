"""
Shared scalar root-finding result types.

Goal:
- Energy and density inversions return the same structure.
- Callers on the hot path read only .x; tests and strict mode read .diag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RootStatus(str, Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DEGENERATE = "degenerate"


@dataclass(slots=True)
class RootDiagnostics:
    status: RootStatus
    method: str
    n_iter: int
    n_eval: int
    x0: float
    tol: float
    residual: float
    history_residual: List[float] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def converged(self) -> bool:
        return self.status is RootStatus.CONVERGED


@dataclass(slots=True)
class RootSolveResult:
    x: float
    diag: RootDiagnostics

    @property
    def status(self) -> RootStatus:
        return self.diag.status
