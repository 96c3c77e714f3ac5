"""
Shared tables for the tabulated fluid tests.

The "linear" table is an ideal-gas-like model written directly in (rho, De):
every property is bilinear in (rho, De), so interpolation and linear
extrapolation reproduce it exactly and the inversions have closed-form answers.
"""

from __future__ import annotations

import numpy as np
import pytest

from properties.table_db import build_property_table, tabulate

GAMMA = 1.4
R_GAS = 287.0
CV = R_GAS / (GAMMA - 1.0)  # 717.5
CP = GAMMA * CV
E_OFF = 1.0e5  # model energy is De + E_OFF
S_DE = 0.01
S_RHO = -50.0

ESAT_COEFFS = (1.0e5, 20.0, 500.0, 300.0)
RHO_BOUNDS = (0.5, 2.0)
DE_BOUNDS = (-5.0e4, 5.0e5)
NX, NY = 31, 56


def linear_funcs(with_entropy: bool = True) -> dict:
    funcs = {
        "pressure": lambda r, d: (GAMMA - 1.0) * r * (d + E_OFF),
        "temperature": lambda r, d: (d + E_OFF) / CV,
        "enthalpy": lambda r, d: GAMMA * (d + E_OFF),
        "cv": lambda r, d: np.full_like(r, CV),
        "cp": lambda r, d: np.full_like(r, CP),
        "sound_speed2": lambda r, d: GAMMA * (GAMMA - 1.0) * (d + E_OFF),
        "dpdrho_e": lambda r, d: (GAMMA - 1.0) * (d + E_OFF),
        "dpde_rho": lambda r, d: (GAMMA - 1.0) * r,
        "dtdrho_e": lambda r, d: np.zeros_like(r),
        "dtde_rho": lambda r, d: np.full_like(r, 1.0 / CV),
    }
    if with_entropy:
        funcs["entropy"] = lambda r, d: S_DE * d + S_RHO * r
    return funcs


def make_linear_table(with_entropy: bool = True):
    return tabulate(RHO_BOUNDS, DE_BOUNDS, NX, NY, ESAT_COEFFS, linear_funcs(with_entropy))


def make_integer_table(seed: int = 7, with_entropy: bool = True):
    """
    Random integer-valued table on a grid whose nodes are exact in binary.

    rho in [0, 4] with 5 nodes, De in [0, 8] with 9 nodes: fractional indices of
    node coordinates are exact, and integer values keep the blend exact too.
    """
    rng = np.random.default_rng(seed)
    nx, ny = 5, 9
    keys = list(linear_funcs(with_entropy))
    values = {k: rng.integers(-1000, 1000, size=(nx, ny)).astype(np.float64) for k in keys}
    return build_property_table((0.0, 4.0), (0.0, 8.0), nx, ny, (0.0, 0.0, 0.0, 0.0), values)


@pytest.fixture
def linear_table():
    return make_linear_table()


@pytest.fixture
def integer_table():
    return make_integer_table()
