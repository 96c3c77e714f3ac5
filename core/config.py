"""
YAML loader for TableFluidConfig.

Layout:
    table:
      path: co2_table.npz      # resolved against the YAML file's directory
    fluid:
      compute_entropy: true
      strict: false
    solver:
      max_iter: 20
      rtol: 1.0e-9
      perturbation: 0.01
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from core.types import FluidSection, SolverSection, TableFluidConfig, TableSection


def _resolve_path(base: Path, value: str | Path) -> Path:
    """Resolve a possibly relative path against base."""
    path = Path(value).expanduser()
    return path if path.is_absolute() else (base / path).resolve()


def _read_yaml_text(cfg_file: Path) -> str:
    try:
        return cfg_file.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        return cfg_file.read_text()


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    sec = raw.get(name, {}) or {}
    if not isinstance(sec, Mapping):
        raise ValueError(f"Config section '{name}' must be a mapping (got {type(sec).__name__}).")
    return sec


def config_from_dict(raw: Mapping[str, Any], base: Path | None = None) -> TableFluidConfig:
    """Build TableFluidConfig from an already parsed mapping."""
    base = Path.cwd() if base is None else Path(base)
    if not isinstance(raw, Mapping):
        raise ValueError("Config root must be a mapping.")

    table_raw = _section(raw, "table")
    if not table_raw.get("path"):
        raise ValueError("table.path must be provided.")
    table = TableSection(path=_resolve_path(base, table_raw["path"]))

    fluid_raw = _section(raw, "fluid")
    fluid = FluidSection(
        compute_entropy=bool(fluid_raw.get("compute_entropy", False)),
        strict=bool(fluid_raw.get("strict", False)),
    )

    solver_raw = _section(raw, "solver")
    solver = SolverSection(
        max_iter=int(solver_raw.get("max_iter", 20)),
        rtol=float(solver_raw.get("rtol", 1.0e-9)),
        perturbation=float(solver_raw.get("perturbation", 0.01)),
    )
    return TableFluidConfig(table=table, fluid=fluid, solver=solver)


def load_table_fluid_config(cfg_path: str | Path) -> TableFluidConfig:
    """Load YAML file into TableFluidConfig with nested dataclasses."""
    cfg_file = Path(cfg_path).expanduser().resolve()
    if not cfg_file.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_file}")
    raw = yaml.safe_load(_read_yaml_text(cfg_file)) or {}
    return config_from_dict(raw, base=cfg_file.parent)
