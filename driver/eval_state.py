"""
Evaluate one thermodynamic state from a tabulated fluid.

Responsibilities:
- Load TableFluidConfig from YAML and the property table it points to.
- Set the state from one input pair (rhoe, Prho, rhoT, rhoh, PT, Ps, hs).
- Print the state and solve diagnostics as JSON.

Exit codes: 0 success, 2 strict-mode rejection, 99 unexpected error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from typing import Optional, Sequence

from core.config import load_table_fluid_config
from core.logging_utils import get_log_level_from_env, setup_logging
from properties.table_fluid import TableFluid, TableFluidError, build_table_fluid

logger = logging.getLogger(__name__)


def _diagnostics_payload(fluid: TableFluid) -> dict:
    diag = fluid.diagnostics
    if diag is None:
        return {}
    payload = {"pair": diag.pair, "extrapolated": diag.extrapolated}
    for name in ("outer", "inner"):
        d = getattr(diag, name)
        if d is not None:
            payload[name] = {
                "status": d.status.value,
                "n_iter": d.n_iter,
                "n_eval": d.n_eval,
                "residual": d.residual,
            }
    return payload


def eval_state(
    cfg_path: str,
    pair: str,
    a: float,
    b: float,
    *,
    log_level: int | str = logging.WARNING,
    stream=None,
) -> int:
    """Evaluate one state and write JSON to stream. Return 0 on success, non-zero on failure."""
    stream = sys.stdout if stream is None else stream
    try:
        setup_logging(level=get_log_level_from_env(default=log_level))
        cfg = load_table_fluid_config(cfg_path)
        fluid = build_table_fluid(cfg)
        code = 0
        try:
            fluid.set_state(pair, a, b)
        except TableFluidError as exc:
            logger.error("%s", exc)
            code = 2
        json.dump(
            {"state": fluid.state.as_dict(), "diagnostics": _diagnostics_payload(fluid)},
            stream,
            indent=2,
        )
        stream.write("\n")
        return code
    except Exception:
        logger.error("Unhandled exception:\n%s", traceback.format_exc())
        return 99


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate a tabulated fluid state.")
    parser.add_argument("config_yaml", help="Path to the table fluid YAML file.")
    parser.add_argument(
        "--pair",
        choices=tuple(TableFluid.SETTERS),
        required=True,
        help="Input coordinate pair, in setter argument order (e.g. Prho = P then rho).",
    )
    parser.add_argument(
        "--values",
        nargs=2,
        type=float,
        required=True,
        metavar=("A", "B"),
        help="The two input values for the pair.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level (overridden by TABLE_EOS_LOG_LEVEL).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    return eval_state(
        args.config_yaml,
        args.pair,
        args.values[0],
        args.values[1],
        log_level=args.log_level,
    )


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
