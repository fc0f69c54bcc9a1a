# src/lvgrowth/cli/fit_cli.py
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from lvgrowth.fit.batch import run_lv_batch
from lvgrowth.fit.config import LVFitConfig
from lvgrowth.fit.export import export_results
from lvgrowth.io.long_format import read_long_table, standardize_long


def add_fit_subcommand(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "fit",
        help="Fit dX/dt = X (mu - A X) to every group of a long-format CSV/XLSX.",
    )

    p.add_argument("input", help="Long table with group columns, a time column and a population column.")
    p.add_argument("--outdir", required=True, help="Output directory")
    p.add_argument("--group-cols", nargs="*", default=[], help="Columns identifying one series (e.g. strain treatment).")
    p.add_argument("--time-col", default="Time")
    p.add_argument("--x-col", default="X")
    p.add_argument("--n-jobs", type=int, default=1, help="Parallel workers (joblib). Default 1.")
    p.add_argument("--zip-name", default="lv_outputs.zip")

    # solver / optimizer knobs
    defaults = LVFitConfig()
    p.add_argument("--ode-method", default=defaults.ode_method, choices=["LSODA", "RK45", "DOP853", "Radau", "BDF"])
    p.add_argument("--rtol", type=float, default=defaults.rtol)
    p.add_argument("--atol", type=float, default=defaults.atol)
    p.add_argument("--max-nfev", type=int, default=defaults.max_nfev)
    p.add_argument("--timeout", type=float, default=None, help="Wall-clock seconds allowed per fit.")

    p.add_argument(
        "--loglevel",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level.",
    )

    p.set_defaults(_fn=_run_fit)


def _run_fit(args: argparse.Namespace) -> int:
    logging.basicConfig(level=getattr(logging, args.loglevel), format="%(levelname)s: %(message)s")

    cfg = LVFitConfig(
        ode_method=args.ode_method,
        rtol=float(args.rtol),
        atol=float(args.atol),
        max_nfev=int(args.max_nfev),
        timeout=args.timeout,
    )

    df = standardize_long(
        read_long_table(args.input),
        time_col=args.time_col,
        x_col=args.x_col,
        group_cols=args.group_cols,
    )
    logging.info(f"Loaded {args.input}: rows={len(df)}")

    batch = run_lv_batch(
        df,
        group_cols=args.group_cols,
        time_col=args.time_col,
        x_col=args.x_col,
        cfg=cfg,
        n_jobs=int(args.n_jobs),
    )
    out = export_results(batch, out_dir=Path(args.outdir), zip_name=args.zip_name)
    logging.info(f"Wrote {out['zip_path']}")
    return 0
