# src/lvgrowth/cli/synth_cli.py
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from lvgrowth.synthetic.logistic_data import make_synthetic_table


def add_synth_subcommand(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "synth",
        help="Generate synthetic logistic growth series as a long CSV (replicate, Time, X).",
    )

    p.add_argument("--mu", type=float, default=0.5, help="Per-capita growth rate")
    p.add_argument("--A", type=float, default=0.005, help="mu / carrying capacity")
    p.add_argument("--x0", type=float, default=5.0, help="Initial population")
    p.add_argument("--max-time", type=float, default=24.0)
    p.add_argument("--time-step", type=float, default=1.0)
    p.add_argument("--noise-level", type=float, default=0.0, help="Gaussian noise stdev")
    p.add_argument("--n-reps", type=int, default=3)
    p.add_argument("--seed", type=int, default=123)
    p.add_argument("--out", required=True, help="Output CSV path")
    p.add_argument("--loglevel", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    p.set_defaults(_fn=_run)


def _run(args: argparse.Namespace) -> int:
    logging.basicConfig(level=getattr(logging, args.loglevel), format="%(levelname)s: %(message)s")

    df = make_synthetic_table(
        mu=args.mu,
        A=args.A,
        x0=args.x0,
        max_time=args.max_time,
        time_step=args.time_step,
        noise_sd=args.noise_level,
        n_reps=args.n_reps,
        seed=args.seed,
    )
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    logging.info(f"Wrote synthetic CSV to {out}  rows={len(df)}")
    return 0
