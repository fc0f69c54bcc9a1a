# src/lvgrowth/cli/main.py
import argparse

from lvgrowth.cli.fit_cli import add_fit_subcommand
from lvgrowth.cli.synth_cli import add_synth_subcommand


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="lvgrowth", description="lvgrowth: logistic Lotka-Volterra growth fits")
    sub = parser.add_subparsers(dest="command", required=True)

    add_fit_subcommand(sub)
    add_synth_subcommand(sub)

    args = parser.parse_args(argv)
    return args._fn(args)  # each subcommand sets a handler


if __name__ == "__main__":
    raise SystemExit(main())
