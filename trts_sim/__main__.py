from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from dataclasses import replace
from pathlib import Path

from trts_sim.config import EngineMode, RunConfig, TransformMode
from trts_sim.rational import Rational
from trts_sim.reporting import (
    MagnitudeLimitExceeded,
    render_summary,
    summarize_run,
    summary_to_dict,
)
from trts_sim.search import SearchOptions, describe, dump_candidate, evolve, target_value
from trts_sim.simulate import simulate
from trts_sim.stream_io import ConfigFormatError, load_run_config
from trts_sim.trace import format_trace_csv, run_with_trace


def _rational_arg(text: str) -> Rational:
    try:
        return Rational.parse(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _positive_int(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text!r}")
    return value


def _config_from_args(args: argparse.Namespace) -> RunConfig:
    """Load --config (if any), then apply command-line overrides."""
    config = RunConfig()
    if args.config:
        config = load_run_config(Path(str(args.config)))

    overrides: dict[str, object] = {}
    if args.ticks is not None:
        overrides["ticks"] = args.ticks
    if args.ups is not None:
        overrides["upsilon_seed"] = args.ups
    if args.beta is not None:
        overrides["beta_seed"] = args.beta
    if args.koppa is not None:
        overrides["koppa_seed"] = args.koppa
    if args.engine_mode is not None:
        overrides["engine_mode"] = EngineMode(args.engine_mode)
    if args.psi_mode is not None:
        overrides["transform_mode"] = TransformMode(args.psi_mode)
    if args.triple_psi:
        overrides["triple_psi"] = True
    if args.multi_level:
        overrides["multi_level_koppa"] = True
    return replace(config, **overrides)


def _cmd_run(args: argparse.Namespace) -> int:
    try:
        config = _config_from_args(args)
    except ConfigFormatError as e:
        print(f"ERROR: invalid config: {e}", file=sys.stderr)
        return 2

    events_path, values_path = simulate(config, Path(str(args.out_dir)))
    print(f"Wrote {events_path} and {values_path} ({config.ticks} ticks)")
    return 0


def _cmd_trace(args: argparse.Namespace) -> int:
    try:
        config = _config_from_args(args)
    except ConfigFormatError as e:
        print(f"ERROR: invalid config: {e}", file=sys.stderr)
        return 2

    text = format_trace_csv(run_with_trace(config))
    if args.output:
        Path(str(args.output)).write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text)
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    try:
        config = _config_from_args(args)
    except ConfigFormatError as e:
        print(f"ERROR: invalid config: {e}", file=sys.stderr)
        return 2

    try:
        summary = summarize_run(config, max_bits=args.max_bits)
    except MagnitudeLimitExceeded as e:
        print(f"ERROR: run abandoned: {e}", file=sys.stderr)
        return 2
    sys.stdout.write(render_summary(summary))
    if args.json:
        Path(str(args.json)).write_text(
            json.dumps(summary_to_dict(summary), indent=2) + "\n", encoding="utf-8"
        )
    return 0


def _cmd_evolve(args: argparse.Namespace) -> int:
    try:
        target_value(str(args.target))
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    if args.elite > args.population:
        print("ERROR: --elite cannot exceed --population.", file=sys.stderr)
        return 2
    if args.min_ticks > args.max_ticks:
        print("ERROR: --min-ticks cannot exceed --max-ticks.", file=sys.stderr)
        return 2

    options = SearchOptions(
        generations=int(args.generations),
        population=int(args.population),
        elite=int(args.elite),
        target=str(args.target),
        min_ticks=int(args.min_ticks),
        max_ticks=int(args.max_ticks),
        max_bits=args.max_bits,
    )
    result = evolve(options, random.Random(args.seed))
    best = result.best
    print(f"Best {describe(best)}")
    if args.output:
        dump_candidate(Path(str(args.output)), best)
        print(f"Wrote {args.output}")
    return 0


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", type=str, help="Run config JSON (flat key/value object).")
    p.add_argument("--ticks", type=_positive_int, default=None, help="Override the tick count.")
    p.add_argument("--ups", type=_rational_arg, default=None, help="Upsilon seed as N/D.")
    p.add_argument("--beta", type=_rational_arg, default=None, help="Beta seed as N/D.")
    p.add_argument("--koppa", type=_rational_arg, default=None, help="Koppa seed as N/D.")
    p.add_argument(
        "--engine-mode",
        type=int,
        choices=[m.value for m in EngineMode],
        default=None,
        help="0=ADD 1=MULTI 2=SLIDE 3=DELTA_ADD",
    )
    p.add_argument(
        "--psi-mode",
        type=int,
        choices=[m.value for m in TransformMode],
        default=None,
        help="0=every memory step 1=pending only 2=memory step or pending 3=inhibit when pending",
    )
    p.add_argument("--triple-psi", action="store_true", help="Always use the 3-register transform.")
    p.add_argument("--multi-level", action="store_true", help="Keep the 4-slot koppa history.")


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="trts_sim",
        description=(
            "TRTS Simulator: exact rational propagation.\n"
            "\n"
            "Fractions are never reduced; 0/0 marks an undefined register."
        ),
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="-v for INFO logging, -vv for DEBUG."
    )

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a simulation and write events.csv / values.csv.")
    _add_config_args(run)
    run.add_argument("--out-dir", type=str, default=".", help="Directory for the CSV tables.")
    run.set_defaults(func=_cmd_run)

    trace = sub.add_parser("trace", help="Print a minimal per-microtick trace CSV.")
    _add_config_args(trace)
    trace.add_argument("--output", type=str, default=None, help="Write to a file instead of stdout.")
    trace.set_defaults(func=_cmd_trace)

    analyze = sub.add_parser("analyze", help="Run and print summary statistics.")
    _add_config_args(analyze)
    analyze.add_argument("--json", type=str, default=None, help="Also write the summary as JSON.")
    analyze.add_argument(
        "--max-bits", type=_positive_int, default=None, help="Abandon the run past this register bit length."
    )
    analyze.set_defaults(func=_cmd_analyze)

    ev = sub.add_parser("evolve", help="Search for configurations whose ratio approaches a constant.")
    ev.add_argument("--generations", type=int, default=10)
    ev.add_argument("--population", type=_positive_int, default=8)
    ev.add_argument("--elite", type=_positive_int, default=2)
    ev.add_argument("--seed", type=int, default=0, help="Seed for the search RNG.")
    ev.add_argument("--target", type=str, default="rho", help="Known constant name (phi, rho, sqrt2, ...).")
    ev.add_argument("--min-ticks", type=_positive_int, default=25)
    ev.add_argument("--max-ticks", type=_positive_int, default=34)
    ev.add_argument("--max-bits", type=_positive_int, default=2048, help="Score oversized candidates -inf.")
    ev.add_argument("--output", type=str, default=None, help="Write the best candidate as JSON.")
    ev.set_defaults(func=_cmd_evolve)

    return parser


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
