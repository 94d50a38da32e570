"""Entry point for running the line simulation."""

import argparse
import logging

from floor_twin.cli.simulate import simulate as simulate_func
from floor_twin.cli.topology import topology as topology_func


def _run_command(args: argparse.Namespace) -> None:
    """Handle 'run' subcommand."""
    simulate_func(
        config_path=args.config,
        duration_sec=args.duration,
        seed=args.seed,
        virtual=args.virtual,
        factor=args.factor,
    )


def _topology_command(args: argparse.Namespace) -> None:
    """Handle 'topology' subcommand."""
    topology_func(config_path=args.config)


def main(argv=None):
    """CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        description="Factory-floor line simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run         Run the simulation and print a summary
  topology    Print the station layout a config resolves to

Examples:
  python -m floor_twin run --duration 60
  python -m floor_twin run --config line.yaml --virtual --duration 3600 --seed 42
  python -m floor_twin topology --config line.yaml
        """,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === 'run' subcommand ===
    run_parser = subparsers.add_parser(
        "run",
        help="Run the simulation",
        description="Run the simulation and print a telemetry summary.",
    )
    run_parser.add_argument(
        "--config",
        default=None,
        help="Topology config file, YAML or JSON (default: built-in topology)",
    )
    run_parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Simulated seconds to run (default: 30)",
    )
    run_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs",
    )
    run_parser.add_argument(
        "--virtual",
        action="store_true",
        help="Run in virtual time instead of pacing to the wall clock",
    )
    run_parser.add_argument(
        "--factor",
        type=float,
        default=1.0,
        help="Simulated seconds per wall-clock second (default: 1.0)",
    )
    run_parser.set_defaults(func=_run_command)

    # === 'topology' subcommand ===
    topology_parser = subparsers.add_parser(
        "topology",
        help="Print the resolved station layout",
        description="Resolve a topology config (with default fallback) and print it.",
    )
    topology_parser.add_argument(
        "--config",
        default=None,
        help="Topology config file, YAML or JSON (default: built-in topology)",
    )
    topology_parser.set_defaults(func=_topology_command)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
