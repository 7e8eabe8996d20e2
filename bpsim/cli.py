#!/usr/bin/env python3
"""
Trace runner for branch prediction evaluation.

Filters raw riscvOVPsim traces (optional), runs the configured predictor
over each filtered trace in turn and prints a report per trace.

Usage:
    bpsim --raw coremark_val.trc dhrystone_val.trc
    bpsim -c BTBConfiguration.txt -p global traces/*_filtered.trc
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError, TraceIOError
from .predictors import PREDICTORS, PREDICTOR_CODES
from .simulation.metrics import SimulationResults
from .simulation.simulator import BranchSimulator, SimulationConfig
from .trace.parser import TraceFilter, filtered_path_for
from .utils.helpers import DEFAULT_CONFIG_FILE, load_config, save_results, setup_logging

logger = logging.getLogger(__name__)


DEFAULT_TRACES = (
    "coremark_val.trc",
    "dhrystone_val.trc",
    "fibonacci_val.trc",
    "linpack_val.trc",
)


def filter_traces(raw_paths: List[Path]) -> tuple:
    """
    Filter raw traces next to their sources.

    Returns:
        (filtered paths, failed results for traces that could not be filtered)
    """
    trace_filter = TraceFilter()
    filtered, failures = [], []
    for raw_path in raw_paths:
        out_path = filtered_path_for(raw_path)
        try:
            trace_filter.filter_file(raw_path, out_path)
        except TraceIOError as e:
            logger.error("%s", e)
            failures.append(SimulationResults(
                trace_name=str(raw_path),
                predictor_name="Filter",
                error=str(e),
            ))
            continue
        filtered.append(out_path)
    return filtered, failures


def print_report(results: SimulationResults, verbose: bool = False) -> None:
    """Print the per-trace report."""
    print()
    print(results.get_summary())
    if verbose and results.succeeded:
        hw = results.hardware_cost
        print(f"Hardware: {hw.get('total_kb', 0):.2f} KB")
        if results.skipped_lines:
            print(f"Skipped malformed lines: {results.skipped_lines}")


def print_summary(all_results: List[SimulationResults]) -> None:
    """Print totals across all traces."""
    succeeded = [r for r in all_results if r.succeeded]
    total = sum(r.total_branches for r in succeeded)
    mispredicted = sum(r.mispredictions for r in succeeded)
    rate = mispredicted / total * 100 if total else 0.0

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    for r in all_results:
        if r.succeeded:
            print(f"{Path(r.trace_name).name:<32} {r.misprediction_rate * 100:>10.4f}%")
        else:
            print(f"{Path(r.trace_name).name:<32} {'FAILED':>11}")
    print("-" * 60)
    print(f"{'All traces':<32} {rate:>10.4f}%  ({mispredicted:,}/{total:,})")


def build_parser() -> argparse.ArgumentParser:
    predictor_choices = sorted(PREDICTORS) + [str(c) for c in sorted(PREDICTOR_CODES)]

    parser = argparse.ArgumentParser(
        description='Measure branch misprediction rates over instruction traces')
    parser.add_argument('traces', nargs='*',
                        help='Trace files (filtered, or raw with --raw)')
    parser.add_argument('--config', '-c', type=str, default=None,
                        help=f'Configuration file (default: {DEFAULT_CONFIG_FILE} if present)')
    parser.add_argument('--predictor', '-p', choices=predictor_choices, default=None,
                        help='Predictor to simulate (overrides which_predictor)')
    parser.add_argument('--raw', action='store_true',
                        help='Traces are raw; filter them to *_filtered files first')
    parser.add_argument('--on-malformed', choices=('abort', 'skip'), default=None,
                        help='Abort a trace on a malformed line or skip the branch')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Directory to save results in')
    parser.add_argument('--formats', type=str, default='json',
                        help='Comma separated result formats (json,yaml,csv)')
    parser.add_argument('--log-level', type=str, default='WARNING',
                        help='Logging level')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Also write the log to this file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Progress bars and extra report lines')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    config_values = {}
    config_path = Path(args.config or DEFAULT_CONFIG_FILE)
    try:
        if args.config or config_path.exists():
            config_values = load_config(config_path)
        else:
            logger.info("No %s found, using default sizes", DEFAULT_CONFIG_FILE)

        sim_config = SimulationConfig.from_dict(
            config_values,
            predictor=args.predictor,
            on_malformed=args.on_malformed,
            verbose=args.verbose or None,
        )
    except (OSError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    raw = args.raw
    trace_paths = [Path(t) for t in args.traces]
    if not trace_paths:
        trace_paths = [Path(t) for t in DEFAULT_TRACES]
        raw = True

    failures: List[SimulationResults] = []
    if raw:
        trace_paths, failures = filter_traces(trace_paths)

    simulator = BranchSimulator(sim_config)
    all_results = failures + simulator.run_many(trace_paths)

    for results in all_results:
        print_report(results, args.verbose)
    if len(all_results) > 1:
        print_summary(all_results)

    if args.output:
        formats = tuple(f.strip() for f in args.formats.split(',') if f.strip())
        paths = save_results([r.to_dict() for r in all_results], args.output,
                             name=sim_config.predictor, formats=formats)
        for fmt, path in paths.items():
            print(f"Results saved to: {path}")

    return 0 if all(r.succeeded for r in all_results) else 1


if __name__ == '__main__':
    sys.exit(main())
