#!/usr/bin/env python3
"""
Analyze saved simulation results and generate visualizations.

Usage:
    python analyze_results.py --results results/
    python analyze_results.py --results "results/*.json" --compare --plot
"""

import argparse
import json
from pathlib import Path
from typing import Dict, List


def _records(data) -> List[Dict]:
    # bpsim saves a list of per-trace results; accept a single result too
    if isinstance(data, list):
        return data
    return [data]


def load_results(results_path: str) -> List[Dict]:
    """Load per-trace results from a directory, a file or a glob pattern."""
    path = Path(results_path)
    if path.is_dir():
        files = sorted(path.glob("*.json"))
    elif path.exists():
        files = [path]
    else:
        files = sorted(Path('.').glob(results_path))

    results = []
    for result_file in files:
        with open(result_file) as f:
            results.extend(_records(json.load(f)))
    return results


def print_summary(results: List[Dict]) -> None:
    """Print summary of results."""
    print("\n" + "=" * 70)
    print("RESULTS SUMMARY")
    print("=" * 70)

    for result in results:
        print(f"\n{result.get('predictor_name', 'Unknown')} for "
              f"{result.get('trace_name', 'Unknown')}:")
        if result.get('error'):
            print(f"  Error: {result['error']}")
            continue
        stats = result.get('statistics', {})
        print(f"  Branches: {stats.get('total_branches', 0):,}")
        print(f"  Mispredictions: {stats.get('mispredictions', 0):,}")
        print(f"  Misprediction Rate: {stats.get('misprediction_rate', 0)*100:.4f}%")
        print(f"  Time: {result.get('elapsed_time', 0):.2f}s")


def _rate_matrix(results: List[Dict]):
    traces = sorted({Path(r.get('trace_name', '')).stem for r in results})
    predictors = sorted({r.get('predictor_name', '') for r in results})
    rates = {
        (Path(r.get('trace_name', '')).stem, r.get('predictor_name', '')):
            r.get('statistics', {}).get('misprediction_rate')
        for r in results if not r.get('error')
    }
    return traces, predictors, rates


def generate_comparison_table(results: List[Dict]) -> str:
    """Misprediction rate (%) per trace and predictor as a markdown table."""
    if not results:
        return "No results to compare"

    traces, predictors, rates = _rate_matrix(results)

    lines = [
        "| Trace | " + " | ".join(predictors) + " |",
        "|" + "---|" * (len(predictors) + 1)
    ]
    for trace in traces:
        cells = []
        for pred in predictors:
            rate = rates.get((trace, pred))
            cells.append("-" if rate is None else f"{rate * 100:.4f}")
        lines.append(f"| {trace} | " + " | ".join(cells) + " |")

    return "\n".join(lines)


def plot_results(results: List[Dict], output_dir: Path) -> None:
    """Generate plots from results."""
    try:
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError:
        print("matplotlib not installed, skipping plots")
        return

    if not results:
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    traces, predictors, rates = _rate_matrix(results)

    fig, ax = plt.subplots(figsize=(12, 6))

    x = np.arange(len(traces))
    width = 0.8 / max(len(predictors), 1)

    for i, pred in enumerate(predictors):
        values = [(rates.get((t, pred)) or 0.0) * 100 for t in traces]
        offset = (i - len(predictors)/2 + 0.5) * width
        ax.bar(x + offset, values, width, label=pred)

    ax.set_xlabel('Trace')
    ax.set_ylabel('Misprediction rate (%)')
    ax.set_title('Branch Misprediction Rate Comparison')
    ax.set_xticks(x)
    ax.set_xticklabels(traces, rotation=45, ha='right')
    ax.legend()
    ax.grid(axis='y', alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_dir / 'misprediction_rate.png', dpi=150)
    plt.close()

    print(f"Plot saved to {output_dir / 'misprediction_rate.png'}")


def main():
    parser = argparse.ArgumentParser(description="Analyze simulation results")
    parser.add_argument('--results', '-r', type=str, required=True,
                       help='Results directory, file or glob pattern')
    parser.add_argument('--output', '-o', type=str, default='results/analysis',
                       help='Output directory for analysis')
    parser.add_argument('--compare', '-c', action='store_true',
                       help='Generate comparison table')
    parser.add_argument('--plot', '-p', action='store_true',
                       help='Generate plots')

    args = parser.parse_args()

    results = load_results(args.results)

    if not results:
        print("No results found")
        return

    print(f"Loaded {len(results)} result(s)")

    print_summary(results)

    if args.compare:
        print("\n" + "="*70)
        print("COMPARISON TABLE (Markdown, misprediction rate %)")
        print("="*70)
        print(generate_comparison_table(results))

    if args.plot:
        plot_results(results, Path(args.output))


if __name__ == "__main__":
    main()
