#!/usr/bin/env python3
"""CLI entry point for offload policy benchmarks.

Runs the adaptive offload decision and the fixed-stage baselines across
scenarios and seeds, then saves summaries, per-trial CSVs and plots.

Usage:
    # Quick benchmark (CI/testing)
    python scripts/run_benchmark.py --quick --output results/test

    # Full benchmark
    python scripts/run_benchmark.py --output results/full --seeds 5
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from uav_offload.evaluation.runner import BenchmarkConfig, BenchmarkRunner, default_policies
from uav_offload.evaluation.scenarios import list_scenarios
from uav_offload.evaluation.visualization import save_all_plots


def setup_logging(level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))


def main():
    parser = argparse.ArgumentParser(
        description="Run offload policy benchmark",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Quick test run
  %(prog)s --quick --output results/test

  # Full benchmark with 5 seeds
  %(prog)s --output results/full --seeds 5

  # Run specific scenarios
  %(prog)s --scenarios baseline degraded_link --output results/partial
        """,
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="results/benchmark",
        help="Output directory for results (default: results/benchmark)",
    )
    parser.add_argument(
        "--seeds",
        "-s",
        type=int,
        default=5,
        help="Number of seeds for statistical validity (default: 5)",
    )
    parser.add_argument(
        "--base-seed",
        type=int,
        default=42,
        help="Base random seed (default: 42)",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=None,
        help="Override every scenario's horizon in ticks",
    )
    parser.add_argument(
        "--scenarios",
        nargs="+",
        default=None,
        help=f"Scenarios to run (default: all). Available: {list_scenarios()}",
    )
    parser.add_argument(
        "--quick",
        action="store_true",
        help="Quick run for CI/testing (2 seeds, 300-tick horizon)",
    )
    parser.add_argument(
        "--skip-plots",
        action="store_true",
        help="Skip generating plots",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    if args.quick:
        args.seeds = 2
        args.horizon = args.horizon or 300

    if args.scenarios:
        invalid = set(args.scenarios) - set(list_scenarios())
        if invalid:
            print(f"Error: Unknown scenarios: {invalid}")
            print(f"Available: {list_scenarios()}")
            return 1

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    config = BenchmarkConfig(
        n_seeds=args.seeds,
        base_seed=args.base_seed,
        horizon=args.horizon,
    )
    policies = default_policies()

    print("=" * 60)
    print("UAV Offload Policy Benchmark")
    print("=" * 60)
    print(f"Seeds: {args.seeds}")
    print(f"Horizon: {args.horizon or 'scenario default'}")
    print(f"Scenarios: {args.scenarios or 'all'}")
    print(f"Policies: {list(policies)}")
    print(f"Output: {output_dir}")
    print()

    runner = BenchmarkRunner(config)
    start_time = time.time()

    print("Running benchmark...")
    results = runner.run_all_scenarios(policies=policies, scenarios=args.scenarios)

    elapsed = time.time() - start_time
    print(f"Benchmark completed in {elapsed:.1f}s")
    print()

    print("=" * 60)
    print("Results Summary (mean latency IQM, accuracy IQM)")
    print("=" * 60)

    for scenario_name, result in results.items():
        print(f"\n{scenario_name} ({result.description}):")
        for i, (policy, latency) in enumerate(result.get_ranking("latency_iqm"), 1):
            pm = result.policy_results[policy]
            ci_low, ci_high = pm.latency_ci()
            print(
                f"  {i}. {policy}: {latency:.1f} [{ci_low:.1f}, {ci_high:.1f}] ticks, "
                f"accuracy {pm.accuracy_iqm():.3f}"
            )

    print(f"\nSaving results to {output_dir}...")
    runner.save_results(output_dir, results)

    if not args.skip_plots:
        print("Generating plots...")
        save_all_plots(results, output_dir)

    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
