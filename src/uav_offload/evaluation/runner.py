"""Benchmark runner for systematic policy evaluation.

Runs every policy on every scenario across several seeds and aggregates with
IQM and bootstrap CIs (rliable, NeurIPS 2021). Per-trial result records are
kept so they can be written out for offline analysis.
"""

from collections.abc import Mapping
import csv
from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from uav_offload.detection import Stage
from uav_offload.evaluation.metrics import PolicyMetrics, ScenarioResult, TrialMetrics
from uav_offload.evaluation.scenarios import SCENARIOS, ScenarioConfig
from uav_offload.policies.adaptive import AdaptiveOffloadPolicy
from uav_offload.policies.baselines import FixedStagePolicy
from uav_offload.simulation.driver import PolicyFactory
from uav_offload.simulation.records import CSV_HEADER

logger = logging.getLogger(__name__)


def default_policies() -> dict[str, PolicyFactory]:
    """The adaptive policy plus one fixed-stage baseline per stage."""
    policies: dict[str, PolicyFactory] = {
        "Adaptive": lambda platform_id: AdaptiveOffloadPolicy(),
    }
    for stage in Stage:
        policy = FixedStagePolicy(stage)
        policies[policy.name] = lambda platform_id, s=stage: FixedStagePolicy(s)
    return policies


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark runs."""

    n_seeds: int = 5  # Seeds for statistical validity
    base_seed: int = 42  # Starting seed for reproducibility
    horizon: int | None = None  # Overrides each scenario's horizon
    max_ticks: int | None = 200_000  # Guard against runs that never drain


class BenchmarkRunner:
    """Orchestrates benchmark evaluation across scenarios and policies.

    Every trial gets a fresh simulation; the scenario's catalogue is built
    once per scenario and shared read-only across its trials.
    """

    def __init__(self, config: BenchmarkConfig | None = None):
        self.config = config or BenchmarkConfig()
        self._results: dict[str, ScenarioResult] = {}

    def _seeds(self, seeds: list[int] | None) -> list[int]:
        if seeds is not None:
            return seeds
        return [self.config.base_seed + i * 1000 for i in range(self.config.n_seeds)]

    def run_trial(
        self,
        policy_factory: PolicyFactory,
        scenario: ScenarioConfig,
        seed: int,
        catalogue=None,
    ) -> TrialMetrics:
        """Run a single simulation.

        Args:
            policy_factory: Builds one policy per platform.
            scenario: Scenario configuration.
            seed: Random seed for this trial.
            catalogue: Optional prebuilt catalogue for the scenario.

        Returns:
            Metrics from the trial, including its result records.
        """
        sim = scenario.create_simulation(
            seed=seed,
            policy_factory=policy_factory,
            catalogue=catalogue,
            horizon=self.config.horizon,
        )
        sim.run(max_ticks=self.config.max_ticks)

        return TrialMetrics(
            records=sim.results(),
            detections_created=sum(p.detections_created for p in sim.platforms),
            detections_dropped=len(sim.dropped),
            contention_losses=sim.contention_losses,
            ticks=sim.tick,
            seed=seed,
        )

    def run_policy(
        self,
        policy_name: str,
        policy_factory: PolicyFactory,
        scenario: ScenarioConfig,
        seeds: list[int] | None = None,
        catalogue=None,
    ) -> PolicyMetrics:
        """Evaluate a policy over multiple seeds."""
        catalogue = catalogue or scenario.create_catalogue()
        metrics = PolicyMetrics(
            policy_name=policy_name,
            target_latency=scenario.sim_config.objective.target_latency,
        )

        for seed in self._seeds(seeds):
            trial = self.run_trial(policy_factory, scenario, seed, catalogue=catalogue)
            logger.info(
                "%s/%s seed %d: %d classified, accuracy %.3f, mean latency %.1f",
                scenario.name,
                policy_name,
                seed,
                trial.n_classified,
                trial.accuracy,
                trial.mean_latency,
            )
            metrics.trials.append(trial)

        return metrics

    def run_scenario(
        self,
        scenario: ScenarioConfig,
        policies: Mapping[str, PolicyFactory] | None = None,
        seeds: list[int] | None = None,
    ) -> ScenarioResult:
        """Evaluate all policies on a single scenario."""
        policies = policies if policies is not None else default_policies()
        catalogue = scenario.create_catalogue()

        result = ScenarioResult(
            scenario_name=scenario.name,
            description=scenario.description,
        )
        for name, factory in policies.items():
            result.add_policy_result(
                self.run_policy(name, factory, scenario, seeds, catalogue=catalogue)
            )
        return result

    def run_all_scenarios(
        self,
        policies: Mapping[str, PolicyFactory] | None = None,
        scenarios: list[str] | None = None,
        seeds: list[int] | None = None,
    ) -> dict[str, ScenarioResult]:
        """Evaluate all policies across all (or the named) scenarios."""
        if scenarios is None:
            scenarios = list(SCENARIOS.keys())

        results = {}
        for scenario_name in scenarios:
            results[scenario_name] = self.run_scenario(
                SCENARIOS[scenario_name], policies, seeds
            )

        self._results = results
        return results

    def save_results(
        self,
        output_dir: str | Path,
        results: dict[str, ScenarioResult] | None = None,
    ) -> None:
        """Save benchmark results to disk.

        Writes ``benchmark_results.json`` with per-policy summaries and, under
        ``data/<scenario>/<policy>/``, one CSV of result records per seed.
        """
        results = results or self._results
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        summary = {}
        for scenario_name, scenario_result in results.items():
            summary[scenario_name] = {
                "description": scenario_result.description,
                "policies": {
                    name: pm.summary()
                    for name, pm in scenario_result.policy_results.items()
                },
                "ranking": scenario_result.get_ranking(),
            }

        with open(output_dir / "benchmark_results.json", "w") as f:
            json.dump(summary, f, indent=2, default=_json_serializer)

        for scenario_name, scenario_result in results.items():
            for policy_name, pm in scenario_result.policy_results.items():
                trial_dir = output_dir / "data" / scenario_name / policy_name
                trial_dir.mkdir(parents=True, exist_ok=True)
                for i, trial in enumerate(pm.trials):
                    label = trial.seed if trial.seed is not None else i
                    write_records_csv(trial, trial_dir / f"seed_{label}.csv")

        logger.info("Saved results to %s", output_dir)

    @staticmethod
    def load_results(input_dir: str | Path) -> dict[str, Any]:
        """Load the summary written by ``save_results``."""
        input_dir = Path(input_dir)
        with open(input_dir / "benchmark_results.json") as f:
            return json.load(f)


def write_records_csv(trial: TrialMetrics, path: str | Path) -> None:
    """Write a trial's result records, one row per classified detection."""
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        for record in trial.records:
            writer.writerow(record.to_csv_row())


def _json_serializer(obj: Any) -> Any:
    """JSON serializer for numpy types."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
