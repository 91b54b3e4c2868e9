"""Metrics for comparing offload policies across seeds.

Aggregates follow rliable practice (NeurIPS 2021):
- IQM (interquartile mean) for robustness to outlier seeds
- Bootstrap 95% CIs on the IQM
- Per-stage breakdown of where detections were offloaded
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from uav_offload.detection import Stage
from uav_offload.simulation.records import ResultRecord


@dataclass
class TrialMetrics:
    """Metrics from a single simulation run."""

    records: list[ResultRecord] = field(default_factory=list)
    detections_created: int = 0
    detections_dropped: int = 0
    contention_losses: int = 0
    ticks: int = 0
    seed: int | None = None

    @property
    def n_classified(self) -> int:
        return len(self.records)

    @property
    def accuracy(self) -> float:
        """Fraction of classified detections matched to the right object."""
        if not self.records:
            return 0.0
        return sum(r.is_correct for r in self.records) / len(self.records)

    @property
    def mean_latency(self) -> float:
        if not self.records:
            return 0.0
        return float(np.mean([r.latency for r in self.records]))

    @property
    def mean_points_used(self) -> float:
        if not self.records:
            return 0.0
        return float(np.mean([r.points_used for r in self.records]))

    def latencies(self) -> list[int]:
        return [r.latency for r in self.records]

    def latency_percentiles(self) -> dict[str, float]:
        """Compute latency percentiles (P50, P95, P99)."""
        if not self.records:
            return {"p50": 0.0, "p95": 0.0, "p99": 0.0}
        latencies = self.latencies()
        return {
            "p50": float(np.percentile(latencies, 50)),
            "p95": float(np.percentile(latencies, 95)),
            "p99": float(np.percentile(latencies, 99)),
        }

    def stage_counts(self) -> dict[str, int]:
        """Number of detections sent at each stage, keyed by stage name."""
        counts = {stage.name: 0 for stage in Stage}
        for r in self.records:
            counts[Stage(r.chosen_stage).name] += 1
        return counts

    def fraction_within(self, target_latency: int) -> float:
        """Fraction of classified detections finishing within ``target_latency``."""
        if not self.records:
            return 0.0
        return sum(r.latency <= target_latency for r in self.records) / len(self.records)


def compute_iqm(values: list[float]) -> float:
    """Compute interquartile mean (IQM).

    IQM is robust to outliers and provides a more stable aggregate
    metric than simple mean. Recommended by rliable (NeurIPS 2021).

    Args:
        values: List of metric values across seeds.

    Returns:
        Interquartile mean, or 0.0 if insufficient data.
    """
    if len(values) < 4:
        return float(np.mean(values)) if len(values) else 0.0

    sorted_vals = np.sort(values)
    n = len(sorted_vals)
    return float(np.mean(sorted_vals[n // 4 : 3 * n // 4]))


def compute_bootstrap_ci(
    values: list[float],
    confidence: float = 0.95,
    n_bootstrap: int = 2000,
    rng: np.random.Generator | None = None,
) -> tuple[float, float]:
    """Compute a bootstrap confidence interval on the IQM.

    Args:
        values: List of metric values.
        confidence: Confidence level (default 0.95 for 95% CI).
        n_bootstrap: Number of bootstrap replications.
        rng: Random generator for reproducibility.

    Returns:
        (lower_bound, upper_bound) of confidence interval.
    """
    if len(values) < 2:
        val = float(values[0]) if len(values) else 0.0
        return (val, val)

    rng = rng or np.random.default_rng()
    arr = np.asarray(values, dtype=np.float64)
    samples = rng.choice(arr, size=(n_bootstrap, arr.size), replace=True)
    iqms = [compute_iqm(row) for row in samples]

    alpha = 1 - confidence
    lower = float(np.percentile(iqms, 100 * alpha / 2))
    upper = float(np.percentile(iqms, 100 * (1 - alpha / 2)))
    return (lower, upper)


@dataclass
class PolicyMetrics:
    """Metrics for one policy aggregated across seeds."""

    policy_name: str
    trials: list[TrialMetrics] = field(default_factory=list)
    target_latency: int = 120
    _bootstrap_rng_seed: int = 42

    @property
    def n_trials(self) -> int:
        return len(self.trials)

    def _ci(self, values: list[float]) -> tuple[float, float]:
        rng = np.random.default_rng(self._bootstrap_rng_seed)
        return compute_bootstrap_ci(values, rng=rng)

    def _mean(self, values: list[float]) -> float:
        return float(np.mean(values)) if values else 0.0

    def latency_iqm(self) -> float:
        """IQM over seeds of each trial's mean latency."""
        return compute_iqm([t.mean_latency for t in self.trials])

    def latency_ci(self) -> tuple[float, float]:
        return self._ci([t.mean_latency for t in self.trials])

    def latency_p95_iqm(self) -> float:
        return compute_iqm([t.latency_percentiles()["p95"] for t in self.trials])

    def accuracy_iqm(self) -> float:
        return compute_iqm([t.accuracy for t in self.trials])

    def accuracy_ci(self) -> tuple[float, float]:
        return self._ci([t.accuracy for t in self.trials])

    def on_time_fraction(self) -> float:
        """Mean fraction of detections classified within the target latency."""
        return self._mean([t.fraction_within(self.target_latency) for t in self.trials])

    def stage_mix(self) -> dict[str, float]:
        """Fraction of detections sent at each stage, pooled across trials."""
        totals = {stage.name: 0 for stage in Stage}
        for t in self.trials:
            for name, count in t.stage_counts().items():
                totals[name] += count
        n = sum(totals.values())
        if n == 0:
            return {name: 0.0 for name in totals}
        return {name: count / n for name, count in totals.items()}

    def summary(self) -> dict[str, Any]:
        """Return comprehensive summary dictionary."""
        lat_low, lat_high = self.latency_ci()
        acc_low, acc_high = self.accuracy_ci()

        return {
            "policy": self.policy_name,
            "n_trials": self.n_trials,
            # Latency metrics
            "latency_iqm": self.latency_iqm(),
            "latency_ci_low": lat_low,
            "latency_ci_high": lat_high,
            "latency_p95_iqm": self.latency_p95_iqm(),
            "on_time_fraction": self.on_time_fraction(),
            # Accuracy metrics
            "accuracy_iqm": self.accuracy_iqm(),
            "accuracy_ci_low": acc_low,
            "accuracy_ci_high": acc_high,
            "mean_points_used": self._mean([t.mean_points_used for t in self.trials]),
            # Throughput
            "mean_classified": self._mean([t.n_classified for t in self.trials]),
            "mean_dropped": self._mean([t.detections_dropped for t in self.trials]),
            "mean_contention_losses": self._mean(
                [t.contention_losses for t in self.trials]
            ),
            "stage_mix": self.stage_mix(),
        }


@dataclass
class ScenarioResult:
    """Results from evaluating multiple policies on a single scenario."""

    scenario_name: str
    description: str
    policy_results: dict[str, PolicyMetrics] = field(default_factory=dict)

    def add_policy_result(self, metrics: PolicyMetrics) -> None:
        self.policy_results[metrics.policy_name] = metrics

    def get_ranking(self, metric: str = "latency_iqm") -> list[tuple[str, float]]:
        """Get policies ranked by ``metric``, best first.

        Lower is better for latency metrics, higher for everything else.
        """
        rankings = []
        for name, pm in self.policy_results.items():
            rankings.append((name, pm.summary().get(metric, 0.0)))

        reverse = "latency" not in metric.lower()
        return sorted(rankings, key=lambda x: x[1], reverse=reverse)

    def summary_table(self) -> list[dict[str, Any]]:
        return [pm.summary() for pm in self.policy_results.values()]
