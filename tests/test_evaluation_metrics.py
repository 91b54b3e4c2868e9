"""Tests for benchmark metrics."""

import numpy as np
import pytest

from uav_offload.detection import Stage
from uav_offload.evaluation.metrics import (
    PolicyMetrics,
    ScenarioResult,
    TrialMetrics,
    compute_bootstrap_ci,
    compute_iqm,
)
from uav_offload.simulation.records import ResultRecord


def make_record(
    latency: int,
    correct: bool = True,
    stage: Stage = Stage.RAW,
    points: int = 100,
    detection_id: int = 0,
) -> ResultRecord:
    return ResultRecord(
        detection_id=detection_id,
        platform_id=0,
        object_id=5,
        chosen_stage=stage,
        latency=latency,
        matched_object_id=5 if correct else 6,
        points_used=points,
        created_tick=0,
    )


def make_trial(latencies, correct=None, stages=None, seed=None) -> TrialMetrics:
    correct = correct or [True] * len(latencies)
    stages = stages or [Stage.RAW] * len(latencies)
    records = [
        make_record(lat, ok, stage, detection_id=i)
        for i, (lat, ok, stage) in enumerate(zip(latencies, correct, stages))
    ]
    return TrialMetrics(records=records, detections_created=len(records), seed=seed)


class TestResultRecord:
    def test_correct_match(self):
        assert make_record(10).is_correct
        assert not make_record(10, correct=False).is_correct


class TestTrialMetrics:
    def test_empty_trial(self):
        trial = TrialMetrics()
        assert trial.n_classified == 0
        assert trial.accuracy == 0.0
        assert trial.mean_latency == 0.0
        assert trial.fraction_within(100) == 0.0
        assert trial.latency_percentiles() == {"p50": 0.0, "p95": 0.0, "p99": 0.0}

    def test_accuracy(self):
        trial = make_trial([10, 20, 30, 40], correct=[True, True, False, True])
        assert trial.accuracy == pytest.approx(0.75)

    def test_mean_latency(self):
        trial = make_trial([10, 20, 30])
        assert trial.mean_latency == pytest.approx(20.0)

    def test_percentiles(self):
        trial = make_trial(list(range(1, 101)))
        pct = trial.latency_percentiles()
        assert pct["p50"] == pytest.approx(50.5)
        assert pct["p50"] < pct["p95"] < pct["p99"]

    def test_stage_counts(self):
        trial = make_trial(
            [1, 2, 3], stages=[Stage.RAW, Stage.SEGMENTED, Stage.SEGMENTED]
        )
        assert trial.stage_counts() == {
            "RAW": 1,
            "CONVERTED": 0,
            "SEGMENTED": 2,
            "CLASSIFIED": 0,
        }

    def test_fraction_within(self):
        trial = make_trial([10, 50, 120, 200])
        assert trial.fraction_within(120) == pytest.approx(0.75)


class TestComputeIQM:
    def test_small_sample_falls_back_to_mean(self):
        assert compute_iqm([1.0, 2.0, 3.0]) == pytest.approx(2.0)

    def test_empty(self):
        assert compute_iqm([]) == 0.0

    def test_ignores_outliers(self):
        values = [10.0, 10.0, 10.0, 10.0, 10.0, 10.0, 10.0, 1000.0]
        assert compute_iqm(values) == pytest.approx(10.0)

    def test_middle_half(self):
        assert compute_iqm([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]) == pytest.approx(4.5)


class TestBootstrapCI:
    def test_single_value(self):
        assert compute_bootstrap_ci([5.0]) == (5.0, 5.0)

    def test_empty(self):
        assert compute_bootstrap_ci([]) == (0.0, 0.0)

    def test_interval_contains_iqm(self):
        rng = np.random.default_rng(0)
        values = list(rng.normal(100.0, 5.0, size=20))
        low, high = compute_bootstrap_ci(values, rng=np.random.default_rng(1))
        assert low <= compute_iqm(values) <= high

    def test_reproducible(self):
        values = [1.0, 4.0, 2.0, 8.0, 5.0]
        a = compute_bootstrap_ci(values, rng=np.random.default_rng(7))
        b = compute_bootstrap_ci(values, rng=np.random.default_rng(7))
        assert a == b


class TestPolicyMetrics:
    @pytest.fixture
    def metrics(self):
        pm = PolicyMetrics(policy_name="Adaptive", target_latency=30)
        pm.trials.append(make_trial([10, 20], stages=[Stage.RAW, Stage.CLASSIFIED]))
        pm.trials.append(make_trial([30, 40], correct=[True, False]))
        return pm

    def test_latency_iqm(self, metrics):
        assert metrics.latency_iqm() == pytest.approx(25.0)

    def test_accuracy_iqm(self, metrics):
        assert metrics.accuracy_iqm() == pytest.approx(0.75)

    def test_on_time_fraction(self, metrics):
        assert metrics.on_time_fraction() == pytest.approx(0.75)

    def test_stage_mix(self, metrics):
        mix = metrics.stage_mix()
        assert mix["RAW"] == pytest.approx(0.75)
        assert mix["CLASSIFIED"] == pytest.approx(0.25)
        assert sum(mix.values()) == pytest.approx(1.0)

    def test_stage_mix_empty(self):
        assert all(v == 0.0 for v in PolicyMetrics("x").stage_mix().values())

    def test_summary_keys(self, metrics):
        summary = metrics.summary()
        for key in (
            "policy",
            "n_trials",
            "latency_iqm",
            "latency_ci_low",
            "latency_ci_high",
            "latency_p95_iqm",
            "on_time_fraction",
            "accuracy_iqm",
            "accuracy_ci_low",
            "accuracy_ci_high",
            "mean_points_used",
            "mean_classified",
            "mean_dropped",
            "mean_contention_losses",
            "stage_mix",
        ):
            assert key in summary
        assert summary["policy"] == "Adaptive"
        assert summary["n_trials"] == 2
        assert summary["mean_classified"] == pytest.approx(2.0)


class TestScenarioResult:
    @pytest.fixture
    def result(self):
        result = ScenarioResult(scenario_name="s", description="d")
        fast = PolicyMetrics(policy_name="Fast")
        fast.trials.append(make_trial([5, 5], correct=[True, False]))
        slow = PolicyMetrics(policy_name="Slow")
        slow.trials.append(make_trial([50, 50]))
        result.add_policy_result(fast)
        result.add_policy_result(slow)
        return result

    def test_latency_ranking_lower_is_better(self, result):
        ranking = result.get_ranking()
        assert [name for name, _ in ranking] == ["Fast", "Slow"]

    def test_accuracy_ranking_higher_is_better(self, result):
        ranking = result.get_ranking("accuracy_iqm")
        assert [name for name, _ in ranking] == ["Slow", "Fast"]

    def test_summary_table(self, result):
        table = result.summary_table()
        assert {row["policy"] for row in table} == {"Fast", "Slow"}
