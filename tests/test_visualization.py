"""Tests for benchmark visualization."""

import pytest
import matplotlib

matplotlib.use("Agg")  # Use non-interactive backend for testing
import matplotlib.pyplot as plt

from uav_offload.detection import Stage
from uav_offload.evaluation.metrics import PolicyMetrics, ScenarioResult, TrialMetrics
from uav_offload.evaluation.visualization import (
    _metric_label,
    create_summary_table,
    get_policy_color,
    plot_latency_distribution,
    plot_policy_comparison,
    plot_scenario_heatmap,
    plot_stage_mix,
    save_all_plots,
)
from uav_offload.simulation.records import ResultRecord


def make_trial(base_latency: int, stage: Stage, n: int = 20) -> TrialMetrics:
    records = [
        ResultRecord(
            detection_id=j,
            platform_id=j % 4,
            object_id=1,
            chosen_stage=stage if j % 3 else Stage.RAW,
            latency=base_latency + j,
            matched_object_id=1 if j % 5 else 2,
            points_used=100 + j,
            created_tick=j * 10,
        )
        for j in range(n)
    ]
    return TrialMetrics(records=records, detections_created=n)


def make_result(name: str, offsets: dict[str, int]) -> ScenarioResult:
    result = ScenarioResult(scenario_name=name, description=f"{name} description")
    for policy, base in offsets.items():
        pm = PolicyMetrics(policy_name=policy)
        for i in range(5):
            pm.trials.append(make_trial(base + i, Stage.SEGMENTED))
        result.add_policy_result(pm)
    return result


@pytest.fixture
def sample_scenario_result():
    """Two policies with synthetic latency records."""
    return make_result("test_scenario", {"Adaptive": 10, "FixedRaw": 40})


@pytest.fixture
def sample_multi_scenario_results(sample_scenario_result):
    """Results for two scenarios."""
    return {
        "scenario_1": sample_scenario_result,
        "scenario_2": make_result("scenario_2", {"Adaptive": 20, "FixedRaw": 25}),
    }


class TestGetPolicyColor:
    """Tests for policy color function."""

    def test_known_policy_colors(self):
        assert get_policy_color("Adaptive") == "#2ecc71"
        assert get_policy_color("FixedRaw") == "#e74c3c"
        assert get_policy_color("FixedClassified") == "#3498db"

    def test_unknown_policy_gets_default(self):
        assert get_policy_color("UnknownPolicy") == "#34495e"


class TestPlotPolicyComparison:
    """Tests for policy comparison bar chart."""

    def test_creates_figure(self, sample_scenario_result):
        fig = plot_policy_comparison(sample_scenario_result)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_with_custom_metric(self, sample_scenario_result):
        fig = plot_policy_comparison(sample_scenario_result, metric="mean_classified")
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_with_custom_title(self, sample_scenario_result):
        fig = plot_policy_comparison(sample_scenario_result, title="Custom Title")
        assert fig.axes[0].get_title() == "Custom Title"
        plt.close(fig)


class TestPlotScenarioHeatmap:
    """Tests for scenario heatmap."""

    def test_creates_figure(self, sample_multi_scenario_results):
        fig = plot_scenario_heatmap(sample_multi_scenario_results)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_with_custom_metric(self, sample_multi_scenario_results):
        fig = plot_scenario_heatmap(sample_multi_scenario_results, metric="latency_iqm")
        assert isinstance(fig, plt.Figure)
        plt.close(fig)


class TestPlotLatencyDistribution:
    """Tests for latency distribution violin plot."""

    def test_creates_figure(self, sample_scenario_result):
        fig = plot_latency_distribution(sample_scenario_result)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)

    def test_policy_without_records(self, sample_scenario_result):
        sample_scenario_result.add_policy_result(PolicyMetrics(policy_name="Empty"))
        fig = plot_latency_distribution(sample_scenario_result, title="Custom Title")
        assert isinstance(fig, plt.Figure)
        plt.close(fig)


class TestPlotStageMix:
    def test_creates_figure(self, sample_scenario_result):
        fig = plot_stage_mix(sample_scenario_result)
        assert isinstance(fig, plt.Figure)
        plt.close(fig)


class TestCreateSummaryTable:
    """Tests for markdown summary table generation."""

    def test_creates_markdown(self, sample_multi_scenario_results):
        table = create_summary_table(sample_multi_scenario_results)
        assert "# Benchmark Results Summary" in table
        assert "scenario_1" in table
        assert "scenario_2" in table

    def test_includes_policies(self, sample_multi_scenario_results):
        table = create_summary_table(sample_multi_scenario_results)
        assert "Adaptive" in table
        assert "FixedRaw" in table

    def test_rows_ordered_by_latency(self, sample_scenario_result):
        table = create_summary_table({"s": sample_scenario_result})
        assert table.index("| Adaptive |") < table.index("| FixedRaw |")

    def test_default_metric_labels(self, sample_multi_scenario_results):
        table = create_summary_table(sample_multi_scenario_results)
        assert "Mean Latency (IQM, ticks)" in table
        assert "Accuracy (IQM)" in table

    def test_custom_metrics(self, sample_multi_scenario_results):
        table = create_summary_table(
            sample_multi_scenario_results, metrics=["mean_points_used"]
        )
        assert "Points Used" in table
        assert "Accuracy (IQM)" not in table


class TestSaveAllPlots:
    def test_writes_files(self, sample_multi_scenario_results, tmp_path):
        save_all_plots(sample_multi_scenario_results, tmp_path)
        plots = tmp_path / "plots"
        assert (plots / "scenario_heatmap.png").exists()
        assert (plots / "scenario_1_latency_iqm.png").exists()
        assert (plots / "scenario_1_stages.png").exists()
        assert (tmp_path / "summary.md").exists()


class TestMetricLabel:
    """Tests for metric label conversion."""

    def test_known_metrics(self):
        assert _metric_label("latency_iqm") == "Mean Latency (IQM, ticks)"
        assert _metric_label("on_time_fraction") == "On-Time Fraction"

    def test_unknown_metric_returns_itself(self):
        assert _metric_label("unknown_metric") == "unknown_metric"
