"""Evaluation framework for UAV offload policies.

Provides multi-seed benchmarking across scenarios with IQM aggregation,
bootstrap confidence intervals, result persistence and plots.
"""

from uav_offload.evaluation.metrics import (
    TrialMetrics,
    PolicyMetrics,
    ScenarioResult,
    compute_iqm,
    compute_bootstrap_ci,
)
from uav_offload.evaluation.scenarios import (
    ScenarioConfig,
    SCENARIOS,
    create_scenario_simulation,
    get_scenario,
    list_scenarios,
)
from uav_offload.evaluation.runner import (
    BenchmarkConfig,
    BenchmarkRunner,
    default_policies,
    write_records_csv,
)
from uav_offload.evaluation.visualization import (
    plot_policy_comparison,
    plot_scenario_heatmap,
    plot_latency_distribution,
    plot_stage_mix,
    create_summary_table,
    save_all_plots,
)

__all__ = [
    # Metrics
    "TrialMetrics",
    "PolicyMetrics",
    "ScenarioResult",
    "compute_iqm",
    "compute_bootstrap_ci",
    # Scenarios
    "ScenarioConfig",
    "SCENARIOS",
    "create_scenario_simulation",
    "get_scenario",
    "list_scenarios",
    # Runner
    "BenchmarkConfig",
    "BenchmarkRunner",
    "default_policies",
    "write_records_csv",
    # Visualization
    "plot_policy_comparison",
    "plot_scenario_heatmap",
    "plot_latency_distribution",
    "plot_stage_mix",
    "create_summary_table",
    "save_all_plots",
]
