"""Visualization utilities for benchmark results.

Provides publication-quality plots for offload policy comparison.
"""

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt

from uav_offload.detection import Stage
from uav_offload.evaluation.metrics import ScenarioResult


# Color scheme for consistent policy colors
POLICY_COLORS = {
    "Adaptive": "#2ecc71",  # Green
    "FixedRaw": "#e74c3c",  # Red
    "FixedConverted": "#f39c12",  # Orange
    "FixedSegmented": "#9b59b6",  # Purple
    "FixedClassified": "#3498db",  # Blue
}

DEFAULT_COLOR = "#34495e"  # Dark gray for unknown policies

STAGE_COLORS = {
    Stage.RAW: "#e74c3c",
    Stage.CONVERTED: "#f39c12",
    Stage.SEGMENTED: "#9b59b6",
    Stage.CLASSIFIED: "#3498db",
}


def get_policy_color(name: str) -> str:
    """Get consistent color for a policy."""
    return POLICY_COLORS.get(name, DEFAULT_COLOR)


def _style(ax: plt.Axes) -> None:
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)


def plot_policy_comparison(
    result: ScenarioResult,
    metric: str = "latency_iqm",
    figsize: tuple[float, float] = (10, 6),
    title: str | None = None,
) -> plt.Figure:
    """Create bar chart comparing policies on a single metric.

    Args:
        result: ScenarioResult with policy evaluations.
        metric: Metric to plot (from summary()).
        figsize: Figure size.
        title: Plot title (auto-generated if None).

    Returns:
        matplotlib Figure.
    """
    fig, ax = plt.subplots(figsize=figsize)

    policies = list(result.policy_results.keys())
    summaries = [result.policy_results[p].summary() for p in policies]

    values = [s[metric] for s in summaries]
    colors = [get_policy_color(p) for p in policies]

    # Get CIs if available
    ci_metric = metric.replace("_iqm", "_ci")
    has_ci = bool(summaries) and f"{ci_metric}_low" in summaries[0]

    x = np.arange(len(policies))
    ax.bar(x, values, color=colors, edgecolor="black", linewidth=0.5)

    if has_ci:
        ci_low = [s[f"{ci_metric}_low"] for s in summaries]
        ci_high = [s[f"{ci_metric}_high"] for s in summaries]
        errors = [
            [max(v - lo, 0.0) for v, lo in zip(values, ci_low)],
            [max(hi - v, 0.0) for v, hi in zip(values, ci_high)],
        ]
        ax.errorbar(
            x, values, yerr=errors, fmt="none", color="black", capsize=4, capthick=1.5
        )

    ax.set_xticks(x)
    ax.set_xticklabels(policies, rotation=45, ha="right")
    ax.set_ylabel(_metric_label(metric))

    if title is None:
        title = f"{result.scenario_name}: {_metric_label(metric)}"
    ax.set_title(title)
    _style(ax)

    plt.tight_layout()
    return fig


def plot_scenario_heatmap(
    results: dict[str, ScenarioResult],
    metric: str = "accuracy_iqm",
    figsize: tuple[float, float] = (12, 8),
    title: str = "Policy Performance Across Scenarios",
) -> plt.Figure:
    """Create heatmap of policy x scenario performance, normalized per scenario.

    Args:
        results: Dict mapping scenario names to ScenarioResults.
        metric: Metric to visualize.
        figsize: Figure size.
        title: Plot title.

    Returns:
        matplotlib Figure.
    """
    scenarios = list(results.keys())
    policies = list(results[scenarios[0]].policy_results.keys())

    data = np.zeros((len(scenarios), len(policies)))
    for i, scenario in enumerate(scenarios):
        for j, policy in enumerate(policies):
            if policy in results[scenario].policy_results:
                summary = results[scenario].policy_results[policy].summary()
                data[i, j] = summary.get(metric, 0)

    row_max = data.max(axis=1, keepdims=True)
    row_max[row_max == 0] = 1
    normalized = data / row_max

    fig, ax = plt.subplots(figsize=figsize)
    im = ax.imshow(normalized, cmap="RdYlGn", aspect="auto", vmin=0, vmax=1)

    ax.set_xticks(np.arange(len(policies)))
    ax.set_yticks(np.arange(len(scenarios)))
    ax.set_xticklabels(policies, rotation=45, ha="right")
    ax.set_yticklabels(scenarios)

    for i in range(len(scenarios)):
        for j in range(len(policies)):
            text_color = "white" if normalized[i, j] < 0.5 else "black"
            ax.text(
                j, i, f"{data[i, j]:.2f}", ha="center", va="center", color=text_color, fontsize=9
            )

    ax.set_title(title)
    plt.colorbar(im, ax=ax, label=f"{_metric_label(metric)} (relative)")

    plt.tight_layout()
    return fig


def plot_latency_distribution(
    result: ScenarioResult,
    figsize: tuple[float, float] = (12, 6),
    title: str | None = None,
) -> plt.Figure:
    """Create violin plot of detect-to-classified latency by policy.

    Args:
        result: ScenarioResult with policy evaluations.
        figsize: Figure size.
        title: Plot title.

    Returns:
        matplotlib Figure.
    """
    fig, ax = plt.subplots(figsize=figsize)

    policies = list(result.policy_results.keys())
    all_latencies = []
    positions = []

    for i, policy in enumerate(policies):
        latencies = []
        for trial in result.policy_results[policy].trials:
            latencies.extend(trial.latencies())
        # KDE needs at least two distinct values
        if len(set(latencies)) > 1:
            all_latencies.append(latencies)
            positions.append(i)

    if all_latencies:
        parts = ax.violinplot(
            all_latencies, positions=positions, showmeans=True, showmedians=True
        )
        for pc, pos in zip(parts["bodies"], positions):
            pc.set_facecolor(get_policy_color(policies[pos]))
            pc.set_edgecolor("black")
            pc.set_alpha(0.7)

    ax.set_xticks(range(len(policies)))
    ax.set_xticklabels(policies, rotation=45, ha="right")
    ax.set_ylabel("Latency (ticks)")

    if title is None:
        title = f"{result.scenario_name}: Detection Latency Distribution"
    ax.set_title(title)
    _style(ax)

    plt.tight_layout()
    return fig


def plot_stage_mix(
    result: ScenarioResult,
    figsize: tuple[float, float] = (12, 6),
    title: str | None = None,
) -> plt.Figure:
    """Create stacked bar chart of the stage each policy transmitted at.

    Args:
        result: ScenarioResult with policy evaluations.
        figsize: Figure size.
        title: Plot title.

    Returns:
        matplotlib Figure.
    """
    fig, ax = plt.subplots(figsize=figsize)

    policies = list(result.policy_results.keys())
    mixes = [result.policy_results[p].stage_mix() for p in policies]

    x = np.arange(len(policies))
    bottoms = np.zeros(len(policies))
    for stage in Stage:
        fractions = np.array([mix.get(stage.name, 0.0) for mix in mixes])
        ax.bar(
            x,
            fractions,
            0.6,
            bottom=bottoms,
            label=stage.name,
            color=STAGE_COLORS[stage],
            edgecolor="black",
            linewidth=0.5,
        )
        bottoms += fractions

    ax.set_xticks(x)
    ax.set_xticklabels(policies, rotation=45, ha="right")
    ax.set_ylabel("Fraction of Detections")
    ax.set_ylim(0, 1.05)
    ax.legend(title="Transmit Stage", loc="upper left", bbox_to_anchor=(1, 1))

    if title is None:
        title = f"{result.scenario_name}: Offload Stage Mix"
    ax.set_title(title)
    _style(ax)

    plt.tight_layout()
    return fig


def create_summary_table(
    results: dict[str, ScenarioResult],
    metrics: list[str] | None = None,
) -> str:
    """Generate markdown table summarizing benchmark results.

    Args:
        results: Dict mapping scenario names to ScenarioResults.
        metrics: Metrics to include (default: key metrics).

    Returns:
        Markdown-formatted table string.
    """
    if metrics is None:
        metrics = [
            "latency_iqm",
            "latency_p95_iqm",
            "accuracy_iqm",
            "on_time_fraction",
            "mean_classified",
        ]

    lines = ["# Benchmark Results Summary\n"]

    for scenario_name, result in results.items():
        lines.append(f"## {scenario_name}\n")
        lines.append(f"*{result.description}*\n")

        header = "| Policy |"
        separator = "|--------|"
        for m in metrics:
            header += f" {_metric_label(m)} |"
            separator += "--------|"
        lines.append(header)
        lines.append(separator)

        # Rows sorted by mean latency, best first
        for policy_name, _ in result.get_ranking("latency_iqm"):
            summary = result.policy_results[policy_name].summary()

            row = f"| {policy_name} |"
            for m in metrics:
                val = summary.get(m, 0)
                ci_key = m.replace("_iqm", "_ci")
                if isinstance(val, float) and "_iqm" in m and f"{ci_key}_low" in summary:
                    row += f" {val:.2f} [{summary[f'{ci_key}_low']:.2f}, {summary[f'{ci_key}_high']:.2f}] |"
                elif isinstance(val, float):
                    row += f" {val:.2f} |"
                else:
                    row += f" {val} |"
            lines.append(row)

        lines.append("")

    return "\n".join(lines)


def save_all_plots(
    results: dict[str, ScenarioResult],
    output_dir: str | Path,
) -> None:
    """Save all benchmark plots and the summary table to disk.

    Args:
        results: Benchmark results.
        output_dir: Directory to save plots.
    """
    output_dir = Path(output_dir)
    plots_dir = output_dir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    for scenario_name, result in results.items():
        for metric in ("latency_iqm", "accuracy_iqm"):
            fig = plot_policy_comparison(result, metric)
            fig.savefig(
                plots_dir / f"{scenario_name}_{metric}.png", dpi=150, bbox_inches="tight"
            )
            plt.close(fig)

        fig = plot_latency_distribution(result)
        fig.savefig(plots_dir / f"{scenario_name}_latency.png", dpi=150, bbox_inches="tight")
        plt.close(fig)

        fig = plot_stage_mix(result)
        fig.savefig(plots_dir / f"{scenario_name}_stages.png", dpi=150, bbox_inches="tight")
        plt.close(fig)

    fig = plot_scenario_heatmap(results)
    fig.savefig(plots_dir / "scenario_heatmap.png", dpi=150, bbox_inches="tight")
    plt.close(fig)

    with open(output_dir / "summary.md", "w") as f:
        f.write(create_summary_table(results))


def _metric_label(metric: str) -> str:
    """Get human-readable label for a metric."""
    labels = {
        "latency_iqm": "Mean Latency (IQM, ticks)",
        "latency_p95_iqm": "P95 Latency (ticks)",
        "accuracy_iqm": "Accuracy (IQM)",
        "on_time_fraction": "On-Time Fraction",
        "mean_points_used": "Points Used",
        "mean_classified": "Classified",
        "mean_dropped": "Dropped",
        "mean_contention_losses": "Contention Losses",
    }
    return labels.get(metric, metric)
