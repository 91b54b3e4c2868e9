"""Scenario definitions for offload policy benchmarks.

Five scenarios stress different parts of the pipeline:
1. Baseline - moderate fleet, full-rate link, accuracy first
2. Latency Priority - same load, objective favours latency
3. Degraded Link - link stuck at a third of its peak rate
4. Ground Congested - one ground element for a larger fleet
5. Full Fleet - the 32-platform reference configuration
"""

from dataclasses import dataclass, field, replace
from typing import Any

from uav_offload.data.catalogue import Catalogue
from uav_offload.data.synthetic import create_synthetic_catalogue
from uav_offload.ground.measurements import Objective
from uav_offload.ground.station import GroundConfig
from uav_offload.network.channel import ChannelConfig
from uav_offload.platform.platform import PlatformConfig
from uav_offload.simulation.driver import PolicyFactory, Simulation, SimulationConfig


@dataclass
class ScenarioConfig:
    """Configuration for a benchmark scenario."""

    name: str
    description: str
    sim_config: SimulationConfig
    # Keyword arguments for create_synthetic_catalogue
    catalogue_config: dict[str, Any] = field(default_factory=dict)
    catalogue_seed: int = 0

    def create_catalogue(self) -> Catalogue:
        return create_synthetic_catalogue(seed=self.catalogue_seed, **self.catalogue_config)

    def create_simulation(
        self,
        seed: int | None = None,
        policy_factory: PolicyFactory | None = None,
        catalogue: Catalogue | None = None,
        horizon: int | None = None,
    ) -> Simulation:
        """Create a simulation instance for this scenario."""
        return create_scenario_simulation(
            self, seed=seed, policy_factory=policy_factory, catalogue=catalogue, horizon=horizon
        )


def _create_baseline() -> ScenarioConfig:
    """Baseline scenario - eight platforms on a full-rate link.

    Raw offload alone keeps the ground busy, so on-board preprocessing
    starts to pay off.
    """
    return ScenarioConfig(
        name="baseline",
        description="8 platforms, full-rate link, 4 ground elements",
        sim_config=SimulationConfig(
            horizon=1000,
            platform=PlatformConfig(n_platforms=8),
        ),
    )


def _create_latency_priority() -> ScenarioConfig:
    """Latency Priority scenario - slack is spent on points only under target."""
    return ScenarioConfig(
        name="latency_priority",
        description="Baseline load, latency-first objective (60 ticks)",
        sim_config=SimulationConfig(
            horizon=1000,
            platform=PlatformConfig(n_platforms=8),
            objective=Objective(
                target_accuracy=0.95,
                target_latency=60,
                accuracy_priority=False,
            ),
        ),
    )


def _create_degraded_link() -> ScenarioConfig:
    """Degraded Link scenario - the link starts and stays at 2/6 of peak.

    Raw payloads take three times longer on air, favouring compact stages.
    """
    return ScenarioConfig(
        name="degraded_link",
        description="Link held at 1/3 peak rate (1.875 MB/tick)",
        sim_config=SimulationConfig(
            horizon=1000,
            channel=ChannelConfig(start_state=4, absorbing_states=(0, 4, 5)),
            platform=PlatformConfig(n_platforms=8),
        ),
    )


def _create_ground_congested() -> ScenarioConfig:
    """Ground Congested scenario - one ground element serving 16 platforms."""
    return ScenarioConfig(
        name="ground_congested",
        description="16 platforms, single ground element",
        sim_config=SimulationConfig(
            horizon=1000,
            ground=GroundConfig(n_elements=1),
            platform=PlatformConfig(n_platforms=16),
        ),
    )


def _create_full_fleet() -> ScenarioConfig:
    """Full Fleet scenario - the 32-platform reference configuration."""
    return ScenarioConfig(
        name="full_fleet",
        description="32 platforms, reference link and ground pool",
        sim_config=SimulationConfig(horizon=1000),
    )


# Pre-defined scenarios for benchmarking
SCENARIOS: dict[str, ScenarioConfig] = {
    "baseline": _create_baseline(),
    "latency_priority": _create_latency_priority(),
    "degraded_link": _create_degraded_link(),
    "ground_congested": _create_ground_congested(),
    "full_fleet": _create_full_fleet(),
}


def create_scenario_simulation(
    scenario: ScenarioConfig,
    seed: int | None = None,
    policy_factory: PolicyFactory | None = None,
    catalogue: Catalogue | None = None,
    horizon: int | None = None,
) -> Simulation:
    """Create a simulation instance for a scenario.

    Args:
        scenario: Scenario configuration.
        seed: Random seed for the run.
        policy_factory: Per-platform policy constructor.
        catalogue: Catalogue to reuse; built from the scenario when omitted.
        horizon: Override for the scenario's horizon.

    Returns:
        Configured Simulation instance.
    """
    config = replace(scenario.sim_config, seed=seed)
    if horizon is not None:
        config = replace(config, horizon=horizon)

    return Simulation(
        catalogue or scenario.create_catalogue(),
        config=config,
        policy_factory=policy_factory,
    )


def get_scenario(name: str) -> ScenarioConfig:
    """Get scenario by name.

    Raises:
        KeyError: If scenario not found.
    """
    if name not in SCENARIOS:
        available = ", ".join(SCENARIOS.keys())
        raise KeyError(f"Unknown scenario '{name}'. Available: {available}")
    return SCENARIOS[name]


def list_scenarios() -> list[str]:
    """List all available scenario names."""
    return list(SCENARIOS.keys())
