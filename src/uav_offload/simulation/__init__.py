"""Simulation driver and its result stream."""

from uav_offload.simulation.records import CSV_HEADER, ResultRecord
from uav_offload.simulation.driver import (
    PolicyFactory,
    Simulation,
    SimulationConfig,
    default_policy_factory,
)

__all__ = [
    "CSV_HEADER",
    "ResultRecord",
    "PolicyFactory",
    "Simulation",
    "SimulationConfig",
    "default_policy_factory",
]
