"""Ground station processing pool and its broadcast load snapshot."""

from uav_offload.ground.measurements import GroundMeasurements, Objective
from uav_offload.ground.station import (
    ElementStatus,
    GroundConfig,
    GroundStation,
    ProcessingElement,
)

__all__ = [
    "GroundMeasurements",
    "Objective",
    "ElementStatus",
    "GroundConfig",
    "GroundStation",
    "ProcessingElement",
]
