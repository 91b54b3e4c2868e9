"""Per-detection offload policies: adaptive decision and fixed-stage baselines."""

from uav_offload.policies.base import (
    OffloadDecision,
    OffloadPolicy,
    OnboardRates,
    PlatformView,
)
from uav_offload.policies.adaptive import (
    AdaptiveOffloadPolicy,
    expected_channel_wait,
    estimate_contenders,
    minimal_points,
    transmit_ticks,
)
from uav_offload.policies.baselines import (
    FixedStagePolicy,
    RawOffloadPolicy,
    OnboardClassifyPolicy,
)

__all__ = [
    "OffloadDecision",
    "OffloadPolicy",
    "OnboardRates",
    "PlatformView",
    "AdaptiveOffloadPolicy",
    "expected_channel_wait",
    "estimate_contenders",
    "minimal_points",
    "transmit_ticks",
    "FixedStagePolicy",
    "RawOffloadPolicy",
    "OnboardClassifyPolicy",
]
