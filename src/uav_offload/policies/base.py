"""Offload policy interface and the inputs a platform exposes to it."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import math

from uav_offload.data.catalogue import AccuracyCurveProvider
from uav_offload.detection import Detection, Stage
from uav_offload.ground.measurements import GroundMeasurements
from uav_offload.network.rate_process import RateSnapshot


@dataclass(frozen=True)
class OnboardRates:
    """Per-tick processing rates of a platform's own computer.

    Defaults match the ground rates except likelihoods, which run ten times
    slower without a GPU.
    """

    xyz_rate: int = 500
    segment_rate: int = 500_000
    likelihood_rate: int = 770

    def compute_ticks(self, detection: Detection, stage: Stage, points: int) -> int:
        """Ticks to preprocess ``detection`` from RAW up to ``stage`` on board.

        Each stage is rounded up to whole ticks on its own.
        """
        stage = Stage(stage)
        ticks = 0
        if stage >= Stage.CONVERTED:
            ticks += math.ceil(detection.scene_points / self.xyz_rate)
        if stage >= Stage.SEGMENTED:
            ticks += math.ceil(detection.scene_points / self.segment_rate)
        if stage >= Stage.CLASSIFIED:
            ticks += math.ceil(
                points * detection.library_size / self.likelihood_rate
            )
        return ticks


@dataclass(frozen=True)
class PlatformView:
    """Everything a platform knows when a new detection arrives.

    Attributes:
        forecast: Last rate snapshot received, None before the first broadcast.
        ground: Last ground load snapshot received, None before the first.
        onboard: The platform's own processing rates.
        accuracy_curve: Expected accuracy per number of points used.
        contenders: Number of other platforms sharing the channel.
        arrival_rate: Detections per tick per platform.
        ticks_since_last_detection: Ticks since this platform's previous
            detection (or since the start of the run).
    """

    forecast: RateSnapshot | None
    ground: GroundMeasurements | None
    onboard: OnboardRates
    accuracy_curve: AccuracyCurveProvider
    contenders: int = 0
    arrival_rate: float = 1 / 30
    ticks_since_last_detection: int = 0

    @property
    def is_cold(self) -> bool:
        """True until both a forecast and ground measurements have arrived."""
        return self.forecast is None or self.ground is None


@dataclass(frozen=True)
class OffloadDecision:
    """Outcome of an offload policy for one detection.

    Attributes:
        stage: Stage to preprocess to on board before transmitting.
        points_used: Vehicle point budget for classification.
        compute_ticks: On-board ticks needed to reach ``stage``.
        predicted_time: Predicted detect-to-classified ticks, if estimated.
        stage_times: Predicted total time per candidate stage.
    """

    stage: Stage
    points_used: int
    compute_ticks: int = 0
    predicted_time: float | None = None
    stage_times: dict[Stage, float] = field(default_factory=dict)


class OffloadPolicy(ABC):
    """Abstract base class for per-detection offload policies.

    One instance belongs to one platform, so implementations may keep state.
    """

    @abstractmethod
    def decide(self, detection: Detection, tick: int, view: PlatformView) -> OffloadDecision:
        """Choose the transmit stage and point budget for a new detection.

        Args:
            detection: Freshly created detection in the RAW stage.
            tick: Current simulation tick.
            view: The platform's current knowledge of channel and ground.

        Returns:
            The chosen stage, point budget and on-board compute time.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__
