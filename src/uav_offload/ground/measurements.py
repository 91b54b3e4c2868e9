"""Ground-station load snapshot and the user objective broadcast with it."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
import math

from uav_offload.errors import ConfigurationError
from uav_offload.detection import Detection, Stage


@dataclass(frozen=True)
class Objective:
    """User objective governing the offload decision.

    Attributes:
        target_accuracy: Desired minimum expected accuracy in [0, 1].
        target_latency: Desired maximum detect-to-classified latency (ticks).
        accuracy_priority: True if accuracy matters more than latency.
    """

    target_accuracy: float = 0.95
    target_latency: int = 120
    accuracy_priority: bool = True

    def __post_init__(self):
        if not 0.0 <= self.target_accuracy <= 1.0:
            raise ConfigurationError(
                f"target_accuracy must be in [0, 1], got {self.target_accuracy}"
            )
        if self.target_latency < 0:
            raise ConfigurationError(
                f"target_latency must be non-negative, got {self.target_latency}"
            )


@dataclass(frozen=True)
class GroundMeasurements:
    """Snapshot of ground load, recomputed once per tick by the ground station.

    Platforms only see a copy taken while the channel broadcasts a forecast.

    Attributes:
        xyz_rate: Raw returns converted to XYZ per tick, per element.
        segment_rate: Points segmented per tick, per element.
        likelihood_rate: Likelihoods computed per tick, per element.
        element_count: Number of parallel processing elements.
        library_size: Number of objects in the target library.
        objective: User objective.
        expected_queue_wait: Estimated ticks a new arrival spends queued.
    """

    xyz_rate: int
    segment_rate: int
    likelihood_rate: int
    element_count: int
    library_size: int
    objective: Objective = field(default_factory=Objective)
    expected_queue_wait: int = 0

    def __post_init__(self):
        for name in ("xyz_rate", "segment_rate", "likelihood_rate", "element_count"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.library_size < 0:
            raise ConfigurationError(
                f"library_size must be non-negative, got {self.library_size}"
            )

    def processing_time(self, detection: Detection, stage: Stage, points: int) -> int:
        """Ticks one element needs to finish a detection received at ``stage``.

        Each remaining stage is rounded up to whole ticks on its own, matching
        how an element spends at least one tick per stage it runs.

        Args:
            detection: Detection supplying the scene point count.
            stage: Stage the detection arrives in.
            points: Vehicle points to classify (clipped to the cloud size).
        """
        stage = Stage(stage)
        if stage == Stage.CLASSIFIED:
            return 0

        points = min(points, detection.vehicle_points)
        ticks = 0
        if stage <= Stage.RAW:
            ticks += math.ceil(detection.scene_points / self.xyz_rate)
        if stage <= Stage.CONVERTED:
            ticks += math.ceil(detection.scene_points / self.segment_rate)
        ticks += math.ceil(points * self.library_size / self.likelihood_rate)
        return ticks

    def remaining_work(self, detection: Detection) -> int:
        """Ticks of single-element work left on a queued detection."""
        work = 0.0
        if detection.stage <= Stage.RAW:
            work += detection.scene_points / self.xyz_rate
        if detection.stage <= Stage.CONVERTED:
            work += detection.scene_points / self.segment_rate
        if detection.stage <= Stage.SEGMENTED:
            work += detection.points_used * self.library_size / self.likelihood_rate
        return math.ceil(work)

    def estimate_queue_wait(self, queue: Iterable[Detection]) -> int:
        """Total remaining-stage work in ``queue`` spread over all elements."""
        total = sum(self.remaining_work(d) for d in queue)
        return math.ceil(total / self.element_count)

    def with_queue(self, queue: Iterable[Detection]) -> "GroundMeasurements":
        """Copy with ``expected_queue_wait`` recomputed for ``queue``."""
        return replace(self, expected_queue_wait=self.estimate_queue_wait(queue))
