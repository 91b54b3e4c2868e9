"""Detection records and preprocessing stages for airborne point clouds."""

from dataclasses import dataclass, field
from enum import IntEnum

from uav_offload.errors import InvariantViolation


class Stage(IntEnum):
    """Degree of preprocessing completed on a detection.

    Ordered by pipeline position; a detection's stage only moves forward.
    """

    RAW = 0  # Raw LADAR returns straight off the sensor
    CONVERTED = 1  # Whole-scene XYZ point cloud
    SEGMENTED = 2  # Vehicle points cut out of the scene
    CLASSIFIED = 3  # Object match computed, only the likelihood vector remains


# Sizing follows the LADAR sensor model:
# Raw: per-pulse record size ~2100 bytes
# XYZ: 3 dimensions x 8-byte double
# Classified: one 8-byte likelihood per library object
BYTES_PER_RAW_POINT = 2100
BYTES_PER_XYZ_POINT = 24
BYTES_PER_LIKELIHOOD = 8


def payload_bytes(
    stage: Stage, scene_points: int, points_used: int, library_size: int
) -> int:
    """Bytes needed to transmit a detection preprocessed to ``stage``."""
    if stage == Stage.RAW:
        return scene_points * BYTES_PER_RAW_POINT
    if stage == Stage.CONVERTED:
        return scene_points * BYTES_PER_XYZ_POINT
    if stage == Stage.SEGMENTED:
        return points_used * BYTES_PER_XYZ_POINT
    if stage == Stage.CLASSIFIED:
        return library_size * BYTES_PER_LIKELIHOOD
    raise InvariantViolation(f"Unknown stage index {stage!r}")


@dataclass
class Detection:
    """A single sensor capture moving through the offload pipeline.

    Point counts and library size are fixed at creation. The stage only
    advances, and the decision fields are written once by the originating
    platform's offload policy.
    """

    detection_id: int
    platform_id: int
    object_id: int  # Catalogue entry this capture was drawn from
    created_tick: int
    scene_points: int
    vehicle_points: int
    library_size: int

    stage: Stage = Stage.RAW
    chosen_stage: Stage = Stage.RAW
    points_used: int = -1  # Vehicle point budget, full cloud until decided

    # Pipeline timestamps (None until reached)
    transmit_tick: int | None = None
    receive_tick: int | None = None
    queue_depth_at_receive: int | None = None
    dequeue_tick: int | None = None
    processed_tick: int | None = None
    points_processed: int | None = None
    match_id: int | None = None

    _history: list[Stage] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        if self.points_used < 0:
            self.points_used = self.vehicle_points
        self._history.append(self.stage)

    def advance_to(self, stage: Stage) -> None:
        """Move the detection forward to ``stage``.

        Re-entering the current stage is a no-op; moving backwards is a bug.
        """
        stage = Stage(stage)
        if stage < self.stage:
            raise InvariantViolation(
                f"Detection {self.detection_id} cannot regress from "
                f"{self.stage.name} to {stage.name}"
            )
        if stage != self.stage:
            self.stage = stage
            self._history.append(stage)

    def record_decision(self, stage: Stage, points_used: int) -> None:
        """Store the offload policy's chosen stage and point budget.

        The budget is clipped to the vehicle cloud size.
        """
        self.chosen_stage = Stage(stage)
        self.points_used = max(0, min(int(points_used), self.vehicle_points))

    @property
    def stage_history(self) -> list[Stage]:
        return list(self._history)

    @property
    def payload_bytes(self) -> int:
        """Bytes to transmit in the detection's current stage."""
        return payload_bytes(
            self.stage, self.scene_points, self.points_used, self.library_size
        )

    @property
    def is_finished(self) -> bool:
        return self.processed_tick is not None

    @property
    def latency(self) -> int | None:
        """Ticks from detection to classification, once classified."""
        if self.processed_tick is None:
            return None
        return self.processed_tick - self.created_tick

    # Timestamp updates, one per pipeline milestone

    def mark_transmit(self, tick: int) -> None:
        self.transmit_tick = tick

    def mark_received(self, tick: int, queue_depth: int) -> None:
        self.receive_tick = tick
        self.queue_depth_at_receive = queue_depth

    def mark_dequeued(self, tick: int) -> None:
        self.dequeue_tick = tick

    def mark_processed(self, tick: int, points_processed: int, match_id: int) -> None:
        self.processed_tick = tick
        self.points_processed = points_processed
        self.match_id = match_id
