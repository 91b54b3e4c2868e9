"""Result records streamed out of a finished simulation."""

from dataclasses import dataclass

from uav_offload.detection import Detection, Stage

CSV_HEADER = ("detection_id", "object_id", "stage", "latency", "match")


@dataclass(frozen=True)
class ResultRecord:
    """One classified detection, as written to the per-run results file."""

    detection_id: int
    platform_id: int
    object_id: int
    chosen_stage: Stage
    latency: int
    matched_object_id: int
    points_used: int
    created_tick: int

    @property
    def is_correct(self) -> bool:
        return self.matched_object_id == self.object_id

    @classmethod
    def from_detection(cls, detection: Detection) -> "ResultRecord":
        return cls(
            detection_id=detection.detection_id,
            platform_id=detection.platform_id,
            object_id=detection.object_id,
            chosen_stage=detection.chosen_stage,
            latency=detection.latency,
            matched_object_id=detection.match_id,
            points_used=detection.points_used,
            created_tick=detection.created_tick,
        )

    def to_csv_row(self) -> tuple[int, int, int, int, int]:
        """Row matching ``CSV_HEADER``; the stage is written as its index."""
        return (
            self.detection_id,
            self.object_id,
            int(self.chosen_stage),
            self.latency,
            self.matched_object_id,
        )
