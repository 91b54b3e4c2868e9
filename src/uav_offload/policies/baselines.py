"""Non-adaptive offload policies for comparison against the adaptive decision."""

from uav_offload.detection import Detection, Stage
from uav_offload.policies.base import OffloadDecision, OffloadPolicy, PlatformView


class FixedStagePolicy(OffloadPolicy):
    """Always preprocess to one stage, using the full vehicle cloud.

    ``FixedStagePolicy(Stage.RAW)`` sends every detection straight off the
    sensor and leaves all processing to the ground.
    """

    def __init__(self, stage: Stage = Stage.RAW):
        self.stage = Stage(stage)

    def decide(self, detection: Detection, tick: int, view: PlatformView) -> OffloadDecision:
        points = detection.vehicle_points
        return OffloadDecision(
            stage=self.stage,
            points_used=points,
            compute_ticks=view.onboard.compute_ticks(detection, self.stage, points),
        )

    @property
    def name(self) -> str:
        return f"Fixed{self.stage.name.capitalize()}"


class RawOffloadPolicy(FixedStagePolicy):
    """Send everything RAW."""

    def __init__(self):
        super().__init__(Stage.RAW)


class OnboardClassifyPolicy(FixedStagePolicy):
    """Run the whole pipeline on board and send only the likelihoods."""

    def __init__(self):
        super().__init__(Stage.CLASSIFIED)
