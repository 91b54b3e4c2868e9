"""Tests for the ground load snapshot and user objective."""

import pytest

from uav_offload.detection import Detection, Stage
from uav_offload.errors import ConfigurationError
from uav_offload.ground.measurements import GroundMeasurements, Objective


def make_detection(scene: int = 1000, vehicle: int = 100, stage: Stage = Stage.RAW) -> Detection:
    detection = Detection(
        detection_id=0,
        platform_id=0,
        object_id=1,
        created_tick=0,
        scene_points=scene,
        vehicle_points=vehicle,
        library_size=10,
    )
    detection.advance_to(stage)
    return detection


@pytest.fixture
def measurements():
    return GroundMeasurements(
        xyz_rate=500,
        segment_rate=500_000,
        likelihood_rate=100,
        element_count=2,
        library_size=10,
    )


class TestObjective:
    def test_defaults(self):
        objective = Objective()
        assert objective.target_accuracy == 0.95
        assert objective.target_latency == 120
        assert objective.accuracy_priority

    @pytest.mark.parametrize("accuracy", [-0.1, 1.5])
    def test_invalid_accuracy(self, accuracy):
        with pytest.raises(ConfigurationError):
            Objective(target_accuracy=accuracy)

    def test_invalid_latency(self):
        with pytest.raises(ConfigurationError):
            Objective(target_latency=-1)


class TestGroundMeasurements:
    def test_invalid_rates(self):
        with pytest.raises(ConfigurationError):
            GroundMeasurements(
                xyz_rate=0, segment_rate=1, likelihood_rate=1, element_count=1, library_size=1
            )
        with pytest.raises(ConfigurationError):
            GroundMeasurements(
                xyz_rate=1, segment_rate=1, likelihood_rate=1, element_count=0, library_size=1
            )

    def test_processing_time_raw(self, measurements):
        # ceil(1000/500) + ceil(1000/500000) + ceil(100*10/100)
        assert measurements.processing_time(make_detection(), Stage.RAW, 100) == 2 + 1 + 10

    def test_processing_time_converted(self, measurements):
        assert measurements.processing_time(make_detection(), Stage.CONVERTED, 100) == 1 + 10

    def test_processing_time_segmented(self, measurements):
        assert measurements.processing_time(make_detection(), Stage.SEGMENTED, 50) == 5

    def test_processing_time_classified(self, measurements):
        assert measurements.processing_time(make_detection(), Stage.CLASSIFIED, 100) == 0

    def test_processing_time_clips_points(self, measurements):
        assert measurements.processing_time(make_detection(), Stage.SEGMENTED, 10_000) == 10

    def test_empty_queue_wait(self, measurements):
        assert measurements.estimate_queue_wait([]) == 0

    def test_queue_wait_spreads_over_elements(self, measurements):
        # Each raw detection: 2 + 0.002 + 10 -> 13 ticks of work
        queue = [make_detection(), make_detection()]
        assert measurements.estimate_queue_wait(queue) == 13

    def test_queue_wait_uses_current_stage(self, measurements):
        queue = [make_detection(stage=Stage.SEGMENTED)]
        assert measurements.estimate_queue_wait(queue) == 5

    def test_with_queue_returns_new_snapshot(self, measurements):
        updated = measurements.with_queue([make_detection()])
        assert updated is not measurements
        assert measurements.expected_queue_wait == 0
        assert updated.expected_queue_wait == 7
        assert updated.objective == measurements.objective
