"""Tests for the ground station queue and processing elements."""

import numpy as np
import pytest

from uav_offload.data.catalogue import (
    AccuracyCurve,
    Catalogue,
    InMemoryPointCounts,
    InMemoryScoreTables,
)
from uav_offload.detection import Detection, Stage
from uav_offload.errors import ConfigurationError
from uav_offload.ground.station import (
    ElementStatus,
    GroundConfig,
    GroundStation,
    ProcessingElement,
)

LIBRARY = (1, 2, 3)


@pytest.fixture
def catalogue():
    """Two objects; object 1 always matches itself, object 2 has no table."""
    table = np.zeros((50, len(LIBRARY)))
    table[:, 0] = 1.0
    return Catalogue(
        object_ids=(1, 2),
        library=LIBRARY,
        point_counts=InMemoryPointCounts({1: (1000, 50), 2: (1000, 50)}),
        score_tables=InMemoryScoreTables({1: table}),
        accuracy_curve=AccuracyCurve([0.5, 0.9]),
    )


@pytest.fixture
def config():
    # xyz: 2 ticks, segment: 1 tick, classify: ceil(50*3/50) = 3 ticks
    return GroundConfig(n_elements=2, xyz_rate=500, segment_rate=500_000, likelihood_rate=50)


def make_detection(detection_id: int, stage: Stage = Stage.RAW, object_id: int = 1) -> Detection:
    detection = Detection(
        detection_id=detection_id,
        platform_id=0,
        object_id=object_id,
        created_tick=0,
        scene_points=1000,
        vehicle_points=50,
        library_size=len(LIBRARY),
    )
    detection.record_decision(stage, 50)
    detection.advance_to(stage)
    return detection


def run_ground(station: GroundStation, start: int, ticks: int) -> list[Detection]:
    finished = []
    for tick in range(start, start + ticks):
        finished.extend(station.step(tick))
    return finished


class TestGroundConfig:
    def test_default_values(self):
        config = GroundConfig()
        assert config.n_elements == 4
        assert config.xyz_rate == 500
        assert config.segment_rate == 500_000
        assert config.likelihood_rate == 7_700

    def test_invalid_values(self):
        with pytest.raises(ConfigurationError):
            GroundConfig(n_elements=0)
        with pytest.raises(ConfigurationError):
            GroundConfig(likelihood_rate=0)


class TestProcessingElement:
    def test_assign_raw_initializes_all_stages(self, config, catalogue):
        element = ProcessingElement(config, catalogue, np.random.default_rng(0))
        detection = make_detection(0)
        assert element.assign(detection, 5)

        assert element.status == ElementStatus.TO_XYZ
        assert element.to_xyz == 1000
        assert element.to_segment == 1000
        assert element.to_classify == 50 * len(LIBRARY)
        assert detection.dequeue_tick == 5

    def test_assign_segmented_skips_to_classification(self, config, catalogue):
        element = ProcessingElement(config, catalogue, np.random.default_rng(0))
        element.assign(make_detection(0, Stage.SEGMENTED), 0)
        assert element.status == ElementStatus.TO_CLASSIFIED
        assert element.to_xyz == 0
        assert element.to_segment == 0

    def test_busy_element_rejects(self, config, catalogue):
        element = ProcessingElement(config, catalogue, np.random.default_rng(0))
        assert element.assign(make_detection(0), 0)
        assert not element.assign(make_detection(1), 0)
        assert element.current.detection_id == 0

    def test_stage_advances_monotonically(self, config, catalogue):
        element = ProcessingElement(config, catalogue, np.random.default_rng(0))
        detection = make_detection(0)
        element.assign(detection, 0)

        finished = None
        tick = 0
        while finished is None:
            finished = element.step(tick)
            tick += 1

        history = detection.stage_history
        assert history == sorted(history)
        assert history[-1] == Stage.CLASSIFIED
        # 2 ticks xyz + 1 segment + 3 classify
        assert tick == 6
        assert detection.processed_tick == 6
        assert detection.match_id == 1
        assert element.is_idle

    def test_missing_score_table_drops(self, config, catalogue):
        element = ProcessingElement(config, catalogue, np.random.default_rng(0))
        detection = make_detection(0, Stage.SEGMENTED, object_id=2)
        element.assign(detection, 0)

        results = [element.step(t) for t in range(5)]
        assert all(r is None for r in results)
        assert element.is_idle
        assert element.dropped == [detection]
        assert not detection.is_finished


class TestGroundStation:
    def test_initial_state(self, config, catalogue):
        station = GroundStation(config, catalogue)
        assert station.queue_size == 0
        assert len(station.free_elements) == 2
        assert station.is_drained
        assert station.measurements.element_count == 2
        assert station.measurements.library_size == len(LIBRARY)

    def test_receive_appends_with_queue_depth(self, config, catalogue):
        station = GroundStation(config, catalogue)
        first, second = make_detection(0), make_detection(1)
        station.receive(first, 3)
        station.receive(second, 3)

        assert [d.detection_id for d in station.queue] == [0, 1]
        assert first.queue_depth_at_receive == 0
        assert second.queue_depth_at_receive == 1
        assert second.receive_tick == 3

    def test_classified_bypasses_queue(self, config, catalogue):
        station = GroundStation(config, catalogue)
        detection = make_detection(0, Stage.CLASSIFIED)
        detection.match_id = 2
        station.receive(detection, 9)

        assert station.queue_size == 0
        assert station.results == [detection]
        assert detection.processed_tick == 9
        assert detection.dequeue_tick == 9
        assert detection.match_id == 2

    def test_fifo_dispatch_and_no_double_assignment(self, config, catalogue):
        station = GroundStation(config, catalogue)
        for i in range(5):
            station.receive(make_detection(i), 0)

        station.step(0)
        busy = station.busy_elements
        assert len(busy) == 2
        assert {e.current.detection_id for e in busy} == {0, 1}
        assert station.queue_size == 3

    def test_every_detection_finishes_exactly_once(self, config, catalogue):
        station = GroundStation(config, catalogue)
        for i in range(7):
            stage = [Stage.RAW, Stage.CONVERTED, Stage.SEGMENTED][i % 3]
            station.receive(make_detection(i, stage), 0)
        station.receive(make_detection(99, Stage.CLASSIFIED), 0)

        run_ground(station, 0, 100)

        ids = [d.detection_id for d in station.results]
        assert sorted(ids) == [0, 1, 2, 3, 4, 5, 6, 99]
        assert len(ids) == len(set(ids))
        assert station.is_drained

    def test_no_element_serves_two_detections(self, config, catalogue):
        station = GroundStation(config, catalogue)
        for i in range(6):
            station.receive(make_detection(i), 0)
        for tick in range(40):
            station.step(tick)
            in_service = [e.current.detection_id for e in station.busy_elements]
            assert len(in_service) == len(set(in_service))
            assert len(station.busy_elements) + len(station.free_elements) == 2

    def test_completion_time(self, config, catalogue):
        station = GroundStation(config, catalogue)
        detection = make_detection(0)
        station.receive(detection, 10)
        finished = run_ground(station, 10, 20)
        assert finished == [detection]
        expected = station.measurements.processing_time(detection, Stage.RAW, 50)
        assert detection.processed_tick - detection.receive_tick == expected

    def test_measurements_track_queue(self, config, catalogue):
        station = GroundStation(config, catalogue)
        for i in range(4):
            station.receive(make_detection(i), 0)
        station.step(0)
        # Two RAW detections left queued: ceil(2 + 0.002 + 3) = 6 each
        assert station.measurements.expected_queue_wait == 6

    def test_rejected_dispatch_requeues_at_head(self, config, catalogue):
        station = GroundStation(config, catalogue)
        element = station.free_elements[0]
        element.assign(make_detection(50), 0)  # busy but still listed as free

        station.receive(make_detection(0), 0)
        station.receive(make_detection(1), 0)
        station.step(0)

        # First pop hit the busy element and went back to the head
        assert station.busy_elements[1].current.detection_id == 0
        assert [d.detection_id for d in station.queue] == [1]

    def test_dropped_detection_is_reported(self, config, catalogue):
        station = GroundStation(config, catalogue)
        station.receive(make_detection(0, object_id=2), 0)
        station.receive(make_detection(1), 0)
        run_ground(station, 0, 30)

        assert [d.detection_id for d in station.results] == [1]
        assert [d.detection_id for d in station.dropped] == [0]
        assert station.is_drained
