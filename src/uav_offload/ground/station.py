"""Ground station: FIFO work queue served by identical processing elements."""

from collections import deque
from dataclasses import dataclass
from enum import IntEnum
import logging

import numpy as np

from uav_offload.data.catalogue import Catalogue
from uav_offload.data.scoring import score_detection
from uav_offload.errors import ConfigurationError, DataUnavailableError
from uav_offload.ground.measurements import GroundMeasurements, Objective
from uav_offload.detection import Detection, Stage

logger = logging.getLogger(__name__)


class ElementStatus(IntEnum):
    """Processing element states, named for the stage being worked towards."""

    IDLE = 0
    TO_XYZ = 1  # Converting raw returns to XYZ
    TO_SEGMENTED = 2  # Segmenting the vehicle out of the scene
    TO_CLASSIFIED = 3  # Computing likelihoods against the library


# Status an element starts in for a detection arriving at each stage
_START_STATUS = {
    Stage.RAW: ElementStatus.TO_XYZ,
    Stage.CONVERTED: ElementStatus.TO_SEGMENTED,
    Stage.SEGMENTED: ElementStatus.TO_CLASSIFIED,
    Stage.CLASSIFIED: ElementStatus.IDLE,
}


@dataclass
class GroundConfig:
    """Configuration for the ground processing pool.

    Rates are per element per tick:
    - XYZ conversion: ~500 points/s for raw LADAR returns
    - Segmentation: fast enough to be negligible
    - Likelihoods: ~7700/s measured on GPU
    """

    n_elements: int = 4
    xyz_rate: int = 500
    segment_rate: int = 500_000
    likelihood_rate: int = 7_700

    def __post_init__(self):
        for name in ("n_elements", "xyz_rate", "segment_rate", "likelihood_rate"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")


class ProcessingElement:
    """One ground worker running a detection through its remaining stages.

    Each tick the element drains its current stage's counter by the stage's
    fixed rate. A stage whose counter reaches zero hands over to the next one
    on the following tick. Classification ends with scoring the detection.
    """

    def __init__(
        self,
        config: GroundConfig,
        catalogue: Catalogue,
        rng: np.random.Generator,
        element_id: int = 0,
    ):
        self.element_id = element_id
        self._config = config
        self._catalogue = catalogue
        self._rng = rng

        self.status = ElementStatus.IDLE
        self.current: Detection | None = None
        self.to_xyz = 0
        self.to_segment = 0
        self.to_classify = 0
        self.dropped: list[Detection] = []

    @property
    def is_idle(self) -> bool:
        return self.status == ElementStatus.IDLE

    def assign(self, detection: Detection, tick: int) -> bool:
        """Begin working on ``detection``; rejected if the element is busy."""
        if not self.is_idle:
            return False

        detection.mark_dequeued(tick)
        self.current = detection
        self.to_xyz = detection.scene_points
        self.to_segment = detection.scene_points
        self.to_classify = detection.points_used * self._catalogue.library_size

        # Stages already done on board carry no work
        if detection.stage >= Stage.CONVERTED:
            self.to_xyz = 0
        if detection.stage >= Stage.SEGMENTED:
            self.to_segment = 0
        if detection.stage >= Stage.CLASSIFIED:
            self.to_classify = 0

        self.status = _START_STATUS[detection.stage]
        return True

    def step(self, tick: int) -> Detection | None:
        """Work one tick.

        Returns:
            The detection if it was classified this tick, else None.
        """
        if self.status == ElementStatus.TO_XYZ:
            self.to_xyz -= self._config.xyz_rate
            if self.to_xyz <= 0:
                self.current.advance_to(Stage.CONVERTED)
                self.status = ElementStatus.TO_SEGMENTED

        elif self.status == ElementStatus.TO_SEGMENTED:
            self.to_segment -= self._config.segment_rate
            if self.to_segment <= 0:
                self.current.advance_to(Stage.SEGMENTED)
                self.status = ElementStatus.TO_CLASSIFIED

        elif self.status == ElementStatus.TO_CLASSIFIED:
            self.to_classify -= self._config.likelihood_rate
            if self.to_classify <= 0:
                return self._finish(tick)

        return None

    def _finish(self, tick: int) -> Detection | None:
        detection = self.current
        self.current = None
        self.status = ElementStatus.IDLE

        try:
            match = score_detection(
                detection.object_id,
                detection.points_used,
                self._catalogue.library,
                self._catalogue.score_tables,
                self._rng,
            )
        except DataUnavailableError as e:
            logger.warning(
                "tick %d: element %d dropped detection %d: %s",
                tick,
                self.element_id,
                detection.detection_id,
                e,
            )
            self.dropped.append(detection)
            return None

        detection.advance_to(Stage.CLASSIFIED)
        # Work done during tick t is complete at the end of the tick
        detection.mark_processed(tick + 1, detection.points_used, match)
        return detection


class GroundStation:
    """FIFO work queue dispatched to a pool of processing elements.

    Each tick: dispatch queue heads to free elements, step every busy element,
    collect finished detections, then recompute the load snapshot.
    """

    def __init__(
        self,
        config: GroundConfig,
        catalogue: Catalogue,
        objective: Objective | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config
        self._catalogue = catalogue
        rng = rng or np.random.default_rng()

        self._queue: deque[Detection] = deque()
        self._results: list[Detection] = []
        self._free: deque[ProcessingElement] = deque(
            ProcessingElement(config, catalogue, rng, element_id=i)
            for i in range(config.n_elements)
        )
        self._busy: list[ProcessingElement] = []

        self._measurements = GroundMeasurements(
            xyz_rate=config.xyz_rate,
            segment_rate=config.segment_rate,
            likelihood_rate=config.likelihood_rate,
            element_count=config.n_elements,
            library_size=catalogue.library_size,
            objective=objective or Objective(),
        )

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def queue(self) -> list[Detection]:
        return list(self._queue)

    @property
    def results(self) -> list[Detection]:
        return list(self._results)

    @property
    def measurements(self) -> GroundMeasurements:
        return self._measurements

    @property
    def free_elements(self) -> list[ProcessingElement]:
        return list(self._free)

    @property
    def busy_elements(self) -> list[ProcessingElement]:
        return list(self._busy)

    @property
    def dropped(self) -> list[Detection]:
        return [d for e in (*self._free, *self._busy) for d in e.dropped]

    @property
    def is_drained(self) -> bool:
        """True when nothing is queued or in service."""
        return not self._queue and not self._busy

    def receive(self, detection: Detection, tick: int) -> None:
        """Accept a detection off the channel.

        Detections classified on board skip the queue and go straight to the
        results; everything else joins the queue tail.
        """
        detection.mark_received(tick, len(self._queue))

        if detection.stage >= Stage.CLASSIFIED:
            detection.mark_dequeued(tick)
            detection.mark_processed(tick, detection.points_used, detection.match_id)
            self._results.append(detection)
        else:
            self._queue.append(detection)

    def step(self, tick: int) -> list[Detection]:
        """Advance the ground station one tick.

        Returns:
            Detections classified this tick.
        """
        while self._queue and self._free:
            detection = self._queue.popleft()
            element = self._free.popleft()
            if element.assign(detection, tick):
                logger.debug(
                    "tick %d: element %d took detection %d (%s)",
                    tick,
                    element.element_id,
                    detection.detection_id,
                    detection.stage.name,
                )
            else:
                self._queue.appendleft(detection)
            self._busy.append(element)

        finished = []
        still_busy = []
        for element in self._busy:
            detection = element.step(tick)
            if detection is not None:
                finished.append(detection)
            if element.is_idle:
                self._free.append(element)
            else:
                still_busy.append(element)
        self._busy = still_busy
        self._results.extend(finished)

        self._measurements = self._measurements.with_queue(self._queue)
        return finished
