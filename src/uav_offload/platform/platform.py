"""Sensor platform: detection arrivals, on-board preprocessing and channel access."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import IntEnum
import logging
import math

import numpy as np

from uav_offload.data.catalogue import Catalogue
from uav_offload.data.scoring import score_detection
from uav_offload.detection import Detection, Stage
from uav_offload.errors import ConfigurationError, DataUnavailableError
from uav_offload.ground.measurements import GroundMeasurements
from uav_offload.network.rate_process import RateSnapshot
from uav_offload.policies.base import OffloadPolicy, OnboardRates, PlatformView

logger = logging.getLogger(__name__)


class PlatformStatus(IntEnum):
    """Platform pipeline states."""

    IDLE = 0  # Waiting for the next detection
    COMPUTING_XYZ = 1  # Converting on board, will send CONVERTED
    COMPUTING_SEGMENT = 2  # Segmenting on board, will send SEGMENTED
    COMPUTING_CLASSIFICATION = 3  # Classifying on board, will send CLASSIFIED
    TRANSMITTING = 4  # Detection on the channel
    BACKOFF = 5  # Lost contention, retrying next tick


_COMPUTING_STATUS = {
    Stage.CONVERTED: PlatformStatus.COMPUTING_XYZ,
    Stage.SEGMENTED: PlatformStatus.COMPUTING_SEGMENT,
    Stage.CLASSIFIED: PlatformStatus.COMPUTING_CLASSIFICATION,
}


@dataclass
class PlatformConfig:
    """Configuration for the platform fleet.

    Detections arrive as a Poisson process, one every ``1 / arrival_rate``
    ticks on average per platform. On-board rates are per tick; likelihoods
    run ten times slower than on the ground.
    """

    n_platforms: int = 32
    arrival_rate: float = 1 / 30
    xyz_rate: int = 500
    segment_rate: int = 500_000
    likelihood_rate: int = 770
    backoff_cap: int = 10

    def __post_init__(self):
        if self.n_platforms < 1:
            raise ConfigurationError(f"n_platforms must be >= 1, got {self.n_platforms}")
        if self.arrival_rate <= 0:
            raise ConfigurationError(f"arrival_rate must be positive, got {self.arrival_rate}")
        for name in ("xyz_rate", "segment_rate", "likelihood_rate"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.backoff_cap < 0:
            raise ConfigurationError(f"backoff_cap must be >= 0, got {self.backoff_cap}")

    @property
    def onboard(self) -> OnboardRates:
        return OnboardRates(
            xyz_rate=self.xyz_rate,
            segment_rate=self.segment_rate,
            likelihood_rate=self.likelihood_rate,
        )


class Platform:
    """One airborne sensor platform.

    Each tick the platform may produce a detection, finish on-board work or
    retry after a lost contention. Whatever it wants to send is returned from
    ``step`` as an offer; the caller reports the channel's answer through
    ``on_channel_response``.
    """

    def __init__(
        self,
        platform_id: int,
        config: PlatformConfig,
        catalogue: Catalogue,
        policy: OffloadPolicy,
        detection_ids: Iterator[int],
        horizon: int,
        rng: np.random.Generator | None = None,
    ):
        """Initialize the platform.

        Args:
            platform_id: Index of this platform in the fleet.
            config: Fleet configuration.
            catalogue: Shared detection data.
            policy: This platform's own offload policy.
            detection_ids: Simulation-wide source of unique detection ids.
            horizon: Last tick at which a detection may be produced.
            rng: Random generator for arrivals, object draws and scoring.
        """
        self.platform_id = platform_id
        self.config = config
        self.policy = policy
        self.horizon = horizon
        self._catalogue = catalogue
        self._ids = detection_ids
        self._rng = rng or np.random.default_rng()
        self._onboard = config.onboard

        self.status = PlatformStatus.IDLE
        self.pending: Detection | None = None
        self.backoff_count = 0
        self.retry_tick: int | None = None
        self.compute_done_tick: int | None = None
        self.last_detection_tick = 0
        self.next_detection_tick = self._draw_next(0)

        self.forecast: RateSnapshot | None = None
        self.ground: GroundMeasurements | None = None
        self.dropped: list[Detection] = []
        self.detections_created = 0

    @property
    def is_idle(self) -> bool:
        return self.status == PlatformStatus.IDLE and self.pending is None

    @property
    def is_done(self) -> bool:
        """True when idle with no further detections before the horizon."""
        return self.is_idle and self.next_detection_tick > self.horizon

    def _draw_next(self, tick: int) -> int:
        gap = self._rng.exponential(1.0 / self.config.arrival_rate)
        return tick + max(1, math.ceil(gap))

    def save_forecast(self, forecast: RateSnapshot | None) -> None:
        self.forecast = forecast

    def save_ground_measurements(self, measurements: GroundMeasurements) -> None:
        self.ground = measurements

    def step(self, tick: int) -> Detection | None:
        """Advance the pipeline one tick.

        Returns:
            A detection offered for transmission this tick, or None.
        """
        if self.status == PlatformStatus.IDLE:
            if self.pending is None and tick >= self.next_detection_tick:
                if tick > self.horizon:
                    return None
                return self._new_detection(tick)
            return None

        if self.status in _COMPUTING_STATUS.values():
            if tick >= self.compute_done_tick:
                return self._finish_compute(tick)
            return None

        if self.status == PlatformStatus.BACKOFF:
            if tick >= self.retry_tick:
                return self.pending
            return None

        return None

    def _new_detection(self, tick: int) -> Detection | None:
        object_id = int(self._rng.choice(self._catalogue.object_ids))
        # Geometry is required to schedule; a lookup failure ends the run
        scene, vehicle = self._catalogue.point_counts.point_counts(object_id)

        detection = Detection(
            detection_id=next(self._ids),
            platform_id=self.platform_id,
            object_id=object_id,
            created_tick=tick,
            scene_points=scene,
            vehicle_points=vehicle,
            library_size=self._catalogue.library_size,
        )
        self.detections_created += 1
        self.backoff_count = 0

        view = PlatformView(
            forecast=self.forecast,
            ground=self.ground,
            onboard=self._onboard,
            accuracy_curve=self._catalogue.accuracy_curve,
            contenders=self.config.n_platforms - 1,
            arrival_rate=self.config.arrival_rate,
            ticks_since_last_detection=tick - self.last_detection_tick,
        )
        decision = self.policy.decide(detection, tick, view)
        detection.record_decision(decision.stage, decision.points_used)
        self.last_detection_tick = tick
        self.pending = detection

        if detection.chosen_stage == Stage.RAW:
            return detection

        self.status = _COMPUTING_STATUS[detection.chosen_stage]
        self.compute_done_tick = max(tick + decision.compute_ticks, tick + 1)
        logger.debug(
            "tick %d: platform %d computing detection %d to %s until tick %d",
            tick,
            self.platform_id,
            detection.detection_id,
            detection.chosen_stage.name,
            self.compute_done_tick,
        )
        return None

    def _finish_compute(self, tick: int) -> Detection | None:
        detection = self.pending
        detection.advance_to(detection.chosen_stage)
        self.compute_done_tick = None

        if detection.stage == Stage.CLASSIFIED:
            try:
                detection.match_id = score_detection(
                    detection.object_id,
                    detection.points_used,
                    self._catalogue.library,
                    self._catalogue.score_tables,
                    self._rng,
                )
            except DataUnavailableError as e:
                logger.warning(
                    "tick %d: platform %d dropped detection %d: %s",
                    tick,
                    self.platform_id,
                    detection.detection_id,
                    e,
                )
                self.dropped.append(detection)
                self._reset(tick)
                return None

        return detection

    def on_channel_response(self, tick: int, accepted: bool) -> None:
        """Record whether the offered detection got the channel this tick."""
        if accepted:
            self.status = PlatformStatus.TRANSMITTING
            self.retry_tick = None
            return

        # Retry delay stays one tick; the counter is bookkeeping only
        self.backoff_count = min(self.backoff_count + 1, self.config.backoff_cap)
        self.retry_tick = tick + 1
        self.status = PlatformStatus.BACKOFF

    def on_transmit_complete(self, tick: int) -> None:
        """The channel delivered our detection; go idle and await the next."""
        self._reset(tick)

    def _reset(self, tick: int) -> None:
        self.pending = None
        self.status = PlatformStatus.IDLE
        self.retry_tick = None
        self.next_detection_tick = self._draw_next(tick)
