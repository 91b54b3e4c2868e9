"""Adaptive offload decision balancing on-board work against link and ground load.

For every candidate stage the policy predicts the total detect-to-classified
time as

    on-board compute + expected channel wait + transmit time
        + ground queue wait + remaining ground processing

using the last broadcast rate forecast and ground snapshot. It picks the
fastest stage, sizes the point budget from the accuracy curve and, when the
objective favours latency and there is slack, spends the slack on more points.
"""

from functools import lru_cache
import logging
import math

from uav_offload.detection import Detection, Stage, payload_bytes
from uav_offload.policies.base import OffloadDecision, OffloadPolicy, PlatformView

logger = logging.getLogger(__name__)

# Candidate order; ties go to the earliest stage
CANDIDATE_STAGES = (Stage.RAW, Stage.CONVERTED, Stage.SEGMENTED, Stage.CLASSIFIED)


def transmit_ticks(nbytes: int, rate: int) -> float:
    """Whole ticks to send ``nbytes`` at ``rate`` bytes per tick.

    A zero-capacity link never finishes, so the result is infinite.
    """
    if rate <= 0:
        return math.inf
    return math.ceil(nbytes / rate)


@lru_cache(maxsize=4096)
def expected_channel_wait(contenders: int, duration: float) -> float:
    """Expected ticks spent waiting behind ``contenders`` other transmissions.

    wait(0) = 0 and wait(k) = k / (k + 1) * (duration + wait(k - 1)), rounded
    up to whole ticks at every level. ``duration`` is the airtime of one
    competing transmission.
    """
    if contenders <= 0:
        return 0
    if math.isinf(duration):
        return math.inf

    wait = 0
    for k in range(1, contenders + 1):
        wait = math.ceil(k / (k + 1) * (duration + wait))
    return wait


def estimate_contenders(
    view: PlatformView, time_per_detect: float, compute_ticks: int = 0
) -> int:
    """Expected number of other platforms queued for the channel.

    The span runs from our last detection to the moment this one is ready to
    transmit, so it includes ``compute_ticks`` of on-board work. Each other
    platform has produced a detection in that span with probability
    ``1 - exp(-rate * span)``; one of those clears the channel every
    ``time_per_detect`` ticks.
    """
    span = max(view.ticks_since_last_detection + compute_ticks, 0)
    active = round(view.contenders * (1.0 - math.exp(-view.arrival_rate * span)))
    drained = 0 if math.isinf(time_per_detect) else int(span // time_per_detect)
    return max(0, active - drained)


def minimal_points(view: PlatformView, vehicle_points: int, target_accuracy: float) -> int:
    """Smallest point count whose expected accuracy still meets the target.

    Scans down from the full vehicle cloud while one fewer point stays at or
    above ``target_accuracy``. If even the full cloud misses the target, the
    full cloud is kept.
    """
    points = vehicle_points
    curve = view.accuracy_curve
    # Lands on the smallest count at or above target. Decrementing while the
    # current count beats the target would stop one point lower whenever the
    # curve crosses the target between two entries.
    while points > 1 and curve.estimate(points - 1) >= target_accuracy:
        points -= 1
    return points


class AdaptiveOffloadPolicy(OffloadPolicy):
    """Latency-predicting offload decision.

    Without a forecast or ground snapshot (cold start) the detection is sent
    RAW with its full point budget.
    """

    def decide(self, detection: Detection, tick: int, view: PlatformView) -> OffloadDecision:
        if view.is_cold:
            logger.debug(
                "tick %d: detection %d cold start, sending RAW",
                tick,
                detection.detection_id,
            )
            return OffloadDecision(stage=Stage.RAW, points_used=detection.vehicle_points)

        objective = view.ground.objective
        vehicle = detection.vehicle_points

        # Stages are compared at the budget that will actually be spent
        points = minimal_points(view, vehicle, objective.target_accuracy)
        stage_times = {
            stage: self.predict_time(detection, stage, points, view)
            for stage in CANDIDATE_STAGES
        }
        best_stage = min(CANDIDATE_STAGES, key=lambda s: stage_times[s])
        best_time = stage_times[best_stage]
        predicted = best_time

        if not objective.accuracy_priority and best_time < objective.target_latency:
            # Spend latency slack on extra points, other terms held fixed
            fixed = best_time - self._point_term(detection, best_stage, points, view)
            while (
                points < vehicle
                and fixed + self._point_term(detection, best_stage, points + 1, view)
                < objective.target_latency
            ):
                points += 1
            predicted = fixed + self._point_term(detection, best_stage, points, view)

        decision = OffloadDecision(
            stage=best_stage,
            points_used=points,
            compute_ticks=view.onboard.compute_ticks(detection, best_stage, points),
            predicted_time=predicted,
            stage_times=stage_times,
        )
        logger.debug(
            "tick %d: detection %d -> %s with %d/%d points (predicted %s ticks)",
            tick,
            detection.detection_id,
            best_stage.name,
            points,
            vehicle,
            predicted,
        )
        return decision

    def predict_time(
        self, detection: Detection, stage: Stage, points: int, view: PlatformView
    ) -> float:
        """Predicted detect-to-classified ticks if sent at ``stage``.

        Detections classified on board skip the ground queue entirely.
        """
        rate = view.forecast.current_value
        ground = view.ground

        nbytes = payload_bytes(stage, detection.scene_points, points, detection.library_size)
        raw_bytes = payload_bytes(
            Stage.RAW, detection.scene_points, points, detection.library_size
        )
        time_per_detect = max(transmit_ticks(raw_bytes, rate), 1)
        compute = view.onboard.compute_ticks(detection, stage, points)
        contenders = estimate_contenders(view, time_per_detect, compute)

        total = compute
        total += expected_channel_wait(contenders, time_per_detect)
        total += transmit_ticks(nbytes, rate)
        if stage != Stage.CLASSIFIED:
            total += ground.expected_queue_wait
            total += ground.processing_time(detection, stage, points)
        return total

    def _point_term(
        self, detection: Detection, stage: Stage, points: int, view: PlatformView
    ) -> float:
        """The part of ``predict_time`` that depends on the point budget."""
        ground = view.ground
        if stage == Stage.CLASSIFIED:
            return math.ceil(
                points * detection.library_size / view.onboard.likelihood_rate
            )
        term = ground.processing_time(detection, stage, points)
        if stage == Stage.SEGMENTED:
            nbytes = payload_bytes(
                stage, detection.scene_points, points, detection.library_size
            )
            term += transmit_ticks(nbytes, view.forecast.current_value)
        return term
