"""Shared wireless channel between the platforms and the ground station."""

from dataclasses import dataclass
from enum import IntEnum
import logging

from uav_offload.errors import ConfigurationError
from uav_offload.network.rate_process import RateProcess, RateSnapshot
from uav_offload.detection import Detection

logger = logging.getLogger(__name__)


class ChannelStatus(IntEnum):
    """Channel activity states."""

    IDLE = 0  # Free for a new transmission
    TRANSMITTING = 1  # A detection is in flight
    FORECASTING = 2  # Broadcasting capacity and ground-load forecasts


@dataclass
class ChannelConfig:
    """Configuration for the shared link.

    Defaults follow a tactical common data link: 45 Mbit/s peak, i.e.
    5,625,000 bytes per one-second tick, degrading in sixths to an outage.
    """

    max_rate: int = 5_625_000  # bytes per tick in the best state
    rate_levels: int = 6  # Number of nonzero capacity levels
    absorbing_states: tuple[int, ...] = (0, 5)  # States with self-transition 1.0
    start_state: int = 0
    forecast_interval: int = 100  # Ticks between forecast broadcasts
    forecast_length: int = 2  # Ticks a broadcast occupies the channel

    def __post_init__(self):
        if self.max_rate < 0:
            raise ConfigurationError(f"max_rate must be non-negative, got {self.max_rate}")
        if self.rate_levels < 1:
            raise ConfigurationError(f"rate_levels must be >= 1, got {self.rate_levels}")
        if self.forecast_interval < 1:
            raise ConfigurationError(
                f"forecast_interval must be >= 1, got {self.forecast_interval}"
            )
        if self.forecast_length < 1:
            raise ConfigurationError(
                f"forecast_length must be >= 1, got {self.forecast_length}"
            )

    def build_rate_process(self, rng=None) -> RateProcess:
        return RateProcess.from_max_rate(
            self.max_rate,
            levels=self.rate_levels,
            absorbing=self.absorbing_states,
            start_state=self.start_state,
            rng=rng,
        )


class Channel:
    """Single shared medium with periodic self-preempting forecast broadcasts.

    A capacity sample is drawn from the rate process every tick. At tick 0,
    and whenever ``forecast_interval`` ticks have passed since the last
    broadcast began, the channel saves its status and enters FORECASTING for
    a ``forecast_length`` tick countdown. An in-flight transmission is frozen
    (no bytes drain) until the countdown ends, at which point the saved status
    is restored and a fresh rate snapshot is published.
    """

    def __init__(
        self,
        rates: RateProcess,
        forecast_interval: int = 100,
        forecast_length: int = 2,
    ):
        if forecast_interval < 1 or forecast_length < 1:
            raise ConfigurationError(
                "forecast_interval and forecast_length must both be >= 1"
            )
        self._rates = rates
        self.forecast_interval = forecast_interval
        self.forecast_length = forecast_length

        self._status = ChannelStatus.IDLE
        self._in_flight: Detection | None = None
        self._bytes_remaining: int = 0

        self._last_forecast_tick: int | None = None
        self._forecast_countdown: int = forecast_length
        self._status_before_forecast = ChannelStatus.IDLE
        self._forecast: RateSnapshot | None = None

        self.last_rate: int = 0

    @property
    def status(self) -> ChannelStatus:
        return self._status

    @property
    def in_flight(self) -> Detection | None:
        return self._in_flight

    @property
    def bytes_remaining(self) -> int:
        return self._bytes_remaining

    @property
    def forecast(self) -> RateSnapshot | None:
        """Last published rate snapshot, None before the first broadcast ends."""
        return self._forecast

    @property
    def last_forecast_tick(self) -> int | None:
        return self._last_forecast_tick

    @property
    def is_idle(self) -> bool:
        return self._status == ChannelStatus.IDLE

    def _forecast_due(self, tick: int) -> bool:
        if tick == 0 or self._last_forecast_tick is None:
            return True
        return tick - self._last_forecast_tick >= self.forecast_interval

    def step(self, tick: int) -> Detection | None:
        """Advance the channel one tick.

        Returns:
            The detection whose transmission completed this tick, or None.
        """
        self.last_rate = self._rates.sample()

        if self._status != ChannelStatus.FORECASTING and self._forecast_due(tick):
            self._status_before_forecast = self._status
            self._status = ChannelStatus.FORECASTING
            self._last_forecast_tick = tick
            self._forecast_countdown = self.forecast_length
            logger.debug(
                "tick %d: forecast broadcast started (preempting %s)",
                tick,
                self._status_before_forecast.name,
            )

        elif self._status == ChannelStatus.FORECASTING:
            self._forecast_countdown -= 1
            if self._forecast_countdown <= 0:
                self._status = self._status_before_forecast
                self._forecast = self._rates.snapshot()
                logger.debug(
                    "tick %d: forecast published (rate=%d), resuming %s",
                    tick,
                    self._forecast.current_value,
                    self._status.name,
                )

        elif self._status == ChannelStatus.TRANSMITTING:
            self._bytes_remaining -= self.last_rate
            if self._bytes_remaining <= 0:
                finished = self._in_flight
                self._in_flight = None
                self._bytes_remaining = 0
                self._status = ChannelStatus.IDLE
                return finished

        return None

    def start_transmit(self, detection: Detection, tick: int) -> bool:
        """Try to begin transmitting ``detection``.

        Accepted only when the channel is IDLE; never blocks.

        Returns:
            True if the transmission started.
        """
        if self._status != ChannelStatus.IDLE:
            return False

        detection.mark_transmit(tick)
        self._in_flight = detection
        self._bytes_remaining = detection.payload_bytes
        self._status = ChannelStatus.TRANSMITTING
        logger.debug(
            "tick %d: detection %d from platform %d on air (%s, %d bytes)",
            tick,
            detection.detection_id,
            detection.platform_id,
            detection.stage.name,
            self._bytes_remaining,
        )
        return True
