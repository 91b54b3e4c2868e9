"""Shared wireless link: capacity process and channel arbitration target."""

from uav_offload.network.rate_process import RateProcess, RateSnapshot
from uav_offload.network.channel import Channel, ChannelConfig, ChannelStatus

__all__ = [
    "RateProcess",
    "RateSnapshot",
    "Channel",
    "ChannelConfig",
    "ChannelStatus",
]
