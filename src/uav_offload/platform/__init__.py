"""Airborne sensor platforms."""

from uav_offload.platform.platform import Platform, PlatformConfig, PlatformStatus

__all__ = [
    "Platform",
    "PlatformConfig",
    "PlatformStatus",
]
