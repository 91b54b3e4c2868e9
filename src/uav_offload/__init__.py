"""UAV Detection Offload Simulator.

A tick-driven model of aerial sensor platforms deciding how much onboard
preprocessing to perform before competing for a shared downlink to a
compute-constrained ground station.
"""

__version__ = "0.1.0"
