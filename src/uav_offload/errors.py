"""Exception types shared across the simulator."""


class ConfigurationError(ValueError):
    """Raised when a parameter is rejected at the configuration boundary.

    Examples are transition probabilities outside [0, 1], objectives with an
    accuracy outside [0, 1] or a negative latency, and non-positive rates.
    Raised before any simulation state is touched.
    """


class DataUnavailableError(RuntimeError):
    """Raised when a catalogue provider cannot supply the requested data.

    Geometry (point count) failures are fatal for a run. Score table failures
    are recoverable: the component scoring the detection drops it and resets.
    """


class InvariantViolation(RuntimeError):
    """Raised when internal state breaks a guarded invariant.

    This indicates a simulator bug, not bad input: e.g. a detection stage
    moving backwards or an out-of-range stage index.
    """
