"""Catalogue interfaces: point counts, score tables and accuracy curves.

These are the simulator's only view of on-disk detection data. A
``Catalogue`` bundles the providers with the object library and is injected
into a simulation at construction, so independent runs never share state.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from uav_offload.errors import ConfigurationError, DataUnavailableError


class PointCountProvider(Protocol):
    """Supplies (scene_points, vehicle_points) for a catalogue object."""

    def point_counts(self, object_id: int) -> tuple[int, int]:
        """Raises DataUnavailableError if the geometry cannot be read."""
        ...


class ScoreTableProvider(Protocol):
    """Supplies a per-point, per-library-object score table."""

    def score_table(self, object_id: int) -> np.ndarray:
        """Return an (n_points, library_size) array.

        Raises DataUnavailableError if the table cannot be read.
        """
        ...


class AccuracyCurveProvider(Protocol):
    """Expected classification accuracy as a function of points used."""

    def estimate(self, points: int) -> float: ...

    def __len__(self) -> int: ...


class AccuracyCurve:
    """Tabulated accuracy-versus-points curve.

    ``values[k]`` is the expected accuracy when classifying with ``k + 1``
    points. Counts beyond the table clamp to its last entry; zero or negative
    counts give an accuracy of 0.
    """

    def __init__(self, values: Sequence[float] | np.ndarray):
        arr = np.asarray(values, dtype=np.float64).ravel()
        if arr.size == 0:
            raise ConfigurationError("Accuracy curve needs at least one entry")
        if np.any(np.isnan(arr)):
            raise ConfigurationError("Accuracy curve contains NaN")
        self._values = arr

    def __len__(self) -> int:
        return int(self._values.size)

    def estimate(self, points: int) -> float:
        if points <= 0:
            return 0.0
        idx = min(int(points), self._values.size) - 1
        return float(self._values[idx])

    @classmethod
    def saturating(
        cls, length: int, floor: float = 0.3, ceiling: float = 0.99, scale: float = 150.0
    ) -> "AccuracyCurve":
        """Monotonic exponential-saturation curve, useful for synthetic runs."""
        points = np.arange(1, length + 1, dtype=np.float64)
        return cls(ceiling - (ceiling - floor) * np.exp(-points / scale))


class InMemoryPointCounts:
    """Point counts held in a dict keyed by object id."""

    def __init__(self, counts: Mapping[int, tuple[int, int]]):
        self._counts = dict(counts)

    def point_counts(self, object_id: int) -> tuple[int, int]:
        try:
            scene, vehicle = self._counts[object_id]
        except KeyError:
            raise DataUnavailableError(f"No geometry for object {object_id}") from None
        return int(scene), int(vehicle)


class InMemoryScoreTables:
    """Score tables held in a dict keyed by object id."""

    def __init__(self, tables: Mapping[int, np.ndarray]):
        self._tables = dict(tables)

    def score_table(self, object_id: int) -> np.ndarray:
        try:
            return self._tables[object_id]
        except KeyError:
            raise DataUnavailableError(f"No score table for object {object_id}") from None


@dataclass(frozen=True)
class Catalogue:
    """Shared detection data and object library for one simulation.

    Attributes:
        object_ids: Catalogue entries a platform may draw a detection from.
        library: Object ids in the target library, in score-table column order.
        point_counts: Geometry provider.
        score_tables: Score table provider.
        accuracy_curve: Accuracy-versus-points lookup.
    """

    object_ids: tuple[int, ...]
    library: tuple[int, ...]
    point_counts: PointCountProvider
    score_tables: ScoreTableProvider
    accuracy_curve: AccuracyCurveProvider

    def __post_init__(self):
        if not self.object_ids:
            raise ConfigurationError("Catalogue needs at least one object")
        if not self.library:
            raise ConfigurationError("Object library must not be empty")

    @property
    def library_size(self) -> int:
        return len(self.library)

    def __len__(self) -> int:
        return len(self.object_ids)
