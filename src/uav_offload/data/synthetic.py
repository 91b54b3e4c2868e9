"""Synthetic detection catalogues for testing and benchmarking.

Generates point counts and score tables with realistic proportions so the
simulator can run without the LADAR data set on disk.
"""

import numpy as np

from uav_offload.data.catalogue import (
    AccuracyCurve,
    Catalogue,
    InMemoryPointCounts,
    InMemoryScoreTables,
)


def create_synthetic_catalogue(
    n_objects: int = 20,
    library_size: int = 54,
    scene_points: tuple[int, int] = (2000, 8000),
    vehicle_points: tuple[int, int] = (200, 1200),
    signal: float = 0.25,
    seed: int | None = None,
) -> Catalogue:
    """Create a synthetic catalogue.

    Each catalogue object is a capture of one library object. Its score table
    has Gaussian per-point scores with the true object's column shifted up by
    ``signal``, so matching accuracy grows with the number of points used.

    Args:
        n_objects: Number of catalogue entries (object ids 1..n_objects).
            Entries beyond ``library_size`` wrap around the library.
        library_size: Number of library objects (ids 1..library_size).
        scene_points: Inclusive range for whole-scene point counts.
        vehicle_points: Inclusive range for segmented vehicle point counts.
        signal: Mean score advantage of the true object per point.
        seed: Random seed for reproducibility.

    Returns:
        Catalogue with in-memory providers and a saturating accuracy curve.
    """
    rng = np.random.default_rng(seed)
    library = tuple(range(1, library_size + 1))

    counts: dict[int, tuple[int, int]] = {}
    tables: dict[int, np.ndarray] = {}

    for object_id in range(1, n_objects + 1):
        scene = int(rng.integers(scene_points[0], scene_points[1] + 1))
        vehicle = int(rng.integers(vehicle_points[0], vehicle_points[1] + 1))
        vehicle = min(vehicle, scene)
        counts[object_id] = (scene, vehicle)

        table = rng.normal(0.0, 1.0, size=(vehicle, library_size))
        true_column = (object_id - 1) % library_size
        table[:, true_column] += signal
        tables[object_id] = table

    curve = AccuracyCurve.saturating(vehicle_points[1])

    return Catalogue(
        object_ids=tuple(counts),
        library=library,
        point_counts=InMemoryPointCounts(counts),
        score_tables=InMemoryScoreTables(tables),
        accuracy_curve=curve,
    )

