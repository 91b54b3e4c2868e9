"""Object matching from a per-point likelihood table."""

from collections.abc import Sequence

import numpy as np

from uav_offload.data.catalogue import ScoreTableProvider
from uav_offload.errors import DataUnavailableError


def best_match(
    table: np.ndarray,
    points_used: int,
    library: Sequence[int],
    rng: np.random.Generator,
) -> int:
    """Pick the library object with the highest summed score.

    Visits the table's points in a freshly shuffled order on every call, sums
    the first ``points_used`` rows per object and returns the arg-max object.
    The subsample is re-drawn each time, so repeated calls on a partial budget
    may disagree.

    Args:
        table: (n_points, len(library)) score table.
        points_used: Number of points to sum (clipped to the table height).
        library: Object ids, one per table column.
        rng: Random generator for the visitation order.

    Raises:
        DataUnavailableError: If the table shape doesn't match the library.
    """
    table = np.asarray(table)
    if table.ndim != 2 or table.shape[1] != len(library):
        raise DataUnavailableError(
            f"Score table shape {table.shape} doesn't match library of {len(library)}"
        )

    order = rng.permutation(table.shape[0])
    n = max(0, min(int(points_used), table.shape[0]))
    sums = table[order[:n]].sum(axis=0)
    return int(library[int(np.argmax(sums))])


def score_detection(
    object_id: int,
    points_used: int,
    library: Sequence[int],
    provider: ScoreTableProvider,
    rng: np.random.Generator,
) -> int:
    """Look up ``object_id``'s table and match it against ``library``.

    Raises:
        DataUnavailableError: If the score table is unavailable or malformed.
    """
    table = provider.score_table(object_id)
    return best_match(table, points_used, library, rng)
