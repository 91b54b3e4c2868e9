"""File-backed catalogue providers for the LADAR point cloud data set.

Expected layout:
    <cloud_dir>/<n>-<name>.xyz            whole-scene cloud, one point per line
    <cloud_dir>/<n>-<name>-vehicle.xyz    segmented vehicle cloud
    <likes_dir>/<n>-<name>.mat            variable ``res``: (points, objects)
    <curve_path>.mat                      variable ``curve``: accuracy per points

``<n>`` is the catalogue object id. Score table columns are indexed by
library object id minus one.
"""

from collections.abc import Sequence
import logging
from pathlib import Path

import numpy as np
from scipy.io import loadmat
from scipy.io.matlab import MatReadError

from uav_offload.data.catalogue import AccuracyCurve, Catalogue
from uav_offload.errors import DataUnavailableError

logger = logging.getLogger(__name__)

SUFFIX_SCENE = ".xyz"
SUFFIX_VEHICLE = "-vehicle.xyz"
SUFFIX_SCORES = ".mat"
SCORES_VARIABLE = "res"
CURVE_VARIABLE = "curve"


def _count_lines(path: Path) -> int:
    count = 0
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 16), b""):
            count += chunk.count(b"\n")
    return count


def scan_point_clouds(cloud_dir: str | Path) -> dict[int, str]:
    """Map object id to base name for every ``*-vehicle.xyz`` in ``cloud_dir``.

    Raises:
        DataUnavailableError: If the directory is missing or a filename has no
            leading numeric id.
    """
    cloud_dir = Path(cloud_dir)
    if not cloud_dir.is_dir():
        raise DataUnavailableError(f"Point cloud directory not found: {cloud_dir}")

    index: dict[int, str] = {}
    for path in sorted(cloud_dir.glob(f"*{SUFFIX_VEHICLE}")):
        base = path.name[: -len(SUFFIX_VEHICLE)]
        prefix = base.split("-", 1)[0]
        try:
            object_id = int(prefix)
        except ValueError:
            raise DataUnavailableError(f"No numeric id in {path.name}") from None
        index[object_id] = base
    return index


class DirectoryPointCounts:
    """Point counts from line counts of ``.xyz`` files, cached per object."""

    def __init__(self, cloud_dir: str | Path, index: dict[int, str] | None = None):
        self.cloud_dir = Path(cloud_dir)
        self._index = index if index is not None else scan_point_clouds(cloud_dir)
        self._cache: dict[int, tuple[int, int]] = {}

    @property
    def object_ids(self) -> tuple[int, ...]:
        return tuple(sorted(self._index))

    def point_counts(self, object_id: int) -> tuple[int, int]:
        if object_id in self._cache:
            return self._cache[object_id]
        if object_id not in self._index:
            raise DataUnavailableError(f"Object {object_id} not in {self.cloud_dir}")

        base = self._index[object_id]
        try:
            scene = _count_lines(self.cloud_dir / f"{base}{SUFFIX_SCENE}")
            vehicle = _count_lines(self.cloud_dir / f"{base}{SUFFIX_VEHICLE}")
        except OSError as e:
            raise DataUnavailableError(f"Cannot read geometry for {base}: {e}") from e

        self._cache[object_id] = (scene, vehicle)
        return scene, vehicle


class MatScoreTables:
    """Score tables read from per-object MAT files on every lookup.

    Tables are not cached; each lookup re-reads the file.
    """

    def __init__(
        self,
        likes_dir: str | Path,
        library: Sequence[int],
        index: dict[int, str],
    ):
        self.likes_dir = Path(likes_dir)
        self._columns = [obj - 1 for obj in library]
        self._index = index

    def score_table(self, object_id: int) -> np.ndarray:
        if object_id not in self._index:
            raise DataUnavailableError(f"No score table for object {object_id}")

        path = self.likes_dir / f"{self._index[object_id]}{SUFFIX_SCORES}"
        try:
            res = loadmat(path)[SCORES_VARIABLE]
        except (OSError, KeyError, ValueError, MatReadError) as e:
            raise DataUnavailableError(f"Cannot read score table {path}: {e}") from e

        res = np.asarray(res, dtype=np.float64)
        if res.ndim != 2 or max(self._columns) >= res.shape[1]:
            raise DataUnavailableError(
                f"Score table {path} has shape {res.shape}, too few object columns"
            )
        return res[:, self._columns]


def load_accuracy_curve(path: str | Path) -> AccuracyCurve:
    """Read the ``curve`` variable from a MAT file.

    Raises:
        DataUnavailableError: If the file or variable is missing.
    """
    path = Path(path)
    try:
        curve = loadmat(path)[CURVE_VARIABLE]
    except (OSError, KeyError, ValueError, MatReadError) as e:
        raise DataUnavailableError(f"Cannot read accuracy curve {path}: {e}") from e
    return AccuracyCurve(np.asarray(curve, dtype=np.float64).ravel())


def load_catalogue(
    cloud_dir: str | Path,
    likes_dir: str | Path,
    curve_path: str | Path,
    library: Sequence[int],
) -> Catalogue:
    """Build a catalogue from the on-disk data set."""
    index = scan_point_clouds(cloud_dir)
    if not index:
        raise DataUnavailableError(f"No point clouds found in {cloud_dir}")
    logger.info("Indexed %d point clouds in %s", len(index), cloud_dir)

    return Catalogue(
        object_ids=tuple(sorted(index)),
        library=tuple(library),
        point_counts=DirectoryPointCounts(cloud_dir, index),
        score_tables=MatScoreTables(likes_dir, library, index),
        accuracy_curve=load_accuracy_curve(curve_path),
    )
