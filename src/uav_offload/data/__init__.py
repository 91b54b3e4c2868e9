"""Detection catalogue providers, scoring and data set loaders."""

from uav_offload.data.catalogue import (
    AccuracyCurve,
    AccuracyCurveProvider,
    Catalogue,
    InMemoryPointCounts,
    InMemoryScoreTables,
    PointCountProvider,
    ScoreTableProvider,
)
from uav_offload.data.scoring import best_match, score_detection
from uav_offload.data.synthetic import create_synthetic_catalogue
from uav_offload.data.files import (
    DirectoryPointCounts,
    MatScoreTables,
    load_accuracy_curve,
    load_catalogue,
    scan_point_clouds,
)

__all__ = [
    "AccuracyCurve",
    "AccuracyCurveProvider",
    "Catalogue",
    "InMemoryPointCounts",
    "InMemoryScoreTables",
    "PointCountProvider",
    "ScoreTableProvider",
    "best_match",
    "score_detection",
    "create_synthetic_catalogue",
    "DirectoryPointCounts",
    "MatScoreTables",
    "load_accuracy_curve",
    "load_catalogue",
    "scan_point_clouds",
]
