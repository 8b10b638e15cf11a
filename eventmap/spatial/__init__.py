"""
eventmap.spatial: Web-Mercator projection and the zoom-aware cluster index.
"""

from .cluster_index import (
    BBox,
    Cluster,
    ClusterConfig,
    ClusterIndex,
    ClusterQueryResult,
)

__all__ = [
    "BBox",
    "Cluster",
    "ClusterConfig",
    "ClusterIndex",
    "ClusterQueryResult",
]
