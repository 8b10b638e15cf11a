"""
Zoom-aware hierarchical point clustering.

This module provides:
1. A per-zoom hierarchy of clusters built once per point set
2. Viewport queries returning clusters and standalone points for any zoom
3. Expansion zoom lookup ("at which zoom does this cluster fall apart?")
4. Paged leaf retrieval with a stable order per build

Algorithm:
- Points are projected to Web-Mercator unit coordinates.
- Level ``max_zoom + 1`` holds every point on its own.
- Each lower level is derived from the one above: units are visited in index
  order and each unvisited unit absorbs every unvisited unit within
  ``radius / (extent * 2**zoom)``. The centroid is the count-weighted mean.
- Neighbour search uses a KD-tree per level, so a build costs O(n log n)
  per zoom level.

The greedy pass depends on input order. A fixed input order always yields
the same partition, centroids and cluster ids.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from sklearn.neighbors import KDTree

from ..errors import ClusterNotFoundError
from ..models import Event
from .projection import lat_to_y, lng_to_x, x_to_lng, y_to_lat

logger = logging.getLogger(__name__)

# Cluster ids pack the zoom into the low 5 bits
MAX_SUPPORTED_ZOOM = 30

BBox = Tuple[float, float, float, float]
"""Viewport as (west, south, east, north) in degrees."""


@dataclass
class ClusterConfig:
    """Configuration for the cluster index."""

    radius: float = 50.0
    """Clustering radius in rendered pixels."""

    extent: float = 512.0
    """Tile size in pixels the radius is measured against."""

    min_zoom: int = 0
    """Lowest zoom level that gets a cluster level."""

    max_zoom: int = 14
    """Highest zoom at which points are clustered; above it all points are standalone."""

    min_points: int = 2
    """Minimum number of points to form a cluster."""

    leaf_limit: int = 100
    """Default page size for leaf retrieval."""

    def __post_init__(self):
        if self.radius <= 0:
            raise ValueError(f"radius must be positive, got {self.radius}")
        if self.extent <= 0:
            raise ValueError(f"extent must be positive, got {self.extent}")
        if self.min_zoom < 0 or self.max_zoom > MAX_SUPPORTED_ZOOM:
            raise ValueError(
                f"zoom range must lie within [0, {MAX_SUPPORTED_ZOOM}], "
                f"got [{self.min_zoom}, {self.max_zoom}]"
            )
        if self.max_zoom < self.min_zoom:
            raise ValueError(
                f"max_zoom ({self.max_zoom}) must not be below min_zoom ({self.min_zoom})"
            )
        if self.min_points < 2:
            raise ValueError(f"min_points must be at least 2, got {self.min_points}")
        if self.leaf_limit < 1:
            raise ValueError(f"leaf_limit must be positive, got {self.leaf_limit}")

    @classmethod
    def from_profile(cls, profile: Dict[str, Any]) -> "ClusterConfig":
        """Build from the ``clustering`` section of a map profile."""
        section = profile.get("clustering", {}) or {}
        defaults = cls()
        return cls(
            radius=float(section.get("radius", defaults.radius)),
            extent=float(section.get("extent", defaults.extent)),
            min_zoom=int(section.get("min_zoom", defaults.min_zoom)),
            max_zoom=int(section.get("max_zoom", defaults.max_zoom)),
            min_points=int(section.get("min_points", defaults.min_points)),
            leaf_limit=int(section.get("leaf_limit", defaults.leaf_limit)),
        )


@dataclass(frozen=True)
class Cluster:
    """A group of two or more nearby events at a given zoom."""

    cluster_id: int
    lat: float
    lng: float
    point_count: int


@dataclass
class ClusterQueryResult:
    """Units visible at one zoom level."""

    zoom: float
    clusters: List[Cluster] = field(default_factory=list)
    singles: List[Event] = field(default_factory=list)

    @property
    def total_points(self) -> int:
        """Number of events represented by this result."""
        return len(self.singles) + sum(c.point_count for c in self.clusters)


@dataclass
class _ClusterNode:
    cluster_id: int
    x: float
    y: float
    count: int
    zoom: int
    children: List[int]


@dataclass
class _Level:
    xs: np.ndarray
    ys: np.ndarray
    counts: np.ndarray
    ids: np.ndarray

    def __len__(self) -> int:
        return len(self.ids)


Unit = Union[Cluster, Event]


class ClusterIndex:
    """
    Hierarchical cluster index over a fixed event snapshot.

    Build once per point-set change with :meth:`build`; every query method
    afterwards is read-only.
    """

    def __init__(self, points: Sequence[Event], config: ClusterConfig):
        self.config = config
        self._points: List[Event] = list(points)
        self._nodes: Dict[int, _ClusterNode] = {}
        self._levels: Dict[int, _Level] = {}

    @classmethod
    def build(cls, points: Sequence[Event], config: Optional[ClusterConfig] = None) -> "ClusterIndex":
        """Construct the per-zoom hierarchy for ``points``."""
        index = cls(points, config or ClusterConfig())
        index._build_levels()
        return index

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> List[Event]:
        return list(self._points)

    # -----------------------------
    # Build
    # -----------------------------

    def _build_levels(self) -> None:
        cfg = self.config
        n = len(self._points)

        xs = lng_to_x([p.lng for p in self._points]).reshape(-1)
        ys = lat_to_y([p.lat for p in self._points]).reshape(-1)
        level = _Level(
            xs=xs,
            ys=ys,
            counts=np.ones(n, dtype=np.int64),
            ids=np.arange(n, dtype=np.int64),
        )
        self._levels[cfg.max_zoom + 1] = level

        for zoom in range(cfg.max_zoom, cfg.min_zoom - 1, -1):
            level = self._cluster_level(level, zoom)
            self._levels[zoom] = level

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Built cluster index: {self.stats()}")

    def _cluster_level(self, prev: _Level, zoom: int) -> _Level:
        """Derive level ``zoom`` from the level directly above it."""
        m = len(prev)
        if m == 0:
            return prev

        cfg = self.config
        n = len(self._points)
        r = cfg.radius / (cfg.extent * math.pow(2, zoom))

        tree = KDTree(np.column_stack([prev.xs, prev.ys]))
        neighbours = tree.query_radius(np.column_stack([prev.xs, prev.ys]), r=r)

        visited = np.zeros(m, dtype=bool)
        out_xs: List[float] = []
        out_ys: List[float] = []
        out_counts: List[int] = []
        out_ids: List[int] = []

        def keep(k: int) -> None:
            out_xs.append(float(prev.xs[k]))
            out_ys.append(float(prev.ys[k]))
            out_counts.append(int(prev.counts[k]))
            out_ids.append(int(prev.ids[k]))

        for i in range(m):
            if visited[i]:
                continue
            visited[i] = True

            near = [int(j) for j in np.sort(neighbours[i]) if not visited[j]]
            num_points = int(prev.counts[i]) + int(prev.counts[near].sum()) if near else int(prev.counts[i])

            if near and num_points >= cfg.min_points:
                members = [i] + near
                weights = prev.counts[members]
                wx = float(np.dot(prev.xs[members], weights))
                wy = float(np.dot(prev.ys[members], weights))
                cluster_id = (i << 5) + (zoom + 1) + n
                visited[near] = True

                node = _ClusterNode(
                    cluster_id=cluster_id,
                    x=wx / num_points,
                    y=wy / num_points,
                    count=num_points,
                    zoom=zoom,
                    children=[int(prev.ids[k]) for k in members],
                )
                self._nodes[cluster_id] = node
                out_xs.append(node.x)
                out_ys.append(node.y)
                out_counts.append(node.count)
                out_ids.append(cluster_id)
            else:
                keep(i)
                # Too few to cluster: neighbours stay standalone at this level
                for j in near:
                    visited[j] = True
                    keep(j)

        return _Level(
            xs=np.asarray(out_xs, dtype=float),
            ys=np.asarray(out_ys, dtype=float),
            counts=np.asarray(out_counts, dtype=np.int64),
            ids=np.asarray(out_ids, dtype=np.int64),
        )

    # -----------------------------
    # Queries
    # -----------------------------

    def limit_zoom(self, zoom: float) -> int:
        """Clamp a real zoom to the level that serves it."""
        cfg = self.config
        return max(cfg.min_zoom, min(int(math.floor(zoom)), cfg.max_zoom + 1))

    def query(self, zoom: float, viewport: Optional[BBox] = None) -> ClusterQueryResult:
        """
        Clusters and standalone points at ``zoom``.

        Args:
            zoom: Real-valued map zoom
            viewport: Optional (west, south, east, north) box; a box with
                west > east crosses the antimeridian

        Returns:
            ClusterQueryResult in index order
        """
        level = self._levels[self.limit_zoom(zoom)]
        result = ClusterQueryResult(zoom=zoom)
        if len(level) == 0:
            return result

        if viewport is None:
            selected = np.arange(len(level))
        else:
            selected = np.flatnonzero(self._viewport_mask(level, viewport))

        n = len(self._points)
        for k in selected:
            unit_id = int(level.ids[k])
            if unit_id < n:
                result.singles.append(self._points[unit_id])
            else:
                result.clusters.append(self._as_cluster(self._nodes[unit_id]))
        return result

    def _viewport_mask(self, level: _Level, viewport: BBox) -> np.ndarray:
        west, south, east, north = viewport
        min_lat = max(-90.0, min(90.0, south))
        max_lat = max(-90.0, min(90.0, north))

        if east - west >= 360.0:
            min_lng, max_lng = -180.0, 180.0
        else:
            min_lng = ((west + 180.0) % 360.0) - 180.0
            max_lng = 180.0 if east == 180.0 else ((east + 180.0) % 360.0) - 180.0
            if min_lng > max_lng:
                return self._viewport_mask(level, (min_lng, min_lat, 180.0, max_lat)) | \
                    self._viewport_mask(level, (-180.0, min_lat, max_lng, max_lat))

        min_x, max_x = float(lng_to_x(min_lng)), float(lng_to_x(max_lng))
        min_y, max_y = float(lat_to_y(max_lat)), float(lat_to_y(min_lat))
        return (
            (level.xs >= min_x) & (level.xs <= max_x)
            & (level.ys >= min_y) & (level.ys <= max_y)
        )

    def _node(self, cluster_id: int) -> _ClusterNode:
        node = self._nodes.get(cluster_id)
        if node is None:
            raise ClusterNotFoundError(cluster_id)
        return node

    def _as_cluster(self, node: _ClusterNode) -> Cluster:
        return Cluster(
            cluster_id=node.cluster_id,
            lat=float(y_to_lat(node.y)),
            lng=float(x_to_lng(node.x)),
            point_count=node.count,
        )

    def get_cluster(self, cluster_id: int) -> Cluster:
        return self._as_cluster(self._node(cluster_id))

    def get_children(self, cluster_id: int) -> List[Unit]:
        """Units that merged into ``cluster_id`` one zoom level up."""
        n = len(self._points)
        return [
            self._points[child] if child < n else self._as_cluster(self._nodes[child])
            for child in self._node(cluster_id).children
        ]

    def expansion_zoom(self, cluster_id: int) -> int:
        """
        Minimal zoom at which ``cluster_id`` splits into at least two units.

        A cluster only exists at levels up to the zoom it was formed at and
        always has two or more children, so it splits one level above. The
        upper bound is ``max_zoom + 1``, the first unclustered zoom, rather
        than ``max_zoom``: a cluster formed at ``max_zoom`` only falls apart
        there, so capping at ``max_zoom`` would suggest a zoom at which it
        is still drawn whole.
        """
        node = self._node(cluster_id)
        return min(node.zoom + 1, self.config.max_zoom + 1)

    def get_leaves(self, cluster_id: int, limit: Optional[int] = None, offset: int = 0) -> List[Event]:
        """
        Up to ``limit`` member events of ``cluster_id`` starting at ``offset``.

        Leaves come in depth-first child order, which is fixed for a build, so
        paging with growing offsets yields every member exactly once.
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if limit is None:
            limit = self.config.leaf_limit
        node = self._node(cluster_id)

        leaves: List[Event] = []
        if limit <= 0:
            return leaves
        self._append_leaves(leaves, node, limit, offset, 0)
        return leaves

    def _append_leaves(
        self,
        result: List[Event],
        node: _ClusterNode,
        limit: int,
        offset: int,
        skipped: int,
    ) -> int:
        n = len(self._points)
        for child in node.children:
            if child >= n:
                child_node = self._nodes[child]
                if skipped + child_node.count <= offset:
                    skipped += child_node.count
                else:
                    skipped = self._append_leaves(result, child_node, limit, offset, skipped)
            elif skipped < offset:
                skipped += 1
            else:
                result.append(self._points[child])

            if len(result) == limit:
                break
        return skipped

    def stats(self) -> Dict[str, Any]:
        """Diagnostics: point count, zoom range and units per level."""
        return {
            "num_points": len(self._points),
            "num_clusters": len(self._nodes),
            "min_zoom": self.config.min_zoom,
            "max_zoom": self.config.max_zoom,
            "units_per_zoom": {zoom: len(level) for zoom, level in sorted(self._levels.items())},
        }


__all__ = [
    "BBox",
    "Cluster",
    "ClusterConfig",
    "ClusterIndex",
    "ClusterQueryResult",
]
