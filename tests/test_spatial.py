"""
Unit Tests for Spatial Module (eventmap/spatial)

Tests the zoom-aware cluster index: per-zoom partitioning, expansion zoom,
paged leaf retrieval, viewport queries and configuration validation.
"""

import pytest

from eventmap import ClusterNotFoundError, NotFound
from eventmap.spatial import ClusterConfig, ClusterIndex
from eventmap.spatial.projection import lat_to_y, lng_to_x, x_to_lng, y_to_lat
from tests.conftest import collect_member_ids, make_event


QUERY_ZOOMS = [0, 3, 5.5, 8, 10, 12.7, 14, 15, 18]


@pytest.fixture
def close_trio():
    """Three events within a few metres of each other."""
    return [
        make_event("a", 60.4518, 22.2666),
        make_event("b", 60.4519, 22.2667),
        make_event("c", 60.45185, 22.26665),
    ]


@pytest.fixture
def two_pairs():
    """Two tight pairs about 550 m apart; the pairs merge below zoom 12."""
    return [
        make_event("a1", 60.45, 22.26),
        make_event("a2", 60.45, 22.2601),
        make_event("b1", 60.45, 22.27),
        make_event("b2", 60.45, 22.2701),
    ]


# ==============================================================================
# Projection Tests
# ==============================================================================

class TestProjection:
    """Test Web-Mercator unit coordinates."""

    def test_reference_points(self):
        assert float(lng_to_x(-180.0)) == pytest.approx(0.0)
        assert float(lng_to_x(0.0)) == pytest.approx(0.5)
        assert float(lng_to_x(180.0)) == pytest.approx(1.0)
        assert float(lat_to_y(0.0)) == pytest.approx(0.5)

    def test_poles_are_clipped(self):
        assert float(lat_to_y(90.0)) == pytest.approx(0.0)
        assert float(lat_to_y(-90.0)) == pytest.approx(1.0)

    def test_inverse(self):
        assert float(x_to_lng(lng_to_x(22.2666))) == pytest.approx(22.2666)
        assert float(y_to_lat(lat_to_y(60.4518))) == pytest.approx(60.4518)


# ==============================================================================
# Query Tests
# ==============================================================================

class TestQuery:
    """Test clusters and standalone points per zoom."""

    def test_close_points_cluster_at_city_zoom(self, close_trio):
        index = ClusterIndex.build(close_trio)

        result = index.query(10)

        assert len(result.clusters) == 1
        assert result.clusters[0].point_count == 3
        assert result.singles == []

    def test_close_points_split_above_max_zoom(self, close_trio):
        index = ClusterIndex.build(close_trio)

        result = index.query(20)

        assert result.clusters == []
        assert sorted(e.id for e in result.singles) == ["a", "b", "c"]

    def test_cluster_centroid_is_mean(self, close_trio):
        index = ClusterIndex.build(close_trio)
        cluster = index.query(10).clusters[0]

        assert cluster.lat == pytest.approx(60.45185, abs=1e-5)
        assert cluster.lng == pytest.approx(22.26665, abs=1e-5)

    @pytest.mark.parametrize("zoom", QUERY_ZOOMS)
    def test_every_point_represented_exactly_once(self, random_events, zoom):
        index = ClusterIndex.build(random_events)
        result = index.query(zoom)

        ids = collect_member_ids(index, result)

        assert sorted(ids) == sorted(e.id for e in random_events)
        assert result.total_points == len(random_events)

    def test_fractional_zoom_uses_floor(self, random_events):
        index = ClusterIndex.build(random_events)

        fractional = index.query(9.99)
        whole = index.query(9)

        assert [c.cluster_id for c in fractional.clusters] == [c.cluster_id for c in whole.clusters]
        assert index.limit_zoom(9.99) == 9
        assert index.limit_zoom(-3) == 0
        assert index.limit_zoom(40) == 15

    def test_deterministic_builds(self, random_events):
        first = ClusterIndex.build(random_events)
        second = ClusterIndex.build(random_events)

        for zoom in QUERY_ZOOMS:
            a, b = first.query(zoom), second.query(zoom)
            assert a.clusters == b.clusters
            assert [e.id for e in a.singles] == [e.id for e in b.singles]

    def test_unit_count_never_decreases_with_zoom(self, random_events):
        index = ClusterIndex.build(random_events)

        units = [len(index.query(z).clusters) + len(index.query(z).singles) for z in range(0, 16)]

        assert units == sorted(units)
        assert units[-1] == len(random_events)

    def test_empty_input(self):
        index = ClusterIndex.build([])

        for zoom in QUERY_ZOOMS:
            result = index.query(zoom)
            assert result.clusters == []
            assert result.singles == []
        assert len(index) == 0

    def test_single_point_is_never_clustered(self):
        event = make_event("only", 60.45, 22.27)
        index = ClusterIndex.build([event])

        for zoom in QUERY_ZOOMS:
            result = index.query(zoom)
            assert result.clusters == []
            assert result.singles == [event]


# ==============================================================================
# Viewport Tests
# ==============================================================================

class TestViewport:
    """Test bounding-box restricted queries."""

    def test_viewport_excludes_distant_points(self, sample_events):
        index = ClusterIndex.build(sample_events)
        turku_box = (22.0, 60.3, 22.5, 60.6)

        result = index.query(12, turku_box)

        assert len(result.clusters) == 1
        assert result.clusters[0].point_count == 3
        assert result.singles == []

    def test_viewport_crossing_antimeridian(self):
        events = [
            make_event("east", 0.5, 179.9),
            make_event("west", -0.5, -179.9),
            make_event("greenwich", 0.0, 0.0),
        ]
        index = ClusterIndex.build(events)

        result = index.query(18, (179.0, -10.0, -179.0, 10.0))

        assert sorted(e.id for e in result.singles) == ["east", "west"]

    def test_whole_world_viewport(self, sample_events):
        index = ClusterIndex.build(sample_events)

        result = index.query(20, (-180.0, -90.0, 180.0, 90.0))

        assert len(result.singles) == len(sample_events)


# ==============================================================================
# Expansion Zoom Tests
# ==============================================================================

class TestExpansionZoom:
    """Test the zoom at which a cluster falls apart."""

    def test_tight_cluster_expands_past_max_zoom(self, close_trio):
        index = ClusterIndex.build(close_trio)
        cluster = index.query(10).clusters[0]

        zoom = index.expansion_zoom(cluster.cluster_id)

        assert zoom == 15
        ids = [c.cluster_id for c in index.query(zoom).clusters]
        assert cluster.cluster_id not in ids

    def test_pairs_split_at_intermediate_zoom(self, two_pairs):
        index = ClusterIndex.build(two_pairs)
        merged = index.query(11).clusters

        assert len(merged) == 1
        assert merged[0].point_count == 4
        assert index.expansion_zoom(merged[0].cluster_id) == 12

        split = index.query(12)
        assert sorted(c.point_count for c in split.clusters) == [2, 2]

    def test_expansion_zoom_is_at_least_query_zoom(self, random_events):
        index = ClusterIndex.build(random_events)

        for zoom in [2, 6, 10, 13]:
            result = index.query(zoom)
            for cluster in result.clusters:
                expansion = index.expansion_zoom(cluster.cluster_id)
                assert zoom <= expansion <= 15
                assert cluster.cluster_id not in {c.cluster_id for c in index.query(expansion).clusters}

    def test_children_sum_to_count(self, random_events):
        index = ClusterIndex.build(random_events)

        for cluster in index.query(6).clusters:
            children = index.get_children(cluster.cluster_id)
            total = sum(getattr(child, "point_count", 1) for child in children)
            assert len(children) >= 2
            assert total == cluster.point_count


# ==============================================================================
# Leaf Retrieval Tests
# ==============================================================================

class TestLeaves:
    """Test paged member retrieval."""

    def test_paging_covers_every_member_once(self, random_events):
        index = ClusterIndex.build(random_events)

        for cluster in index.query(5).clusters:
            collected = []
            offset = 0
            while True:
                page = index.get_leaves(cluster.cluster_id, limit=7, offset=offset)
                if not page:
                    break
                assert len(page) <= 7
                collected.extend(e.id for e in page)
                offset += len(page)

            assert len(collected) == cluster.point_count
            assert len(set(collected)) == cluster.point_count

    def test_leaf_order_is_stable(self, random_events):
        index = ClusterIndex.build(random_events)
        cluster = index.query(4).clusters[0]

        first = [e.id for e in index.get_leaves(cluster.cluster_id, limit=cluster.point_count)]
        second = [e.id for e in index.get_leaves(cluster.cluster_id, limit=cluster.point_count)]
        paged = [e.id for e in index.get_leaves(cluster.cluster_id, limit=3, offset=2)]

        assert first == second
        assert paged == first[2:5]

    def test_default_limit(self, random_events):
        index = ClusterIndex.build(random_events, ClusterConfig(leaf_limit=10))
        cluster = max(index.query(0).clusters, key=lambda c: c.point_count)

        assert cluster.point_count > 10
        assert len(index.get_leaves(cluster.cluster_id)) == 10

    def test_offset_past_end_and_zero_limit(self, close_trio):
        index = ClusterIndex.build(close_trio)
        cluster_id = index.query(10).clusters[0].cluster_id

        assert index.get_leaves(cluster_id, limit=10, offset=3) == []
        assert index.get_leaves(cluster_id, limit=0) == []

    def test_negative_offset_rejected(self, close_trio):
        index = ClusterIndex.build(close_trio)
        cluster_id = index.query(10).clusters[0].cluster_id

        with pytest.raises(ValueError):
            index.get_leaves(cluster_id, offset=-1)


# ==============================================================================
# Error and Config Tests
# ==============================================================================

class TestErrors:
    """Test unknown cluster ids."""

    def test_unknown_cluster_id(self, close_trio):
        index = ClusterIndex.build(close_trio)

        with pytest.raises(ClusterNotFoundError) as excinfo:
            index.expansion_zoom(999_999)
        assert excinfo.value.cluster_id == 999_999
        assert "999999" in str(excinfo.value)

        with pytest.raises(NotFound):
            index.get_leaves(999_999)
        with pytest.raises(NotFound):
            index.get_children(999_999)

    def test_point_index_is_not_a_cluster_id(self, close_trio):
        index = ClusterIndex.build(close_trio)

        with pytest.raises(ClusterNotFoundError):
            index.get_cluster(0)


class TestClusterConfig:
    """Test configuration validation and diagnostics."""

    @pytest.mark.parametrize("kwargs", [
        {"radius": 0},
        {"extent": -1},
        {"min_zoom": 5, "max_zoom": 4},
        {"max_zoom": 31},
        {"min_points": 1},
        {"leaf_limit": 0},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            ClusterConfig(**kwargs)

    def test_from_profile(self):
        config = ClusterConfig.from_profile({"clustering": {"radius": 60, "max_zoom": 16}})

        assert config.radius == 60.0
        assert config.max_zoom == 16
        assert config.extent == 512.0

    def test_stats(self, close_trio):
        index = ClusterIndex.build(close_trio)
        stats = index.stats()

        assert stats["num_points"] == 3
        assert stats["num_clusters"] == 1
        assert stats["units_per_zoom"][15] == 3
        assert stats["units_per_zoom"][0] == 1
