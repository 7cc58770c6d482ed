"""
Test VectorIndex
================

Exact and IVF-partitioned nearest-neighbour search.
"""

import pytest

from hybridkg.errors import DimensionMismatch, DuplicateEntityError, InvalidQueryError
from hybridkg.storage.models import Entity, VectorSearchRequest
from hybridkg.storage.vectors.index import VectorIndex, validate_vector


def index_of(vectors, **kwargs):
    dimension = len(next(iter(vectors.values())))
    index = VectorIndex(dimension=dimension, **kwargs)
    index.add_entities(Entity(id=eid, body=eid, vector=vec) for eid, vec in vectors.items())
    index.build()
    return index


def hit_ids(hits):
    return [h.entity_id for h in hits]


@pytest.fixture
def clustered():
    return {
        "a1": [1.0, 0.0],
        "a2": [0.9, 0.1],
        "b1": [0.0, 1.0],
        "b2": [0.1, 0.9],
    }


class TestValidation:
    """Dimension and parameter checks."""

    def test_validate_vector(self):
        validate_vector([0.1, 0.2], 2)
        with pytest.raises(DimensionMismatch) as exc:
            validate_vector([0.1], 2)
        assert (exc.value.expected, exc.value.actual) == (2, 1)

    def test_missing_vector(self):
        with pytest.raises(DimensionMismatch):
            validate_vector(None, 2)

    def test_add_wrong_dimension(self):
        index = VectorIndex(dimension=3)
        with pytest.raises(DimensionMismatch):
            index.add("x", [1.0, 0.0])

    def test_query_wrong_dimension(self, clustered):
        index = index_of(clustered)
        with pytest.raises(DimensionMismatch):
            index.search(VectorSearchRequest([1.0, 0.0, 0.0], limit=2))

    def test_duplicate_id(self):
        index = VectorIndex(dimension=2)
        index.add("x", [1.0, 0.0])
        with pytest.raises(DuplicateEntityError):
            index.add("x", [0.0, 1.0])

    @pytest.mark.parametrize("kwargs", [
        {"dimension": 0},
        {"dimension": 2, "metric": "dot"},
        {"dimension": 2, "n_lists": 0},
        {"dimension": 2, "n_probe": 0},
    ])
    def test_invalid_constructor(self, kwargs):
        with pytest.raises(ValueError):
            VectorIndex(**kwargs)

    def test_invalid_request(self):
        with pytest.raises(InvalidQueryError):
            VectorSearchRequest([1.0], limit=0)
        with pytest.raises(InvalidQueryError):
            VectorSearchRequest([1.0], limit=1, n_probe=0)


class TestExactSearch:
    """Exhaustive search with each metric."""

    def test_cosine_ordering(self, clustered):
        index = index_of(clustered)

        hits = index.search(VectorSearchRequest([1.0, 0.0], limit=4))

        assert hit_ids(hits) == ["a1", "a2", "b2", "b1"]
        assert hits[0].score == pytest.approx(1.0)
        assert [h.rank for h in hits] == [1, 2, 3, 4]

    def test_cosine_ignores_magnitude(self):
        index = index_of({"short": [1.0, 0.0], "long": [10.0, 0.0]})

        hits = index.search(VectorSearchRequest([3.0, 0.0], limit=2))

        # same similarity: insertion order
        assert hit_ids(hits) == ["short", "long"]
        assert hits[0].score == pytest.approx(hits[1].score)

    def test_euclidean(self):
        index = index_of({"near": [1.0, 1.0], "far": [5.0, 5.0]}, metric="euclidean")

        hits = index.search(VectorSearchRequest([0.0, 0.0], limit=2))

        assert hit_ids(hits) == ["near", "far"]
        assert hits[0].score == pytest.approx(-(2 ** 0.5))

    def test_manhattan(self):
        index = index_of({"near": [1.0, 1.0], "far": [3.0, 0.0]}, metric="manhattan")

        hits = index.search(VectorSearchRequest([0.0, 0.0], limit=2))

        assert hit_ids(hits) == ["near", "far"]
        assert hits[0].score == pytest.approx(-2.0)

    def test_limit(self, clustered):
        index = index_of(clustered)
        assert len(index.search(VectorSearchRequest([1.0, 0.0], limit=2))) == 2

    def test_zero_query_vector(self, clustered):
        index = index_of(clustered)

        hits = index.search(VectorSearchRequest([0.0, 0.0], limit=4))

        assert hit_ids(hits) == ["a1", "a2", "b1", "b2"]
        assert all(h.score == 0.0 for h in hits)

    def test_empty_index(self):
        index = VectorIndex(dimension=2)
        assert index.search(VectorSearchRequest([1.0, 0.0], limit=3)) == []

    def test_lazy_build(self):
        index = VectorIndex(dimension=2)
        index.add("x", [1.0, 0.0])
        assert hit_ids(index.search(VectorSearchRequest([1.0, 0.0], limit=1))) == ["x"]

    def test_clear(self, clustered):
        index = index_of(clustered)
        index.clear()
        assert len(index) == 0
        assert index.search(VectorSearchRequest([1.0, 0.0], limit=3)) == []

    @pytest.mark.asyncio
    async def test_search_vector_async(self, clustered):
        index = index_of(clustered)
        hits = await index.search_vector(VectorSearchRequest([0.0, 1.0], limit=1))
        assert hit_ids(hits) == ["b1"]


class TestPartitionedSearch:
    """IVF: n_probe trades recall for work; exact bypasses partitions."""

    def test_partitioned(self, clustered):
        assert index_of(clustered, n_lists=2).is_partitioned
        assert not index_of(clustered).is_partitioned

    def test_single_probe_scans_one_partition(self, clustered):
        index = index_of(clustered, n_lists=2, n_probe=1)

        hits = index.search(VectorSearchRequest([1.0, 0.0], limit=4))

        assert hit_ids(hits) == ["a1", "a2"]

    def test_more_probes_full_recall(self, clustered):
        index = index_of(clustered, n_lists=2, n_probe=1)

        hits = index.search(VectorSearchRequest([1.0, 0.0], limit=4, n_probe=2))

        assert hit_ids(hits) == ["a1", "a2", "b2", "b1"]

    def test_exact_bypasses_partitions(self, clustered):
        index = index_of(clustered, n_lists=2, n_probe=1)

        hits = index.search(VectorSearchRequest([1.0, 0.0], limit=4, exact=True))

        assert hit_ids(hits) == ["a1", "a2", "b2", "b1"]

    def test_more_lists_than_vectors(self):
        index = index_of({"x": [1.0, 0.0], "y": [0.0, 1.0]}, n_lists=8, n_probe=8)

        hits = index.search(VectorSearchRequest([1.0, 0.0], limit=2))

        assert hit_ids(hits) == ["x", "y"]
