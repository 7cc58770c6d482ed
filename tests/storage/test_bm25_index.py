"""
Test BM25Index and EnglishAnalyzer
==================================
"""

import math

import pytest

from hybridkg.errors import DuplicateEntityError, InvalidQueryError
from hybridkg.storage.lexical import BM25Index, EnglishAnalyzer, stem
from hybridkg.storage.models import Entity, TextSearchRequest


def build(*bodies):
    index = BM25Index()
    index.add_entities(Entity(id=f"doc{i}", body=body) for i, body in enumerate(bodies))
    return index


class TestAnalyzer:
    """Test tokenisation, stop-words and stemming."""

    @pytest.mark.parametrize("word, expected", [
        ("embeddings", "embedd"),
        ("embedding", "embedd"),
        ("systems", "system"),
        ("libraries", "library"),
        ("classes", "class"),
        ("class", "class"),
        ("is", "is"),
        ("2024", "2024"),
    ])
    def test_stem(self, word, expected):
        assert stem(word) == expected

    def test_stopwords_and_case(self):
        analyzer = EnglishAnalyzer()
        assert analyzer("The Neural Embeddings of a system!") == ["neural", "embedd", "system"]

    def test_no_stemming(self):
        analyzer = EnglishAnalyzer(stemming=False)
        assert analyzer("neural embeddings") == ["neural", "embeddings"]

    def test_empty_text(self):
        assert EnglishAnalyzer()("") == []
        assert EnglishAnalyzer()(None) == []


class TestBM25Index:
    """Test BM25 scoring and ranking."""

    def test_single_document_score(self):
        """N=1, df=1, tf=1, |d|=avgdl: score == idf == ln(4/3)."""
        index = build("neural")

        hits = index.search(TextSearchRequest("neural", limit=3))

        assert len(hits) == 1
        assert hits[0].score == pytest.approx(math.log(4 / 3))

    def test_only_matching_documents(self):
        index = build("neural search", "cloud infrastructure", "neural embeddings")

        hits = index.search(TextSearchRequest("neural", limit=10))

        assert [h.entity_id for h in hits] == ["doc0", "doc2"]
        assert [h.rank for h in hits] == [1, 2]

    def test_more_terms_rank_higher(self):
        index = build("neural search", "neural embeddings search", "cooking recipes")

        hits = index.search(TextSearchRequest("neural embeddings", limit=3))

        assert hits[0].entity_id == "doc1"
        assert hits[0].score > hits[1].score

    def test_rare_term_weighs_more(self):
        index = build("graph database", "graph search", "graph tuning", "vector search")
        assert index.idf("vector") > index.idf("graph")

    def test_ties_by_insertion_order(self):
        index = build("graph databases", "graph databases")

        hits = index.search(TextSearchRequest("graph", limit=2))

        assert [h.entity_id for h in hits] == ["doc0", "doc1"]
        assert hits[0].score == hits[1].score

    def test_limit(self):
        index = build("ml one", "ml two", "ml three", "ml four")
        assert len(index.search(TextSearchRequest("ml", limit=2))) == 2

    def test_no_match_is_empty(self):
        index = build("neural search")
        assert index.search(TextSearchRequest("kubernetes", limit=3)) == []

    def test_stopword_only_query_is_empty(self):
        index = build("the neural search")
        assert index.search(TextSearchRequest("the of and", limit=3)) == []

    def test_empty_index(self):
        assert BM25Index().search(TextSearchRequest("neural", limit=3)) == []

    def test_plural_matches_singular(self):
        index = build("built an embedding service")
        hits = index.search(TextSearchRequest("embeddings", limit=3))
        assert [h.entity_id for h in hits] == ["doc0"]

    def test_duplicate_id_rejected(self):
        index = BM25Index()
        index.add("a", "text")
        with pytest.raises(DuplicateEntityError):
            index.add("a", "other text")

    def test_clear(self):
        index = build("neural search")
        index.clear()
        assert len(index) == 0
        assert index.avgdl == 0.0
        assert index.search(TextSearchRequest("neural", limit=3)) == []

    def test_empty_query_rejected_by_request(self):
        with pytest.raises(InvalidQueryError):
            TextSearchRequest("  ", limit=3)

    @pytest.mark.parametrize("kwargs", [{"k1": -1.0}, {"b": 1.5}])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            BM25Index(**kwargs)

    @pytest.mark.asyncio
    async def test_search_text_async(self):
        index = build("neural search", "neural embeddings")
        hits = await index.search_text(TextSearchRequest("embeddings", limit=3))
        assert [h.entity_id for h in hits] == ["doc1"]
