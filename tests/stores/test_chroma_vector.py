# tests/stores/test_chroma_vector.py
"""Tests for the ChromaDB vector store."""

import math
import os

import pytest

from localmind.exceptions import RetrievalError
from localmind.models import Chunk, EmbeddedChunk
from localmind.stores import ChromaVectorStore, VectorStore


@pytest.fixture
def vector_store(temp_dir):
    store = ChromaVectorStore(os.path.join(temp_dir, "chroma"))
    yield store
    store.close()


def make_embedded(
    vector: list[float],
    document_id: str = "doc-1",
    position: int = 0,
    content: str = "text",
    model_version: str = "fake-embed",
) -> EmbeddedChunk:
    chunk = Chunk(
        document_id=document_id,
        position=position,
        start=0,
        end=len(content),
        content=content,
        origin=f"{document_id}.md",
    )
    return EmbeddedChunk(chunk=chunk, embedding=vector, model_version=model_version)


def at_similarity(score: float) -> list[float]:
    """Unit vector whose cosine similarity with [1, 0] is ``score``."""
    return [score, math.sqrt(1.0 - score * score)]


class TestChromaVectorStore:
    def test_is_vectorstore(self, vector_store):
        assert isinstance(vector_store, VectorStore)

    def test_empty_search(self, vector_store):
        assert vector_store.search([1.0, 0.0], top_k=5) == []

    def test_threshold_filters_before_truncation(self, vector_store):
        scores = [0.9, 0.8, 0.7, 0.4, 0.2]
        vector_store.insert_many(
            [make_embedded(at_similarity(s), position=i) for i, s in enumerate(scores)]
        )

        results = vector_store.search([1.0, 0.0], top_k=5, similarity_threshold=0.5)

        assert len(results) == 3
        assert [r.score for r in results] == pytest.approx([0.9, 0.8, 0.7], abs=1e-3)
        assert [r.rank for r in results] == [1, 2, 3]

    def test_top_k_truncates(self, vector_store):
        vector_store.insert_many(
            [make_embedded(at_similarity(s), position=i) for i, s in enumerate([0.9, 0.8, 0.7])]
        )
        results = vector_store.search([1.0, 0.0], top_k=2)
        assert [r.chunk.position for r in results] == [0, 1]

    def test_never_padded(self, vector_store):
        vector_store.insert(make_embedded([1.0, 0.0]).chunk, [1.0, 0.0], "fake-embed")
        assert len(vector_store.search([1.0, 0.0], top_k=10)) == 1

    def test_ties_keep_insertion_order(self, vector_store):
        first = make_embedded([0.0, 1.0], position=0, content="first")
        second = make_embedded([0.0, 1.0], position=1, content="second")
        vector_store.insert_many([first])
        vector_store.insert_many([second])

        results = vector_store.search([0.0, 1.0], top_k=2)
        assert [r.chunk.content for r in results] == ["first", "second"]

    def test_scores_clamped_to_unit_interval(self, vector_store):
        vector_store.insert_many([make_embedded([-1.0, 0.0])])
        results = vector_store.search([1.0, 0.0], top_k=1)
        assert results[0].score == pytest.approx(0.0, abs=1e-6)

    def test_search_round_trips_chunk(self, vector_store):
        item = make_embedded([1.0, 0.0], document_id="doc-7", position=3, content="hello")
        vector_store.insert_many([item])

        hit = vector_store.search([1.0, 0.0], top_k=1)[0].chunk
        assert hit.id == item.chunk.id
        assert hit.document_id == "doc-7"
        assert hit.position == 3
        assert hit.content == "hello"
        assert hit.origin == "doc-7.md"

    def test_dimension_mismatch_on_insert(self, vector_store):
        vector_store.insert_many([make_embedded([1.0, 0.0])])
        with pytest.raises(RetrievalError, match="dimension"):
            vector_store.insert_many([make_embedded([1.0, 0.0, 0.0])])

    def test_dimension_mismatch_on_search(self, vector_store):
        vector_store.insert_many([make_embedded([1.0, 0.0])])
        with pytest.raises(RetrievalError, match="dimension"):
            vector_store.search([1.0, 0.0, 0.0], top_k=1)

    def test_delete_by_document(self, vector_store):
        vector_store.insert_many(
            [
                make_embedded([1.0, 0.0], document_id="keep"),
                make_embedded([0.9, 0.1], document_id="drop", position=0),
                make_embedded([0.8, 0.2], document_id="drop", position=1),
            ]
        )
        vector_store.delete_by_document("drop")

        assert vector_store.count() == 1
        results = vector_store.search([1.0, 0.0], top_k=5)
        assert [r.chunk.document_id for r in results] == ["keep"]

    def test_model_versions(self, vector_store):
        assert vector_store.model_versions() == set()
        vector_store.insert_many(
            [
                make_embedded([1.0, 0.0], model_version="model-a"),
                make_embedded([0.0, 1.0], model_version="model-b", position=1),
            ]
        )
        assert vector_store.model_versions() == {"model-a", "model-b"}

    def test_closed_store_raises(self, vector_store):
        vector_store.close()
        with pytest.raises(RetrievalError, match="closed"):
            vector_store.search([1.0, 0.0], top_k=1)
        with pytest.raises(RetrievalError):
            vector_store.count()

    def test_non_positive_top_k(self, vector_store):
        vector_store.insert_many([make_embedded([1.0, 0.0])])
        assert vector_store.search([1.0, 0.0], top_k=0) == []


class TestReplaceAll:
    def test_switches_dimension(self, vector_store):
        vector_store.insert_many([make_embedded([1.0, 0.0]), make_embedded([0.0, 1.0])])

        vector_store.replace_all(
            [make_embedded([1.0, 0.0, 0.0], model_version="v2", document_id="doc-2")]
        )

        assert vector_store.count() == 1
        assert vector_store.model_versions() == {"v2"}
        results = vector_store.search([1.0, 0.0, 0.0], top_k=5)
        assert [r.chunk.document_id for r in results] == ["doc-2"]
        with pytest.raises(RetrievalError, match="dimension"):
            vector_store.search([1.0, 0.0], top_k=5)

    def test_existing_chunks_keep_insertion_order(self, vector_store):
        first = make_embedded([1.0, 0.0], content="first")
        second = make_embedded([1.0, 0.0], content="second")
        vector_store.insert_many([first, second])

        # Re-embedded in reverse order; ties must still follow the original inserts
        vector_store.replace_all(
            [
                second.model_copy(update={"embedding": [0.0, 1.0, 0.0]}),
                first.model_copy(update={"embedding": [0.0, 1.0, 0.0]}),
            ]
        )

        results = vector_store.search([0.0, 1.0, 0.0], top_k=2)
        assert [r.chunk.content for r in results] == ["first", "second"]

    def test_mixed_dimensions_keep_old_contents(self, vector_store):
        vector_store.insert_many([make_embedded([1.0, 0.0])])

        with pytest.raises(RetrievalError, match="mixed dimensions"):
            vector_store.replace_all([make_embedded([1.0, 0.0, 0.0]), make_embedded([1.0])])

        assert vector_store.count() == 1
        assert len(vector_store.search([1.0, 0.0], top_k=5)) == 1

    def test_empty_replacement_clears_store(self, vector_store):
        vector_store.insert_many([make_embedded([1.0, 0.0])])

        vector_store.replace_all([])

        assert vector_store.count() == 0
        vector_store.insert_many([make_embedded([1.0, 0.0, 0.0, 0.0])])
        assert vector_store.count() == 1

    def test_survives_reopen(self, vector_store, temp_dir):
        vector_store.insert_many([make_embedded([1.0, 0.0])])
        vector_store.replace_all([make_embedded([0.0, 0.0, 1.0], model_version="v2")])
        vector_store.close()

        reopened = ChromaVectorStore(os.path.join(temp_dir, "chroma"))
        try:
            assert reopened.count() == 1
            assert reopened.model_versions() == {"v2"}
        finally:
            reopened.close()


class TestClose:
    def test_reopen_after_close(self, temp_dir):
        path = os.path.join(temp_dir, "chroma")
        store = ChromaVectorStore(path)
        store.insert_many([make_embedded([1.0, 0.0])])
        store.close()

        reopened = ChromaVectorStore(path)
        try:
            assert reopened.count() == 1
        finally:
            reopened.close()

    def test_close_twice(self, temp_dir):
        store = ChromaVectorStore(os.path.join(temp_dir, "chroma"))
        store.close()
        store.close()
