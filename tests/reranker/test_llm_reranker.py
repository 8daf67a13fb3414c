# tests/reranker/test_llm_reranker.py
"""Tests for the LLM reranker."""

import pytest

from localmind.models import Chunk, RankedChunk
from localmind.reranker import LLMReranker, NoopReranker, Reranker, parse_scores


def make_candidates(count: int) -> list[RankedChunk]:
    return [
        RankedChunk(
            chunk=Chunk(
                id=f"c{i}", document_id="d", position=i, start=0, end=1, content=f"passage {i}"
            ),
            score=1.0 / (60 + i + 1),
            rank=i + 1,
        )
        for i in range(count)
    ]


class TestParseScores:
    def test_plain_json(self):
        assert parse_scores('{"0": 10, "1": 5}', 2) == {0: 1.0, 1: 0.5}

    def test_code_block_with_preamble(self):
        text = 'Here are the scores:\n```json\n{"0": 3}\n```'
        assert parse_scores(text, 1) == {0: pytest.approx(0.3)}

    def test_json_embedded_in_text(self):
        assert parse_scores('Scores: {"1": 8} done', 2) == {1: pytest.approx(0.8)}

    def test_ignores_unknown_indices_and_bad_values(self):
        assert parse_scores('{"0": "high", "5": 7, "x": 2, "1": 4}', 2) == {1: pytest.approx(0.4)}

    def test_clamps(self):
        assert parse_scores('{"0": 15, "1": -3}', 2) == {0: 1.0, 1: 0.0}

    def test_not_json(self):
        with pytest.raises(ValueError):
            parse_scores("I think passage one is best", 2)

    def test_not_an_object(self):
        with pytest.raises(ValueError):
            parse_scores("[1, 2]", 2)


class TestNoopReranker:
    @pytest.mark.asyncio
    async def test_keeps_order(self):
        candidates = make_candidates(3)
        reranker = NoopReranker()
        assert isinstance(reranker, Reranker)
        assert await reranker.rerank("q", candidates) == candidates


class TestLLMReranker:
    @pytest.mark.asyncio
    async def test_reorders_by_score(self, ready_engine, fake_llm):
        fake_llm.replies = ['{"0": 2, "1": 9, "2": 5}']
        reranked = await LLMReranker(ready_engine).rerank("q", make_candidates(3))

        assert [r.chunk.id for r in reranked] == ["c1", "c2", "c0"]
        assert [r.rank for r in reranked] == [1, 2, 3]
        assert reranked[0].rerank_score == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_only_head_is_scored(self, ready_engine, fake_llm):
        fake_llm.replies = ['{"0": 1, "1": 9}']
        reranked = await LLMReranker(ready_engine, cutoff=2).rerank("q", make_candidates(4))

        assert [r.chunk.id for r in reranked] == ["c1", "c0", "c2", "c3"]
        assert reranked[2].rerank_score is None
        assert [r.rank for r in reranked] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_batches(self, ready_engine, fake_llm):
        fake_llm.replies = ['{"0": 1, "1": 2}', '{"0": 9}']
        reranked = await LLMReranker(ready_engine, batch_size=2).rerank("q", make_candidates(3))

        assert len(fake_llm.calls) == 2
        assert [r.chunk.id for r in reranked] == ["c2", "c1", "c0"]

    @pytest.mark.asyncio
    async def test_unscored_passages_sink(self, ready_engine, fake_llm):
        fake_llm.replies = ['{"1": 0}']
        reranked = await LLMReranker(ready_engine).rerank("q", make_candidates(3))
        assert [r.chunk.id for r in reranked] == ["c1", "c0", "c2"]

    @pytest.mark.asyncio
    async def test_unparseable_response_keeps_order(self, ready_engine, fake_llm):
        fake_llm.replies = ["no idea"]
        candidates = make_candidates(3)
        assert await LLMReranker(ready_engine).rerank("q", candidates) == candidates

    @pytest.mark.asyncio
    async def test_generation_failure_keeps_order(self, ready_engine, fake_llm):
        fake_llm.fail_at = 0
        candidates = make_candidates(3)
        assert await LLMReranker(ready_engine).rerank("q", candidates) == candidates

    @pytest.mark.asyncio
    async def test_engine_not_ready_keeps_order(self, engine, fake_llm):
        candidates = make_candidates(3)
        assert await LLMReranker(engine).rerank("q", candidates) == candidates
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_single_candidate_not_scored(self, ready_engine, fake_llm):
        candidates = make_candidates(1)
        assert await LLMReranker(ready_engine).rerank("q", candidates) == candidates
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_prompt_contains_query_and_passages(self, ready_engine, fake_llm):
        fake_llm.replies = ['{"0": 1, "1": 1}']
        await LLMReranker(ready_engine).rerank("what is rrf?", make_candidates(2))

        prompt = fake_llm.calls[0][0]["content"]
        assert "what is rrf?" in prompt
        assert "[0] passage 0" in prompt
        assert "[1] passage 1" in prompt
