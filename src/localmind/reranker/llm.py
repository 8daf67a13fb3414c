# src/localmind/reranker/llm.py
"""Reranker that scores candidates with the generation model itself."""

from __future__ import annotations

import json
import logging
import re

from localmind.exceptions import GenerationError
from localmind.generation import GenerationEngine
from localmind.models import GenerationParams, RankedChunk
from localmind.reranker.base import Reranker

logger = logging.getLogger(__name__)

MAX_SCORE = 10.0
PASSAGE_PREVIEW_CHARS = 800

DEFAULT_PROMPT = """Rate how relevant each passage is to the question on a scale from 0 \
(unrelated) to 10 (directly answers it).

Question: {query}

Passages:
{passages}

Return ONLY a JSON object mapping each passage number to its score, for example:
{{"0": 7, "1": 2}}"""

SCORING_PARAMS = GenerationParams(temperature=0.0, top_p=1.0, max_output_tokens=256)


def parse_scores(response_text: str, count: int) -> dict[int, float]:
    """Parse a ``{"index": score}`` object into normalised scores in [0, 1].

    Entries with unknown indices or non-numeric scores are ignored.

    Raises:
        ValueError: If no JSON object can be found in the response.
    """
    text = response_text.strip()

    # Handle potential markdown code blocks (even with introductory text)
    json_match = re.search(r"```(?:json)?\n(.*?)\n```", text, re.DOTALL)
    if json_match:
        text = json_match.group(1)
    else:
        brace_match = re.search(r"\{.*\}", text, re.DOTALL)
        if brace_match:
            text = brace_match.group(0)

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Reranker response is not JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError("Reranker response is not a JSON object")

    scores: dict[int, float] = {}
    for key, value in raw.items():
        try:
            index = int(key)
            score = float(value)
        except (TypeError, ValueError):
            continue
        if 0 <= index < count:
            scores[index] = min(1.0, max(0.0, score / MAX_SCORE))
    return scores


class LLMReranker(Reranker):
    """Batch-scores the head of the candidate list with the generation model.

    Only the first ``cutoff`` candidates are scored, ``batch_size`` passages
    per call. Candidates beyond the cutoff keep their order after the
    reranked head. If the engine is not ready, or any scoring call fails,
    the original order is returned.

    Example:
        reranker = LLMReranker(engine, cutoff=10, batch_size=5)
        ranked = await reranker.rerank("what is rrf?", candidates)
    """

    def __init__(
        self,
        engine: GenerationEngine,
        cutoff: int = 10,
        batch_size: int = 5,
        prompt_template: str | None = None,
    ) -> None:
        """Initialize the reranker.

        Args:
            engine: Generation engine used for scoring calls.
            cutoff: Number of leading candidates to score.
            batch_size: Passages scored per call.
            prompt_template: Custom prompt with {query} and {passages} placeholders.
        """
        self._engine = engine
        self.cutoff = cutoff
        self.batch_size = batch_size
        self.prompt_template = prompt_template or DEFAULT_PROMPT

    def _build_prompt(self, query: str, batch: list[RankedChunk]) -> str:
        passages = "\n\n".join(
            f"[{i}] {candidate.chunk.content[:PASSAGE_PREVIEW_CHARS]}"
            for i, candidate in enumerate(batch)
        )
        return self.prompt_template.format(query=query, passages=passages)

    async def _score_batch(self, query: str, batch: list[RankedChunk]) -> list[float]:
        response = await self._engine.complete(self._build_prompt(query, batch), SCORING_PARAMS)
        scores = parse_scores(response, len(batch))
        # Unscored passages sink below every scored one
        return [scores.get(i, -1.0) for i in range(len(batch))]

    async def rerank(self, query: str, candidates: list[RankedChunk]) -> list[RankedChunk]:
        if len(candidates) < 2:
            return list(candidates)
        if not self._engine.is_ready:
            logger.info("Generation model unavailable, skipping rerank")
            return list(candidates)

        head = candidates[: self.cutoff]
        tail = candidates[self.cutoff :]

        scores: list[float] = []
        try:
            for start in range(0, len(head), self.batch_size):
                scores.extend(await self._score_batch(query, head[start : start + self.batch_size]))
        except (GenerationError, ValueError) as e:
            logger.warning("Rerank failed, keeping retrieval order: %s", e)
            return list(candidates)

        order = sorted(range(len(head)), key=lambda i: (-scores[i], i))
        reranked: list[RankedChunk] = []
        for new_rank, index in enumerate(order, start=1):
            score = scores[index]
            reranked.append(
                head[index].model_copy(
                    update={"rank": new_rank, "rerank_score": score if score >= 0 else None}
                )
            )
        for offset, candidate in enumerate(tail, start=len(reranked) + 1):
            reranked.append(candidate.model_copy(update={"rank": offset}))
        return reranked
