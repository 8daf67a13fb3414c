"""Candidate reranking."""

from localmind.reranker.base import NoopReranker, Reranker
from localmind.reranker.llm import LLMReranker, parse_scores

__all__ = ["Reranker", "NoopReranker", "LLMReranker", "parse_scores"]
