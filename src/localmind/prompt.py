# src/localmind/prompt.py
"""Augmented prompt assembly."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from localmind.models import Message, RankedChunk

logger = logging.getLogger(__name__)

INSTRUCTIONS = """Answer the question using the reference passages below.
Cite every reference you rely on by its number in square brackets, for example [1].
If none of the references are relevant to the question, say that no relevant reference \
was found before answering."""

REFERENCES_OPEN = "<references>"
REFERENCES_CLOSE = "</references>"

PROMPT_TEMPLATE = """{instructions}

{references}
{history}
Question: {query}

Answer:"""


class AssembledPrompt(BaseModel):
    """Prompt text plus the mapping from citation numbers to chunk ids."""

    text: str
    references: dict[int, str] = Field(default_factory=dict)
    dropped: list[str] = Field(default_factory=list)
    history_dropped: int = 0


def format_reference(number: int, candidate: RankedChunk) -> str:
    chunk = candidate.chunk
    header = f"[{number}] (source: {chunk.origin})" if chunk.origin else f"[{number}]"
    return f"{header}\n{chunk.content.strip()}"


class PromptAssembler:
    """Builds the augmented prompt within a character budget.

    Chunks are numbered 1..n in rank order inside a delimited references
    section. When the prompt exceeds ``max_context_chars``, the
    lowest-ranked chunks are dropped first, then the oldest history
    messages. The output is a pure function of the inputs.

    Example:
        assembler = PromptAssembler(max_context_chars=6000)
        prompt = assembler.assemble("What is RRF?", ranked_chunks)
        engine.generate_stream(prompt.text)
    """

    def __init__(self, max_context_chars: int = 6000, instructions: str | None = None) -> None:
        self.max_context_chars = max_context_chars
        self.instructions = instructions or INSTRUCTIONS

    def _render(
        self,
        query: str,
        chunks: list[RankedChunk],
        history: list[Message],
    ) -> str:
        body = "\n\n".join(format_reference(i, c) for i, c in enumerate(chunks, start=1))
        references = "\n".join(part for part in (REFERENCES_OPEN, body, REFERENCES_CLOSE) if part)
        history_text = ""
        if history:
            turns = "\n".join(f"{m.role.value}: {m.content.strip()}" for m in history)
            history_text = f"\nConversation so far:\n{turns}\n"
        return PROMPT_TEMPLATE.format(
            instructions=self.instructions,
            references=references,
            history=history_text,
            query=query.strip(),
        )

    def assemble(
        self,
        query: str,
        ranked: list[RankedChunk],
        history: list[Message] | None = None,
    ) -> AssembledPrompt:
        """Assemble the prompt for a query.

        Args:
            query: The user's question.
            ranked: Final ranked chunks, best first.
            history: Earlier messages of the conversation, oldest first.
        """
        kept = list(ranked)
        turns = list(history or [])

        text = self._render(query, kept, turns)
        while len(text) > self.max_context_chars and kept:
            kept.pop()
            text = self._render(query, kept, turns)
        history_dropped = 0
        while len(text) > self.max_context_chars and turns:
            turns.pop(0)
            history_dropped += 1
            text = self._render(query, kept, turns)

        dropped = [c.chunk.id for c in ranked[len(kept) :]]
        if dropped or history_dropped:
            logger.debug(
                "Prompt budget %d chars: dropped %d chunks and %d history messages",
                self.max_context_chars,
                len(dropped),
                history_dropped,
            )
        return AssembledPrompt(
            text=text,
            references={i: c.chunk.id for i, c in enumerate(kept, start=1)},
            dropped=dropped,
            history_dropped=history_dropped,
        )
