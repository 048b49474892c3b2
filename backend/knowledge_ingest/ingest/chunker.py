"""Sentence-bounded chunking with word overlap."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from knowledge_ingest.ingest.types import ChunkPayload, ChunkingConfig
from knowledge_ingest.utils.text import last_words, word_count

_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")

PROCESSING_METHOD = "sentence_boundary"
CHUNK_TYPE = "semantic"


@dataclass(slots=True)
class _Buffer:
    parts: list[str] = field(default_factory=list)
    words: int = 0
    overlap_words: int = 0
    sentence_start: int = 0

    def add(self, sentence: str, sentence_words: int) -> None:
        self.parts.append(sentence)
        self.words += sentence_words

    def seed(self, overlap: str, next_sentence: int) -> None:
        self.parts = [overlap] if overlap else []
        self.words = word_count(overlap)
        self.overlap_words = self.words
        self.sentence_start = next_sentence


def split_sentences(text: str) -> list[str]:
    """Split on ``.``, ``!`` or ``?`` followed by whitespace, dropping empty units."""
    return [unit.strip() for unit in _SENTENCE_BOUNDARY_RE.split(text) if unit.strip()]


def chunk_text(
    text: str,
    target_words: int = 800,
    max_words: int = 1200,
    overlap_words: int = 100,
    *,
    page_count: int = 1,
) -> list[ChunkPayload]:
    """Split text into sentence-bounded chunks linked by a trailing-word overlap."""
    config = ChunkingConfig(target_words=target_words, max_words=max_words, overlap_words=overlap_words)
    return chunk_with_config(text, config, page_count=page_count)


def chunk_with_config(text: str, config: ChunkingConfig, *, page_count: int = 1) -> list[ChunkPayload]:
    """Run the chunker with an explicit configuration.

    A chunk is closed before a sentence that would push it past
    ``config.max_words`` or right after a sentence that brings it to
    ``config.target_words``. The next chunk starts with the last
    ``config.overlap_words`` words of the closed one. Sentences are never
    split, so a single oversized sentence still becomes one chunk. A buffer
    holding only the carried overlap is closed like any other.
    """
    sentences = split_sentences(text)
    chunks: list[ChunkPayload] = []
    buffer = _Buffer()
    words_processed = 0
    last_index = len(sentences) - 1

    for position, sentence in enumerate(sentences):
        sentence_words = word_count(sentence)

        if buffer.parts and buffer.words + sentence_words > config.max_words:
            chunk = _finalize(chunks, buffer, config, page_count, words_processed, position, is_final=False)
            buffer.seed(last_words(chunk.content, config.overlap_words), position)

        buffer.add(sentence, sentence_words)
        words_processed += sentence_words

        if buffer.words >= config.target_words and position < last_index:
            chunk = _finalize(chunks, buffer, config, page_count, words_processed, position + 1, is_final=False)
            buffer.seed(last_words(chunk.content, config.overlap_words), position + 1)

    if buffer.parts:
        _finalize(chunks, buffer, config, page_count, words_processed, len(sentences), is_final=True)

    return chunks


def _finalize(
    chunks: list[ChunkPayload],
    buffer: _Buffer,
    config: ChunkingConfig,
    page_count: int,
    end_word: int,
    sentence_end: int,
    *,
    is_final: bool,
) -> ChunkPayload:
    content = " ".join(buffer.parts).strip()
    count = word_count(content)
    chunk = ChunkPayload(
        chunk_index=len(chunks),
        content=content,
        word_count=count,
        metadata={
            "chunk_type": CHUNK_TYPE,
            "processing_method": PROCESSING_METHOD,
            "page_count": page_count,
            "sentence_start": buffer.sentence_start,
            "sentence_end": sentence_end,
            "start_word": end_word - count,
            "end_word": end_word,
            "overlap_from_previous": buffer.overlap_words,
            "overlap_with_next": 0 if is_final else config.overlap_words,
            "is_final": is_final,
        },
    )
    chunks.append(chunk)
    return chunk


__all__ = ["chunk_text", "chunk_with_config", "split_sentences", "PROCESSING_METHOD", "CHUNK_TYPE"]
