# FILE: seed_lyrics.py
"""
Embeds the curated lyric list and loads it into the vector index.

The request path embeds questions with the same pinned model
(app.domain.models.EMBEDDING_MODEL_NAME); rows embedded with any other model are
never compared against questions.

Usage:
    LYRIC_OPENAI_API_KEY=sk-... LYRIC_POSTGRES_DSN=postgresql://... python scripts/seed_lyrics.py
    LYRIC_OPENAI_API_KEY=sk-... python scripts/seed_lyrics.py --output json --path data/lyrics_corpus.json
"""
import argparse
import asyncio
import logging
import sys

import structlog
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type, before_sleep_log

from app.core.logging_config import setup_logging
setup_logging()

from app.core.config import settings
from app.domain.exceptions import UpstreamError, UpstreamTimeout, UpstreamUnexpectedError
from app.domain.models import EMBEDDING_MODEL_NAME
from app.infrastructure.embedding_models.openai_adapter import OpenAIEmbeddingAdapter
from app.infrastructure.vector_index.in_memory_adapter import write_corpus_file
from app.infrastructure.vector_index.pgvector_adapter import PgVectorIndexAdapter

log = structlog.get_logger("seed_lyrics")

# Curated lyrics, one or two lines each, across a wide emotional range.
LYRICS = [
    # Resilience & survival
    "Long story short, I survived",
    "This is me trying",
    "I'm doing good, I'm on some new shit",
    "I've been the archer, I've been the prey",
    # Self-awareness & growth
    "It's me, hi, I'm the problem, it's me",
    "I'm the only one of me, baby, that's the fun of me",
    "I've made really deep cuts",
    "I had the time of my life fighting dragons with you",
    # Heartbreak & loss
    "Band-aids don't fix bullet holes",
    "You call me up again just to break me like a promise",
    "All too well, and I was there",
    "The worst thing that I ever did was what I did to you",
    "How you held me in your arms that September night, the first time you ever saw me cry",
    # Empowerment & closure
    "We are never ever getting back together",
    "I knew you were trouble when you walked in",
    "I don't trust nobody and nobody trusts me",
    "Look what you made me do",
    # Letting go
    "Shake it off",
    "You need to calm down",
    "It's nice to have a friend",
    # Love & vulnerability
    "You are the best thing that's ever been mine",
    "I want to wear his initial on a chain round my neck",
    "Can I go where you go? Can we always be this close?",
    "I could build a castle out of all the bricks they threw at me",
    # Independence & boundaries
    "I'm shining like fireworks over your sad empty town",
    "I'm walking on sunshine",
    "Who's afraid of little old me? You should be",
    # Nostalgia & reflection
    "We were both young when I first saw you",
    "Back when we were still changing for the better",
    "Time won't fly, it's like I'm paralyzed by it",
]

# Unlike the request path, the offline job can afford to retry transient failures.
_transient = retry(
    stop=stop_after_attempt(4),
    wait=wait_exponential(multiplier=1, min=2, max=20),
    retry=retry_if_exception_type((UpstreamTimeout, UpstreamUnexpectedError)),
    before_sleep=before_sleep_log(logging.getLogger("seed_lyrics"), logging.WARNING),
    reraise=True,
)


@_transient
async def embed_corpus(adapter: OpenAIEmbeddingAdapter, lyrics):
    return await adapter.embed_texts(list(lyrics))


@_transient
async def load_into_pgvector(index: PgVectorIndexAdapter, entries) -> int:
    await index.ensure_schema()
    return await index.upsert(entries, embedding_model=EMBEDDING_MODEL_NAME)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Embed the curated lyrics and load them into the vector index.")
    parser.add_argument("--output", choices=["pgvector", "json"], default="pgvector",
                        help="pgvector upserts into LYRIC_POSTGRES_DSN; json writes a corpus file for the memory backend.")
    parser.add_argument("--path", default=settings.VECTOR_INDEX_CORPUS_PATH,
                        help="Corpus file to write when --output json.")
    return parser.parse_args(argv)


async def run(args) -> int:
    api_key = settings.OPENAI_API_KEY.get_secret_value() if settings.OPENAI_API_KEY else None
    adapter = OpenAIEmbeddingAdapter(
        api_key=api_key,
        base_url=settings.OPENAI_API_BASE,
        timeout_seconds=max(settings.OPENAI_TIMEOUT_SECONDS, 60.0),
    )
    try:
        log.info("Generating embeddings", count=len(LYRICS), **adapter.get_model_info())
        vectors = await embed_corpus(adapter, LYRICS)
    finally:
        await adapter.close()
    entries = list(zip(LYRICS, vectors))

    if args.output == "json":
        write_corpus_file(args.path, entries, embedding_model=EMBEDDING_MODEL_NAME)
        return len(entries)

    dsn = settings.POSTGRES_DSN.get_secret_value() if settings.POSTGRES_DSN else None
    index = PgVectorIndexAdapter(dsn=dsn, command_timeout_seconds=60.0)
    try:
        return await load_into_pgvector(index, entries)
    finally:
        await index.close()


def main(argv=None):
    args = parse_args(argv)
    try:
        written = asyncio.run(run(args))
    except UpstreamError as e:
        log.critical("Seeding failed", error=str(e), dependency=e.dependency)
        sys.exit(1)
    log.info("Seeding finished", written=written, output=args.output)


if __name__ == "__main__":
    main()
