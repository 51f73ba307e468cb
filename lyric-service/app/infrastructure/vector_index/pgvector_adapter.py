# File: lyric-service/app/infrastructure/vector_index/pgvector_adapter.py
import asyncio
import structlog
from typing import List, Optional, Sequence, Tuple
import asyncpg

from app.application.ports.vector_index_port import VectorIndexPort
from app.domain.exceptions import UpstreamConfigurationError, UpstreamTimeout, UpstreamUnexpectedError
from app.domain.models import Candidate, EMBEDDING_DIMENSION, EMBEDDING_MODEL_NAME

log = structlog.get_logger(__name__)

DEPENDENCY = "pgvector-index"

CREATE_SCHEMA_SQL = f"""
CREATE EXTENSION IF NOT EXISTS vector;
CREATE TABLE IF NOT EXISTS lyrics (
    id BIGSERIAL PRIMARY KEY,
    lyric_text TEXT NOT NULL UNIQUE,
    embedding vector({EMBEDDING_DIMENSION}) NOT NULL,
    embedding_model TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT timezone('utc', now())
);
CREATE INDEX IF NOT EXISTS idx_lyrics_embedding_cosine ON lyrics USING hnsw (embedding vector_cosine_ops);
"""

# Cosine similarity = 1 - cosine distance. Rows embedded with another model are never compared.
NEAREST_SQL = """
SELECT lyric_text, 1 - (embedding <=> $1::text::vector) AS similarity
FROM lyrics
WHERE embedding_model = $4
  AND 1 - (embedding <=> $1::text::vector) >= $2
ORDER BY embedding <=> $1::text::vector
LIMIT $3
"""

UPSERT_SQL = """
INSERT INTO lyrics (lyric_text, embedding, embedding_model)
VALUES ($1, $2::text::vector, $3)
ON CONFLICT (lyric_text) DO UPDATE
SET embedding = EXCLUDED.embedding, embedding_model = EXCLUDED.embedding_model
"""


def to_vector_literal(vector: Sequence[float]) -> str:
    """Renders a vector in pgvector's text input format."""
    return "[" + ",".join(repr(float(x)) for x in vector) + "]"


class PgVectorIndexAdapter(VectorIndexPort):
    """
    Lyric corpus stored in PostgreSQL with the pgvector extension.

    The connection pool is created on first query.
    """
    _pool: Optional[asyncpg.Pool] = None

    def __init__(self, dsn: Optional[str], command_timeout_seconds: float = 5.0, embedding_model: str = EMBEDDING_MODEL_NAME):
        if not dsn:
            raise UpstreamConfigurationError(dependency=DEPENDENCY, setting="LYRIC_POSTGRES_DSN")
        self._dsn = dsn
        self._command_timeout = command_timeout_seconds
        self._embedding_model = embedding_model
        self._pool_lock = asyncio.Lock()
        log.info("PgVectorIndexAdapter initialized", embedding_model=embedding_model, command_timeout_seconds=command_timeout_seconds)

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is not None and not self._pool._closed:
            return self._pool
        async with self._pool_lock:
            if self._pool is None or self._pool._closed:
                log.info("Creating PostgreSQL connection pool...")
                try:
                    self._pool = await asyncpg.create_pool(
                        dsn=self._dsn,
                        min_size=1,
                        max_size=5,
                        timeout=self._command_timeout,
                        command_timeout=self._command_timeout,
                        statement_cache_size=0,
                    )
                except asyncio.TimeoutError as e:
                    log.error("Timed out connecting to PostgreSQL", error=str(e))
                    raise UpstreamTimeout("Timed out connecting to the vector index", dependency=DEPENDENCY) from e
                except (asyncpg.PostgresError, OSError) as e:
                    log.error("Failed to connect to PostgreSQL", error=str(e))
                    self._pool = None
                    raise UpstreamUnexpectedError(f"Failed to connect to the vector index: {e}", dependency=DEPENDENCY) from e
                log.info("PostgreSQL connection pool created successfully.")
        return self._pool

    async def nearest(self, vector: Sequence[float], min_score: float, k: int) -> List[Candidate]:
        pool = await self.get_pool()
        try:
            rows = await pool.fetch(NEAREST_SQL, to_vector_literal(vector), min_score, k, self._embedding_model)
        except asyncio.TimeoutError as e:
            log.error("Vector index query timed out", error=str(e))
            raise UpstreamTimeout("Vector index query timed out", dependency=DEPENDENCY) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            log.error("Vector index query failed", error=str(e))
            raise UpstreamUnexpectedError(f"Vector index query failed: {e}", dependency=DEPENDENCY) from e

        return [Candidate(text=row["lyric_text"], similarity_score=float(row["similarity"])) for row in rows]

    async def ensure_schema(self) -> None:
        pool = await self.get_pool()
        async with pool.acquire() as conn:
            await conn.execute(CREATE_SCHEMA_SQL)
        log.info("Lyrics table ensured.")

    async def upsert(self, entries: Sequence[Tuple[str, Sequence[float]]], embedding_model: str) -> int:
        if not entries:
            return 0
        pool = await self.get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(
                    UPSERT_SQL,
                    [(text, to_vector_literal(vector), embedding_model) for text, vector in entries],
                )
        log.info("Lyrics upserted", count=len(entries), embedding_model=embedding_model)
        return len(entries)

    async def close(self) -> None:
        if self._pool is not None and not self._pool._closed:
            await self._pool.close()
            log.info("PostgreSQL connection pool closed.")
        self._pool = None
