# lyric-service/app/domain/models.py
from typing import Optional
from pydantic import BaseModel, Field

MAX_QUESTION_LENGTH = 200

# Pinned: the seeding job and the request path must embed with the same model.
EMBEDDING_MODEL_NAME = "text-embedding-3-small"
EMBEDDING_DIMENSION = 1536

SIMILARITY_THRESHOLD = 0.70
MAX_CANDIDATES = 3

NO_MATCH_SENTINEL = "no match"
UNKNOWN_CLIENT = "unknown"

GENERIC_INPUT_ERROR = "I couldn't understand that one. Try asking differently?"
RATE_LIMITED_ERROR = "Take a breath. Come back in a bit."
UPSTREAM_ERROR = "Something went wrong, try again"


class ValidationResult(BaseModel):
    """Outcome of screening a question. `error` is the same string for every rule."""
    safe: bool
    error: Optional[str] = None


class RateLimitDecision(BaseModel):
    """Result of one atomic check-and-increment against a named window."""
    allowed: bool
    reset_at_epoch_ms: int = Field(..., description="Epoch milliseconds at which the window frees a slot.")


class Candidate(BaseModel):
    """A corpus lyric returned by the vector index."""
    text: str
    similarity_score: float


class SelectionOutcome(BaseModel):
    """Either a chosen lyric or no match (lyric is None)."""
    lyric: Optional[str] = None

    @property
    def is_match(self) -> bool:
        return self.lyric is not None

    @classmethod
    def no_match(cls) -> "SelectionOutcome":
        return cls(lyric=None)


class AskResult(BaseModel):
    """Successful pipeline result. `matched` is False when the lyric came from the fallback pool."""
    lyric: str
    matched: bool
