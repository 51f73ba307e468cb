from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, StrictStr


class AskRequest(BaseModel):
    """Body of POST /api/ask. Unknown fields are ignored."""
    question: StrictStr = Field(..., min_length=1)


class AskResponse(BaseModel):
    lyric: str


class ErrorResponse(BaseModel):
    """
    Error body for every non-200 answer.
    - `retryAfter` is only present on 429 answers (seconds until a slot frees up).
    """
    error: str
    retry_after: Optional[int] = Field(default=None, alias="retryAfter")

    model_config = ConfigDict(
        populate_by_name=True,
    )


class HealthResponse(BaseModel):
    status: str
    service: str
    # Presence flags only; configuration values are never echoed.
    dependencies: dict
