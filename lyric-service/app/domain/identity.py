# lyric-service/app/domain/identity.py
from typing import Optional

from app.domain.models import UNKNOWN_CLIENT


def resolve_client_identity(forwarded_for: Optional[str]) -> str:
    """
    Derives the rate-limit identity from an X-Forwarded-For header value.

    The first comma-separated token is the originating client. Callers without
    a usable header all share the "unknown" bucket.
    """
    if not isinstance(forwarded_for, str):
        return UNKNOWN_CLIENT
    first = forwarded_for.split(",")[0].strip()
    return first or UNKNOWN_CLIENT
