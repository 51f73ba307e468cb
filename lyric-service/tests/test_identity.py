import pytest

from app.domain.identity import resolve_client_identity
from app.domain.models import UNKNOWN_CLIENT


@pytest.mark.parametrize(
    "header, expected",
    [
        ("203.0.113.7", "203.0.113.7"),
        ("203.0.113.7, 10.0.0.1, 10.0.0.2", "203.0.113.7"),
        ("  198.51.100.4  ,10.0.0.1", "198.51.100.4"),
        (None, UNKNOWN_CLIENT),
        ("", UNKNOWN_CLIENT),
        (" , 10.0.0.1", UNKNOWN_CLIENT),
    ],
)
def test_resolve_client_identity(header, expected):
    assert resolve_client_identity(header) == expected
