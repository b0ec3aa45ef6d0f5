"""Token authentication seam."""

from uuid import UUID, uuid4

import pytest

from fintrack_kernel.exceptions import UnauthenticatedError
from fintrack_services.auth import TokenVerifier, authenticate, token_from_header


class StaticVerifier:
    """Maps known tokens to subjects; anything else is rejected."""

    def __init__(self, tokens: dict):
        self._tokens = tokens

    def verify(self, token):
        return self._tokens.get(token)


@pytest.fixture
def known_user() -> UUID:
    return uuid4()


@pytest.fixture
def verifier(known_user):
    return StaticVerifier({
        "good": known_user,
        "as-string": str(known_user),
        "garbage-subject": "not-a-uuid",
    })


class TestAuthenticate:

    def test_verifier_satisfies_protocol(self, verifier):
        assert isinstance(verifier, TokenVerifier)

    def test_valid_token_returns_user_id(self, verifier, known_user):
        assert authenticate(verifier, "good") == known_user

    def test_string_subject_is_parsed(self, verifier, known_user):
        assert authenticate(verifier, " as-string ") == known_user

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_missing_token(self, verifier, token):
        with pytest.raises(UnauthenticatedError) as exc_info:
            authenticate(verifier, token)
        assert exc_info.value.http_status == 401
        assert exc_info.value.reason == "Missing token"

    def test_rejected_token(self, verifier):
        with pytest.raises(UnauthenticatedError) as exc_info:
            authenticate(verifier, "forged")
        assert exc_info.value.reason == "Invalid token"

    def test_malformed_subject(self, verifier):
        with pytest.raises(UnauthenticatedError):
            authenticate(verifier, "garbage-subject")


class TestTokenFromHeader:

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc.def", "abc.def"),
            ("bearer   abc", "abc"),
            ("abc", "abc"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_extracts_token(self, header, expected):
        assert token_from_header(header) == expected
