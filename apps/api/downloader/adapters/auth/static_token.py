"""Shared-secret bearer token verifier."""

from secrets import compare_digest

from downloader.adapters.auth.base import AuthVerificationError, TokenVerifier


class StaticTokenVerifier(TokenVerifier):
    """Accepts exactly one configured secret; rejects everything when none is configured."""

    def __init__(self, expected_token: str | None) -> None:
        self._expected_token = expected_token or None

    def verify_token(self, token: str) -> None:
        if self._expected_token is None:
            raise AuthVerificationError("Authentication is not configured")
        if not token or not compare_digest(token.encode("utf-8"), self._expected_token.encode("utf-8")):
            raise AuthVerificationError("Invalid bearer token")


__all__ = ["StaticTokenVerifier"]
