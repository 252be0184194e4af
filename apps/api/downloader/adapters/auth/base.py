"""Authentication provider interfaces."""

from abc import ABC, abstractmethod


class AuthVerificationError(Exception):
    """Raised when a bearer token is missing, wrong or cannot be checked."""


class TokenVerifier(ABC):
    """Provider-neutral token verification interface."""

    @abstractmethod
    def verify_token(self, token: str) -> None:
        """Raise :class:`AuthVerificationError` unless ``token`` is accepted."""


__all__ = ["AuthVerificationError", "TokenVerifier"]
