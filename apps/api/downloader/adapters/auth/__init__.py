"""Auth verifier adapters."""

from .base import AuthVerificationError, TokenVerifier
from .static_token import StaticTokenVerifier

__all__ = [
    "AuthVerificationError",
    "StaticTokenVerifier",
    "TokenVerifier",
]
