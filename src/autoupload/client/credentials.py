"""Bearer token providers for remote calls.

This module provides:
- CredentialProvider: Protocol implemented by token sources
- StaticCredentialProvider: Token read from configuration
- AuthError: Raised when no token can be obtained
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "AUTOUPLOAD_TOKEN"


class AuthError(Exception):
    """No bearer token is available."""


class CredentialProvider(Protocol):
    """Supplies the bearer token used to authenticate remote calls."""

    def get_bearer_token(self) -> str:
        """Return a token or raise AuthError."""
        ...


class StaticCredentialProvider:
    """Returns a fixed token, falling back to the AUTOUPLOAD_TOKEN variable."""

    def __init__(self, token: str | None = None, env_var: str = TOKEN_ENV_VAR) -> None:
        self._token = token
        self._env_var = env_var

    def get_bearer_token(self) -> str:
        token = self._token or os.environ.get(self._env_var)
        if not token:
            raise AuthError(
                f"No auth token configured (set one with 'autoupload configure' or {self._env_var})"
            )
        return token
