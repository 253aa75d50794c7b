"""Access token lookup for OCHAMI."""

import os

from .errors import InvalidArgumentError

TOKEN_ENV_VAR = "ACCESS_TOKEN"


def get_api_token() -> str:
    """Return the OCHAMI access token from the ACCESS_TOKEN environment variable."""
    token = os.getenv(TOKEN_ENV_VAR)
    if token is None:
        raise InvalidArgumentError(f"environment variable '{TOKEN_ENV_VAR}' not found")
    validate_api_token(token)
    return token


def validate_api_token(token: str) -> None:
    """Reject missing or blank tokens before they reach a request."""
    if not isinstance(token, str) or not token.strip():
        raise InvalidArgumentError("OCHAMI access token is empty")
