"""Credential fetching for the streaming endpoint."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ValidationError

from .config import StreamConfig
from .errors import AuthError
from .models import Token

logger = logging.getLogger(__name__)


class TokenResponse(BaseModel):
    token: str | None = None


class TokenProvider:
    """Fetch short-lived stream tokens from the credential endpoint.

    Holds the last good token for the session. Never retries; retry policy
    belongs to the connection manager and the user.
    """

    def __init__(
        self,
        cfg: StreamConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._cfg = cfg or StreamConfig()
        self._client = client
        self._owns_client = client is None
        self._token: Token | None = None

    @property
    def token(self) -> Token | None:
        return self._token

    def invalidate(self) -> None:
        """Forget the held token so the next start fetches a fresh one."""
        self._token = None

    async def fetch(self) -> Token:
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self._cfg.request_timeout)
        try:
            resp = await client.get(self._cfg.token_url)
        except httpx.HTTPError as exc:
            logger.warning("Token endpoint unreachable: %s", exc)
            raise AuthError("Failed to get authentication token for logs service") from exc
        finally:
            if self._owns_client:
                await client.aclose()

        if resp.status_code != 200:
            logger.warning("Token endpoint returned HTTP %s", resp.status_code)
            raise AuthError(
                f"Failed to get authentication token for logs service (HTTP {resp.status_code})"
            )

        try:
            payload = TokenResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            logger.warning("Invalid token response")
            raise AuthError("Invalid token response") from exc
        if not payload.token:
            logger.warning("Token response lacks a token")
            raise AuthError("Invalid token response")

        self._token = Token(value=payload.token)
        logger.info("JWT token fetched successfully")
        return self._token

