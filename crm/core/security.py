from __future__ import annotations

import logging
from typing import Any

import httpx
from jose import JWTError, jwt

from crm.core.config import Settings
from crm.core.errors import AuthFault

logger = logging.getLogger(__name__)


class SharedSecretVerifier:
    """Checks the token signature locally against the shared JWT secret."""

    def __init__(self, secret: str, algorithms: list[str], audience: str | None = None) -> None:
        self.secret = secret
        self.algorithms = algorithms
        self.audience = audience

    async def verify(self, token: str) -> dict[str, Any]:
        if not self.secret:
            raise AuthFault("Token verification is not configured")
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                options={"verify_aud": bool(self.audience)},
            )
        except JWTError as exc:
            raise AuthFault(f"Invalid token: {exc}") from exc

    async def aclose(self) -> None:
        return None


class IdentityProviderVerifier:
    """Asks the identity provider who the token belongs to."""

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def verify(self, token: str) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            response = await self._client.get(self.url, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Identity provider unreachable: %s", exc)
            raise AuthFault("Could not verify token with identity provider", status_code=401) from exc

        if response.status_code != 200:
            raise AuthFault("Invalid token")
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()


TokenVerifier = SharedSecretVerifier | IdentityProviderVerifier


def build_token_verifier(settings: Settings) -> TokenVerifier:
    if settings.auth_mode == "provider":
        if not settings.identity_provider_url:
            raise RuntimeError("IDENTITY_PROVIDER_URL is required when AUTH_MODE=provider")
        return IdentityProviderVerifier(
            settings.identity_provider_url,
            api_key=settings.identity_provider_api_key,
            timeout_seconds=settings.identity_provider_timeout_seconds,
        )
    return SharedSecretVerifier(settings.jwt_secret, settings.jwt_algorithms, settings.jwt_audience)
