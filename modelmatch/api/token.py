"""Access-token acquisition via the OAuth2 client-credentials grant."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from modelmatch.api.schemas import TokenResponse
from modelmatch.config import settings
from modelmatch.errors import AuthenticationError

logger = logging.getLogger(__name__)

_SCOPE = "tenantApp roles"

# Refresh a little before the provider's stated expiry.
_EXPIRY_MARGIN_SECONDS = 60


@dataclass
class AccessToken:
    value: str
    expires_at: float

    def is_valid(self, now: float | None = None) -> bool:
        return bool(self.value) and (now or time.time()) < self.expires_at


def request_token(
    client_id: str | None = None,
    client_secret: str | None = None,
    provider_url: str | None = None,
) -> AccessToken:
    """Request a fresh access token from the identity provider.

    Raises:
        AuthenticationError: If credentials are missing or the provider
            rejects them.
    """
    client_id = client_id or settings.client_id
    client_secret = client_secret or settings.client_secret
    provider_url = provider_url or settings.identity_provider_url

    if not provider_url:
        raise AuthenticationError(
            "No identity provider configured (set MODELMATCH_IDENTITY_PROVIDER_URL)"
        )
    if not client_id or not client_secret:
        raise AuthenticationError(
            "Client credentials are missing (set MODELMATCH_CLIENT_ID and MODELMATCH_CLIENT_SECRET)"
        )

    logger.debug("Requesting a new access token from %s", provider_url)
    try:
        with httpx.Client(timeout=settings.request_timeout) as client:
            response = client.post(
                provider_url,
                data={"grant_type": "client_credentials", "scope": _SCOPE},
                auth=(client_id, client_secret),
                headers={"cache-control": "no-cache"},
            )
            response.raise_for_status()
            payload = TokenResponse.model_validate(response.json())
    except httpx.HTTPStatusError as exc:
        raise AuthenticationError(
            f"Identity provider rejected the credentials (HTTP {exc.response.status_code})"
        ) from exc
    except (httpx.HTTPError, ValueError, ValidationError) as exc:
        raise AuthenticationError(f"Failed to obtain an access token: {exc}") from exc

    expires_at = time.time() + max(payload.expires_in - _EXPIRY_MARGIN_SECONDS, 0)
    return AccessToken(value=payload.access_token, expires_at=expires_at)
