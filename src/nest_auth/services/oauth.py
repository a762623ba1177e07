"""Google OAuth 2.0 client: authorization URL and code-for-profile exchange."""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from nest_auth.config import settings
from nest_auth.core.exceptions import Unauthenticated

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = ("openid", "profile", "email")


@dataclass
class OAuthProfile:
    """Provider profile, shaped like a passport profile (``emails`` list)."""

    provider_id: str
    emails: list[dict[str, Any]] = field(default_factory=list)
    display_name: str | None = None

    @property
    def first_email(self) -> str | None:
        """First email entry, verified or not."""
        if not self.emails:
            return None
        return self.emails[0].get("value")


class GoogleOAuthClient:
    """Talks to Google's OAuth endpoints over httpx."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id if client_id is not None else settings.google_auth_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.google_auth_client_secret
        )
        self.redirect_uri = redirect_uri or settings.google_auth_redirect_uri
        self.timeout = timeout
        self.transport = transport

    def authorization_url(self, state: str | None = None) -> str:
        """
        Build the login-initiation URL.

        ``prompt=select_account`` makes Google show the account chooser on
        every login instead of silently reusing a provider session.
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "prompt": "select_account",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> OAuthProfile:
        """
        Exchange an authorization code for the user's profile.

        Args:
            code: Authorization code from the callback

        Returns:
            Provider profile

        Raises:
            Unauthenticated: If the provider rejects the code or is unreachable
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise Unauthenticated("Google authentication failed")

                profile_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
                data = profile_response.json()
        except httpx.HTTPError as exc:
            logger.warning(
                "Google OAuth exchange failed",
                extra={"error_type": type(exc).__name__},
            )
            raise Unauthenticated("Google authentication failed") from exc

        emails = []
        if data.get("email"):
            emails.append({"value": data["email"], "verified": bool(data.get("email_verified"))})
        return OAuthProfile(
            provider_id=str(data.get("sub", "")),
            emails=emails,
            display_name=data.get("name"),
        )
