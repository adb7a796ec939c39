"""Google OAuth 2.0 authorization-code flow over httpx."""

import logging
import re
import secrets
import unicodedata
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.exceptions.auth import OAuthError

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

MAX_GENERATED_USERNAME = 45


def _clean_name(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = re.sub(r"[._-]", " ", stripped)
    stripped = re.sub(r"[^A-Za-z0-9\s]", "", stripped)
    return re.sub(r"\s+", " ", stripped).strip()


def generate_username(display_name: str | None, email: str) -> str:
    """Readable username from the Google profile name, else the email local part.

    Leaves room for a `` 999`` suffix when the name is already taken.
    """
    username = _clean_name(display_name or "")
    if len(username) < 3:
        username = _clean_name(email.split("@")[0])
    if len(username) < 3:
        username = "User"

    username = " ".join(word[:1].upper() + word[1:].lower() for word in username.split(" "))
    return username[:MAX_GENERATED_USERNAME].strip()


def new_state() -> str:
    return secrets.token_urlsafe(24)


class GoogleOAuthClient:
    """Builds the consent URL, exchanges the code and fetches the profile."""

    def __init__(self, http_client: httpx.AsyncClient | None = None):
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.redirect_uri = settings.google_callback_url
        self._client = http_client

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTHORIZE_URL}?{urlencode(params)}"

    async def fetch_profile(self, code: str) -> dict:
        """Exchange ``code`` for an access token and return the userinfo payload.

        Raises:
            OAuthError: Google rejected the code or the profile has no email
        """
        client = self._client or httpx.AsyncClient(timeout=15)
        try:
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
            if token_response.status_code != 200:
                logger.error(f"❌ Google token exchange failed: {token_response.status_code}")
                raise OAuthError("Google token exchange failed")

            access_token = token_response.json().get("access_token")
            profile_response = await client.get(
                GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
            )
            if profile_response.status_code != 200:
                logger.error(f"❌ Google userinfo failed: {profile_response.status_code}")
                raise OAuthError("Google profile request failed")
        except httpx.HTTPError as e:
            logger.error(f"❌ Google OAuth transport error: {e}")
            raise OAuthError("Google sign-in unavailable", status_code=502) from e
        finally:
            if self._client is None:
                await client.aclose()

        profile = profile_response.json()
        if not profile.get("email") or not profile.get("sub"):
            raise OAuthError("No email provided by Google")
        return profile
