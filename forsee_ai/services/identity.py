"""
Identity provider client for the Forsee AI gateway.

Talks to the Firebase Authentication REST API for email/password login,
signup and Google sign-in, and maps provider accounts to application users.
"""
from typing import Any, Dict, Optional

import httpx

from forsee_ai.config import DEFAULT_AVATAR_URL, get_http_timeout, get_firebase_api_key
from forsee_ai.schemas.auth import User

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
GOOGLE_PROVIDER_ID = "google.com"


class IdentityError(Exception):
    """Error returned by the identity provider (e.g. EMAIL_EXISTS, INVALID_PASSWORD)."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def map_user(account: Dict[str, Any]) -> User:
    """
    Map an identity-provider account or token claims to an application user.

    Accepts both REST account payloads (localId, displayName, photoUrl) and
    ID token claims (user_id/sub, name, picture).
    """
    email = account.get("email") or ""
    name = account.get("displayName") or account.get("name") or email.split("@")[0] or "User"
    avatar = (
        account.get("photoUrl")
        or account.get("picture")
        or account.get("profilePicture")
        or DEFAULT_AVATAR_URL
    )
    return User(
        id=account.get("localId") or account.get("user_id") or account.get("sub") or "",
        name=name,
        email=email,
        avatarUrl=avatar,
    )


class IdentityClient:
    """Thin async wrapper over the Firebase Authentication REST endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = IDENTITY_TOOLKIT_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client

    @property
    def api_key(self) -> str:
        # Resolved lazily so the app can start before auth is configured
        return self._api_key or get_firebase_api_key()

    async def _post(self, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/accounts:{method}"
        params = {"key": self.api_key}
        if self.http_client is not None:
            response = await self.http_client.post(url, params=params, json=body)
        else:
            async with httpx.AsyncClient(timeout=get_http_timeout()) as client:
                response = await client.post(url, params=params, json=body)

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message") or response.text
            except ValueError:
                message = response.text
            raise IdentityError(message, response.status_code)
        return response.json()

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return await self._post("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })

    async def sign_up(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """Create the account, then set its display name."""
        account = await self._post("signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })
        profile = await self._post("update", {
            "idToken": account["idToken"],
            "displayName": name,
            "returnSecureToken": True
        })
        return {**account, **profile}

    async def sign_in_with_google(self, google_id_token: str, request_uri: str = "http://localhost") -> Dict[str, Any]:
        return await self._post("signInWithIdp", {
            "postBody": f"id_token={google_id_token}&providerId={GOOGLE_PROVIDER_ID}",
            "requestUri": request_uri,
            "returnIdpCredential": True,
            "returnSecureToken": True
        })
