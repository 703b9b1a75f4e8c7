"""
Authentication module for the Forsee AI gateway.

Handles bearer-token validation, server-held roles, and the auth facade that
wraps the identity provider.
"""
import re
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from forsee_ai.config import (
    get_firebase_project_id, get_http_timeout, get_jwks_url, get_jwt_algorithm, get_jwt_public_key
)
from forsee_ai.schemas.auth import AuthSession, User
from forsee_ai.services.identity import IdentityClient, map_user

ROLES = ("admin", "engineer", "viewer")
DEFAULT_ROLE = "viewer"

# Used when the key endpoint sends no Cache-Control max-age
DEFAULT_KEYS_MAX_AGE = 3600
# An unknown kid triggers at most one refetch per interval
MIN_KEYS_REFRESH_SECONDS = 60
MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

SessionListener = Callable[[Optional[User]], None]


class AuthError(Exception):
    """Custom exception for authentication errors."""
    def __init__(self, message: str, status_code: int = 401):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class SigningKeySet:
    """
    The identity provider's published token signing keys, looked up by kid.

    Keys are cached for the max-age the endpoint advertises. A kid that is not
    in the cache forces a refetch, since the provider rotates its keys.
    """

    def __init__(self, url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.http_client = http_client
        self._keys: Dict[str, Dict[str, Any]] = {}
        self._expires_at = 0.0
        self._fetched_at: Optional[float] = None

    async def _fetch(self, url: str) -> httpx.Response:
        if self.http_client is not None:
            response = await self.http_client.get(url)
        else:
            async with httpx.AsyncClient(timeout=get_http_timeout()) as client:
                response = await client.get(url)
        response.raise_for_status()
        return response

    async def refresh(self) -> None:
        url = self.url if self.url is not None else get_jwks_url()
        if not url:
            return
        response = await self._fetch(url)
        self._keys = {key["kid"]: key for key in response.json().get("keys", []) if key.get("kid")}

        now = time.monotonic()
        match = MAX_AGE_PATTERN.search(response.headers.get("cache-control", ""))
        self._fetched_at = now
        self._expires_at = now + (int(match.group(1)) if match else DEFAULT_KEYS_MAX_AGE)

    def _should_refresh(self, kid: str) -> bool:
        now = time.monotonic()
        if now >= self._expires_at:
            return True
        return kid not in self._keys and now - self._fetched_at >= MIN_KEYS_REFRESH_SECONDS

    async def get_key(self, kid: str) -> Optional[Dict[str, Any]]:
        """Return the JWK for kid, or None if the provider does not publish it."""
        if self._should_refresh(kid):
            try:
                await self.refresh()
            except (httpx.HTTPError, ValueError) as e:
                print(f"Failed to fetch signing keys: {type(e).__name__}: {str(e)}")
        return self._keys.get(kid)


# Global signing key set
signing_keys = SigningKeySet()


def decode_token(token: str, key: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Verify a bearer token and return its claims.

    With a JWK the token is checked against that key; otherwise against the
    configured static key. The audience and issuer are checked only when
    FIREBASE_PROJECT_ID is set.
    """
    if key is not None:
        verification_key, algorithms = key, [key.get("alg", "RS256")]
    else:
        verification_key, algorithms = get_jwt_public_key(), [get_jwt_algorithm()]

    project_id = get_firebase_project_id()
    kwargs = {}
    if project_id:
        kwargs["audience"] = project_id
        kwargs["issuer"] = f"https://securetoken.google.com/{project_id}"
    return jwt.decode(
        token,
        verification_key,
        algorithms=algorithms,
        options={"verify_aud": bool(project_id)},
        **kwargs
    )


async def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify a token signed either by the identity provider or with the static key.

    Provider tokens name their signing key in the 'kid' header; tokens without
    a kid, or with one the provider does not publish, use the static key.
    """
    kid = jwt.get_unverified_header(token).get("kid")
    key = await signing_keys.get_key(kid) if kid else None
    return decode_token(token, key)

def unverified_claims(token: str) -> Dict[str, Any]:
    """Read claims from a token just issued by the identity provider."""
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return {}


class SessionObserver:
    """Subscription point for sign-in/sign-out events."""

    def __init__(self):
        self._listeners: List[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, user: Optional[User]) -> None:
        for listener in list(self._listeners):
            listener(user)


class RoleStore:
    """
    Server-held user roles.

    Roles resolve from the store first, then from the token's 'role' claim,
    then default to viewer. Only admins may assign roles.
    """

    def __init__(self):
        self._roles: Dict[str, str] = {}
        self.pending_requests: Dict[str, str] = {}

    def get_role(self, user_id: Optional[str], claims: Optional[Dict[str, Any]] = None) -> Optional[str]:
        if not user_id:
            return None
        if user_id in self._roles:
            return self._roles[user_id]
        claimed = (claims or {}).get("role")
        if claimed in ROLES:
            return claimed
        return DEFAULT_ROLE

    def set_role(self, actor_role: Optional[str], user_id: str, role: str) -> str:
        if actor_role != "admin":
            raise PermissionError("Only admins can assign roles")
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        self._roles[user_id] = role
        self.pending_requests.pop(user_id, None)
        return role

    def request_role(self, user_id: str, role: str) -> str:
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        self.pending_requests[user_id] = role
        return role


class AuthFacade:
    """
    Simplified login/signup/logout and role access over the identity provider.

    Owned by the application and handed to route handlers; sign-in and
    sign-out events are published through the session observer.
    """

    def __init__(
        self,
        identity_client: Optional[IdentityClient] = None,
        role_store: Optional[RoleStore] = None,
        observer: Optional[SessionObserver] = None,
    ):
        self.identity_client = identity_client or IdentityClient()
        self.role_store = role_store or RoleStore()
        self.observer = observer or SessionObserver()

    def _start_session(self, account: Dict[str, Any]) -> AuthSession:
        user = map_user(account)
        id_token = account["idToken"]
        session = AuthSession(
            user=user,
            role=self.role_store.get_role(user.id, unverified_claims(id_token)),
            idToken=id_token,
            refreshToken=account.get("refreshToken"),
        )
        self.observer.notify(user)
        return session

    async def login(self, email: str, password: str) -> AuthSession:
        account = await self.identity_client.sign_in_with_password(email, password)
        return self._start_session(account)

    async def signup(self, name: str, email: str, password: str) -> AuthSession:
        account = await self.identity_client.sign_up(name, email, password)
        return self._start_session(account)

    async def login_with_google(self, google_id_token: str) -> AuthSession:
        account = await self.identity_client.sign_in_with_google(google_id_token)
        return self._start_session(account)

    def logout(self, user: Optional[User] = None) -> None:
        # Tokens are held by the client; signing out only publishes the change
        if user is not None:
            print(f"User {user.email or user.id} signed out")
        self.observer.notify(None)

    def get_role(self, user: Optional[User], claims: Optional[Dict[str, Any]] = None) -> Optional[str]:
        return self.role_store.get_role(user.id if user else None, claims)

    def set_role(self, actor: User, actor_claims: Dict[str, Any], user_id: str, role: str) -> str:
        return self.role_store.set_role(self.get_role(actor, actor_claims), user_id, role)

    def request_role(self, user: User, role: str) -> str:
        self.role_store.request_role(user.id, role)
        print(f"User {user.email or user.id} requested role {role}")
        return role


def get_auth_facade(request: Request) -> AuthFacade:
    return request.app.state.auth_facade


async def _claims_from_credentials(credentials: HTTPAuthorizationCredentials) -> Dict[str, Any]:
    try:
        claims = await verify_token(credentials.credentials)
        if not (claims.get("user_id") or claims.get("sub")):
            raise AuthError("Token missing user id claim")
        return claims
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except AuthError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except RuntimeError as e:
        # Token verification key is not configured
        raise HTTPException(status_code=500, detail=str(e))


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """
    Verify the bearer token and return the caller's claims.

    Raises:
        HTTPException: If the token is invalid or missing a user id
    """
    return await _claims_from_credentials(credentials)


async def get_current_user(claims: Dict[str, Any] = Depends(get_token_claims)) -> User:
    return map_user(claims)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> Optional[str]:
    """Raw bearer token, if any, for forwarding to upstream services."""
    return credentials.credentials if credentials else None
