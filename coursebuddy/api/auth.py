"""
Hosted-auth login and token dependencies for FastAPI.

Students sign in with their CWL username, which maps to the account email
``{username}@cwl.ubc.ca`` on the hosted auth service. An unknown account is
created on first login. Bearer tokens are verified against the service's
user endpoint and mirrored into the local users table.
"""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Header, Request
from sqlalchemy import select

from coursebuddy.config import settings
from coursebuddy.models.database import User
from coursebuddy.api.deps import get_db_session_factory
from coursebuddy.api.rate_limit import auth_limit
from coursebuddy.api.schemas import (
    LoginRequest,
    LoginResponse,
    TutorialResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

INVALID_CREDENTIALS = "Invalid login credentials"


class AuthError(Exception):
    """Error answered by the hosted auth service."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthClient:
    """Minimal client for a GoTrue-compatible auth REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.auth_api_url or "").rstrip("/")
        self.api_key = api_key or settings.auth_api_key
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _headers(self, token: Optional[str] = None) -> dict:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> dict:
        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=settings.auth_timeout,
        ) as client:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(token),
                **kwargs,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            message = (
                data.get("error_description")
                or data.get("msg")
                or data.get("message")
                or data.get("error")
                or f"Auth service returned {response.status_code}"
            )
            raise AuthError(message, response.status_code)
        return data

    async def sign_in(self, email: str, password: str) -> dict:
        return await self._request(
            "POST", "/token", params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    async def sign_up(self, email: str, password: str, username: str) -> dict:
        return await self._request(
            "POST", "/signup",
            json={
                "email": email,
                "password": password,
                "data": {"username": username, "full_name": username},
            },
        )

    async def get_user(self, token: str) -> dict:
        return await self._request("GET", "/user", token=token)


_auth_client: Optional[AuthClient] = None


def get_auth_client() -> AuthClient:
    """Dependency to get the AuthClient instance."""
    global _auth_client
    if _auth_client is None:
        _auth_client = AuthClient()
    return _auth_client


def username_to_email(username: str) -> str:
    return f"{username}@{settings.auth_email_domain}"


# =============================================================================
# Token dependencies
# =============================================================================

async def verify_token(
    authorization: str = Header(...),
    auth_client: AuthClient = Depends(get_auth_client),
) -> dict:
    """
    Verify a bearer token and return the auth service's user record.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    token = authorization.replace("Bearer ", "")

    if not auth_client.configured:
        raise HTTPException(status_code=500, detail="Auth not configured")

    try:
        return await auth_client.get_user(token)
    except AuthError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    except httpx.HTTPError as e:
        logger.error(f"Auth service unreachable: {e}")
        raise HTTPException(status_code=503, detail="Auth service unavailable")


def sync_user(claims: dict, session_factory) -> User:
    """Find or create the local user for an auth service user record."""
    auth_id = claims.get("id") or claims.get("sub")
    if not auth_id:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    with session_factory() as session:
        user = session.execute(
            select(User).where(User.auth_id == auth_id)
        ).scalar_one_or_none()

        if not user:
            metadata = claims.get("user_metadata") or {}
            email = claims.get("email") or f"{auth_id}@{settings.auth_email_domain}"
            username = metadata.get("username") or email.split("@")[0]
            user = User(
                auth_id=auth_id,
                email=email,
                username=username,
                full_name=metadata.get("full_name") or username,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            logger.info(f"Created local user {user.id} for {username}")

        # Detach from session so it can be used after session closes
        session.expunge(user)
        return user


async def get_current_user(
    request: Request,
    claims: dict = Depends(verify_token),
    session_factory=Depends(get_db_session_factory),
) -> User:
    """Get current user from database based on the bearer token."""
    user = sync_user(claims, session_factory)
    # Rate limits key on the user once known
    request.state.user_id = user.id
    return user


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/login", response_model=LoginResponse)
@auth_limit
async def login(
    request: Request,
    body: LoginRequest,
    auth_client: AuthClient = Depends(get_auth_client),
):
    """
    Sign in with a CWL username and password.

    When the account does not exist yet it is created with the same
    credentials.
    """
    if not auth_client.configured:
        raise HTTPException(status_code=500, detail="Auth not configured")

    email = username_to_email(body.username)
    created = False

    try:
        session = await auth_client.sign_in(email, body.password)
    except AuthError as e:
        if INVALID_CREDENTIALS not in e.message:
            logger.warning(f"Sign-in failed for {body.username}: {e.message}")
            raise HTTPException(status_code=401, detail="Authentication failed")

        try:
            session = await auth_client.sign_up(email, body.password, body.username)
        except AuthError as signup_error:
            logger.error(f"Signup error for {body.username}: {signup_error.message}")
            raise HTTPException(
                status_code=400,
                detail=signup_error.message or "Unable to authenticate with CWL",
            )
        created = True
        logger.info(f"Provisioned account for {body.username}")
    except httpx.HTTPError as e:
        logger.error(f"Auth service unreachable: {e}")
        raise HTTPException(status_code=503, detail="Auth service unavailable")

    return LoginResponse(
        access_token=session.get("access_token"),
        refresh_token=session.get("refresh_token"),
        token_type=session.get("token_type") or "bearer",
        expires_in=session.get("expires_in"),
        created=created,
        message="CWL authentication successful",
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get the signed-in user's profile."""
    return UserResponse.model_validate(user)


@router.get("/tutorial", response_model=TutorialResponse)
async def get_tutorial_state(user: User = Depends(get_current_user)):
    return TutorialResponse(has_seen_tutorial=bool(user.has_seen_tutorial))


@router.post("/tutorial", response_model=TutorialResponse)
async def mark_tutorial_seen(
    user: User = Depends(get_current_user),
    session_factory=Depends(get_db_session_factory),
):
    """Record that the user finished or skipped the tutorial."""
    with session_factory() as session:
        db_user = session.get(User, user.id)
        db_user.has_seen_tutorial = True
        session.commit()
    return TutorialResponse(has_seen_tutorial=True)
