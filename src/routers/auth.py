"""
Auth Router

Token issuance, refresh, validation and revocation.
Login and refresh sit behind the stricter ``auth`` rate limit tier.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import Claims, CredentialStore, TokenError, TokenManager, User, authenticate, pipeline_guards
from core.errors import AuthenticationError, ValidationError
from core.logger import get_logger
from routers.dependencies import get_credentials, get_token_manager

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class AuthRequest(BaseModel):
    username: str = ""
    password: str = ""


class RefreshRequest(BaseModel):
    refresh_token: str = ""


@router.post("/login", dependencies=pipeline_guards("auth", authenticated=False))
async def login(
    body: AuthRequest,
    credentials: CredentialStore = Depends(get_credentials),
    tokens: TokenManager = Depends(get_token_manager),
):
    """
    Authenticate with username/password and receive a token pair.

    Returns:
        {"success", "token", "refresh_token", "expires_in", "message", "user"}
    """
    if not body.username or not body.password:
        raise ValidationError("Username and password are required")

    if not credentials.verify(body.username, body.password):
        logger.warning(f"Failed login for {body.username}")
        raise AuthenticationError("Invalid credentials")

    pair = tokens.issue(body.username)
    user = User.from_claims(tokens.validate(pair.access_token))

    return {
        "success": True,
        "token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "expires_in": pair.expires_in,
        "message": "Authentication successful",
        "user": user.to_dict(),
    }


@router.post("/refresh", dependencies=pipeline_guards("auth", authenticated=False))
async def refresh(body: RefreshRequest, tokens: TokenManager = Depends(get_token_manager)):
    """Exchange a refresh token for a new token pair."""
    if not body.refresh_token:
        raise ValidationError("refresh_token is required")

    try:
        pair = tokens.refresh(body.refresh_token)
    except TokenError as e:
        logger.warning(f"Refresh rejected ({e.kind})")
        raise AuthenticationError("Invalid refresh token") from e

    return {
        "success": True,
        "token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "expires_in": pair.expires_in,
        "message": "Token refreshed successfully",
    }


@router.get("/validate", dependencies=pipeline_guards("global", authenticated=False))
async def validate(claims: Claims = Depends(authenticate)):
    """Return a summary of the bearer token's claims."""
    return {
        "valid": True,
        "user_id": claims.user_id,
        "username": claims.username,
        "role": claims.role.value,
        "expires": claims.expires_at,
        "issued_at": claims.issued_at,
    }


@router.post("/logout", dependencies=pipeline_guards("global"))
async def logout(claims: Claims = Depends(authenticate), tokens: TokenManager = Depends(get_token_manager)):
    """Revoke the presented token until its natural expiry."""
    tokens.revoke(claims)
    return {"success": True, "message": "Token revoked"}
