"""
Authentication routes.
Single admin with password configured via .env
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import jwt
from sqlalchemy.orm import Session

from siteadmin.config import settings
from siteadmin.context import ActorContext
from siteadmin.database import get_db, transaction
from siteadmin.dependencies import get_current_user
from siteadmin.models import TokenBlacklist
from siteadmin.rate_limiter import limiter
from siteadmin.schemas import LoginRequest, LoginResponse, UserInfo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, body: LoginRequest):
    """
    Authenticate with password and return JWT token.
    Uses constant-time comparison to prevent timing attacks.
    """
    password_valid = secrets.compare_digest(
        body.password.encode("utf-8"), settings.app_password.encode("utf-8")
    )

    if not password_valid:
        logger.warning(f"Failed login attempt from {request.client.host if request.client else '?'}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    jti = str(uuid.uuid4())
    expires_at = datetime.utcnow() + timedelta(hours=settings.jwt_expiration_hours)

    payload = {
        "sub": str(settings.admin_actor_id),
        "jti": jti,
        "exp": expires_at,
        "iat": datetime.utcnow(),
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

    return LoginResponse(token=token, expires_at=expires_at)


@router.post("/logout")
def logout(
    actor: ActorContext = Depends(get_current_user), db: Session = Depends(get_db)
):
    """
    Invalidate token by adding jti to blacklist.
    """
    expires_at = datetime.utcnow() + timedelta(hours=settings.jwt_expiration_hours)

    with transaction(db):
        db.add(TokenBlacklist(jti=actor.token_id, expires_at=expires_at))

    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserInfo)
def get_me(actor: ActorContext = Depends(get_current_user)):
    """
    Return authentication status.
    """
    return UserInfo(authenticated=True, actor_id=actor.actor_id)
