"""
Dependencies for FastAPI injection.
Includes JWT authentication and the service factories used by the routes.
"""

from datetime import datetime

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from siteadmin.config import settings
from siteadmin.context import ActorContext
from siteadmin.database import get_db
from siteadmin.models import TokenBlacklist
from siteadmin.services.ai_settings import AISettingsStore
from siteadmin.services.blog import PostRepository
from siteadmin.services.chat_history import ChatHistoryStore

# Bearer authentication scheme
security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> ActorContext:
    """
    Validate JWT token and return the acting admin.
    Checks:
    - Valid token
    - Token not expired
    - Token not in blacklist
    """
    token = credentials.credentials

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except JWTError:
        raise credentials_exception

    jti = payload.get("jti")
    exp = payload.get("exp")

    if jti is None:
        raise credentials_exception

    blacklisted = db.query(TokenBlacklist).filter(TokenBlacklist.jti == jti).first()
    if blacklisted:
        raise credentials_exception

    if exp and datetime.utcnow().timestamp() > exp:
        raise credentials_exception

    try:
        actor_id = int(payload.get("sub", settings.admin_actor_id))
    except (TypeError, ValueError):
        raise credentials_exception

    return ActorContext(actor_id=actor_id, token_id=jti)


def get_post_repository(db: Session = Depends(get_db)) -> PostRepository:
    return PostRepository(
        db, keep_original_publish_date=settings.blog_keep_original_publish_date
    )


def get_ai_settings_store() -> AISettingsStore:
    return AISettingsStore(settings.ai_settings_path)


def get_chat_store(actor: ActorContext = Depends(get_current_user)) -> ChatHistoryStore:
    return ChatHistoryStore.for_user(
        settings.chat_history_dir,
        actor.actor_id,
        max_entries=settings.chat_history_max_entries,
    )
