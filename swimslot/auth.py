import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import SESSION_TTL_MINUTES
from .database import get_db
from .models import AuthSession, User
from .shared.timeutils import utcnow

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """Who is calling, resolved from the bearer token for one request"""

    token: str
    user_id: str
    name: str
    email: str
    is_admin: bool
    expires_at: datetime


def open_session(db: Session, user: User, ttl_minutes: int = SESSION_TTL_MINUTES) -> AuthSession:
    """Issue a new bearer session for a verified user"""
    session = AuthSession(
        token=secrets.token_urlsafe(32),
        user_id=user.id,
        expires_at=utcnow() + timedelta(minutes=ttl_minutes),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(f"Session opened for user {user.id} (expires {session.expires_at.isoformat()})")
    return session


def revoke_session(db: Session, token: str) -> bool:
    session = db.query(AuthSession).filter(AuthSession.token == token).first()
    if not session or session.revoked_at is not None:
        return False
    session.revoked_at = utcnow()
    db.commit()
    logger.info(f"Session revoked for user {session.user_id}")
    return True


def resolve_session(db: Session, token: str) -> Optional[SessionContext]:
    """Return the context for a live token, or None if unknown, expired or revoked"""
    session = db.query(AuthSession).filter(AuthSession.token == token).first()
    if not session:
        return None
    if session.revoked_at is not None:
        logger.debug(f"Rejected revoked session for user {session.user_id}")
        return None
    if session.expires_at <= utcnow():
        logger.debug(f"Rejected expired session for user {session.user_id}")
        return None

    user = session.user
    return SessionContext(
        token=session.token,
        user_id=user.id,
        name=user.name,
        email=user.email,
        is_admin=bool(user.is_admin),
        expires_at=session.expires_at,
    )


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> SessionContext:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    context = resolve_session(db, credentials.credentials)
    if context is None:
        raise HTTPException(status_code=401, detail="Session expired or invalid")
    return context


async def get_current_user(
    context: SessionContext = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == context.user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def require_admin(context: SessionContext = Depends(get_current_session)) -> SessionContext:
    if not context.is_admin:
        logger.warning(f"Non-admin user {context.user_id} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return context
