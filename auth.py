# auth.py
"""
Request authentication.

``get_current_user`` is the guard every protected route depends on: it
resolves the bearer token against the sessions table first, then checks the
token signature, then session expiry and account status. The identity it
returns is built from the stored user row, not from the token claims, so a
revoked session or a deactivated account is rejected even while the token
signature is still good.
"""

import logging
from typing import Optional
from datetime import datetime

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from sqlmodel import Session, select

from db import get_session
from errors import Unauthenticated, InvalidSession, Forbidden
from models import AuthSession, User, UserRole, UserStatus, utcnow
from security import decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

class CurrentUser(BaseModel):
  id: int
  username: str
  email: str
  role: UserRole

def bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
  if credentials is None or not credentials.credentials.strip():
    raise Unauthenticated()
  return credentials.credentials.strip()

def authenticate(session: Session, token: str, now: Optional[datetime] = None) -> CurrentUser:
  """
  Resolve a bearer token to the user behind its session.

  The sessions table is consulted before the signature on purpose: a token
  that is not on record is InvalidSession even when its signature verifies,
  so logout and password changes revoke a still-valid token. Do not move
  decode_token ahead of the lookup.
  """
  now = now or utcnow()
  row = session.exec(
    select(AuthSession, User)
    .join(User, AuthSession.user_id == User.id)
    .where(AuthSession.token == token)
  ).first()
  if row is None:
    raise InvalidSession()

  # raises InvalidToken / TokenExpired
  decode_token(token)

  auth_session, user = row
  if auth_session.expires_at <= now or user.status != UserStatus.active:
    raise InvalidSession()

  return CurrentUser(id=user.id, username=user.username, email=user.email, role=user.role)

def get_current_user(
  request: Request,
  token: str = Depends(bearer_token),
  session: Session = Depends(get_session),
) -> CurrentUser:
  user = authenticate(session, token)
  request.state.user = user
  return user

def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
  if user.role != UserRole.admin:
    logger.info(f"Forbidden: {user.username} ({user.role.value}) on an admin route")
    raise Forbidden()
  return user
