# security.py
"""
Password hashing and signed session tokens.

Passwords are stored as bcrypt hashes. Tokens are HS256 JWTs carrying the
user id, username and role plus a random ``jti`` so two logins in the same
second never collide in the session table.
"""

import secrets
import logging
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from config import JWT_SECRET, JWT_ALGORITHM, SESSION_TTL_HOURS, BCRYPT_ROUNDS
from errors import InvalidToken, TokenExpired

logger = logging.getLogger(__name__)

def hash_password(password: str) -> str:
  salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
  return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

def verify_password(password: str, hashed_password: str) -> bool:
  try:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
  except ValueError as e:
    # malformed hash in the users table
    logger.warning(f"Password hash check failed: {e}")
    return False

def issue_token(payload: Dict[str, Any], expires_in: Optional[timedelta] = None) -> str:
  """
  Sign a session token.

  Args:
    payload: claims to embed (userId, username, role)
    expires_in: lifetime, defaults to SESSION_TTL_HOURS

  Returns:
    encoded JWT string
  """
  if expires_in is None:
    expires_in = timedelta(hours=SESSION_TTL_HOURS)
  now = datetime.now(timezone.utc)
  claims = dict(payload)
  claims["iat"] = now
  claims["exp"] = now + expires_in
  claims["jti"] = secrets.token_hex(16)
  return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)

def decode_token(token: str) -> Dict[str, Any]:
  """Verify signature and expiry; raises TokenExpired or InvalidToken."""
  try:
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
  except jwt.ExpiredSignatureError:
    raise TokenExpired()
  except jwt.InvalidTokenError as e:
    logger.warning(f"Invalid token: {e}")
    raise InvalidToken()
