# auth_route.py
import logging
from typing import Optional
from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from sqlalchemy import delete
from sqlmodel import Session, select

from auth import CurrentUser, bearer_token, get_current_user
from config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME, SESSION_TTL_HOURS
from db import get_session
from errors import InvalidCredentials, NotFound, ValidationError
from models import AuthSession, User, UserRole, UserStatus, utcnow
from schemas import ChangePasswordRequest, LoginRequest, UserProfile
from security import hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

def create_user(
  session: Session,
  username: str,
  password: str,
  email: str,
  role: UserRole = UserRole.staff,
  full_name: Optional[str] = None,
) -> User:
  user = User(
    username=username.strip().lower(),
    email=email,
    full_name=full_name,
    password=hash_password(password),
    role=role,
    status=UserStatus.active,
  )
  session.add(user)
  session.commit()
  session.refresh(user)
  return user

def ensure_admin_user(session: Session) -> bool:
  # Seed only if the admin account is missing
  exists = session.exec(select(User).where(User.username == ADMIN_USERNAME)).first()
  if exists:
    logger.info("Admin user verified")
    return False
  create_user(session, ADMIN_USERNAME, ADMIN_PASSWORD, ADMIN_EMAIL, role=UserRole.admin, full_name="Administrator")
  logger.warning(f"Admin user '{ADMIN_USERNAME}' created, change its password")
  return True

@router.post("/login")
def login(payload: LoginRequest, request: Request, session: Session = Depends(get_session)):
  username = payload.username.lower()
  user = session.exec(
    select(User).where(User.username == username).where(User.status == UserStatus.active)
  ).first()
  if not user or not verify_password(payload.password, user.password):
    logger.warning(f"Failed login for '{username}'")
    raise InvalidCredentials()

  token = issue_token({"userId": user.id, "username": user.username, "role": user.role.value})
  now = utcnow()
  session.add(AuthSession(
    user_id=user.id,
    token=token,
    ip_address=request.client.host if request.client else None,
    user_agent=request.headers.get("user-agent", "Unknown"),
    expires_at=now + timedelta(hours=SESSION_TTL_HOURS),
  ))
  user.last_login = now
  session.add(user)
  session.commit()
  logger.info(f"User '{user.username}' logged in")

  return {
    "success": True,
    "message": "Login successful",
    "token": token,
    "user": {
      "id": user.id,
      "username": user.username,
      "email": user.email,
      "full_name": user.full_name,
      "role": user.role,
    },
  }

@router.post("/logout")
def logout(
  user: CurrentUser = Depends(get_current_user),
  token: str = Depends(bearer_token),
  session: Session = Depends(get_session),
):
  session.exec(delete(AuthSession).where(AuthSession.token == token))
  session.commit()
  logger.info(f"User '{user.username}' logged out")
  return {"success": True, "message": "Logout successful"}

@router.get("/verify")
def verify(user: CurrentUser = Depends(get_current_user)):
  return {"success": True, "valid": True, "user": user}

@router.get("/me")
def me(user: CurrentUser = Depends(get_current_user), session: Session = Depends(get_session)):
  row = session.get(User, user.id)
  if not row:
    raise NotFound("User not found")
  return {"success": True, "user": UserProfile.model_validate(row)}

@router.post("/change-password")
def change_password(
  payload: ChangePasswordRequest,
  user: CurrentUser = Depends(get_current_user),
  session: Session = Depends(get_session),
):
  row = session.get(User, user.id)
  if not row or not verify_password(payload.current_password, row.password):
    raise ValidationError("Invalid current password")

  row.password = hash_password(payload.new_password)
  row.updated_at = utcnow()
  session.add(row)
  # every session goes, including this one
  session.exec(delete(AuthSession).where(AuthSession.user_id == user.id))
  session.commit()
  logger.info(f"User '{user.username}' changed password, sessions revoked")
  return {"success": True, "message": "Password changed successfully. Please login again."}
