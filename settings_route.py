# settings_route.py
import copy
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy import delete
from sqlmodel import Session, select

from auth import CurrentUser, get_current_user
from config import APP_VERSION
from db import get_session
from errors import NotFound
from models import Setting, utcnow
from schemas import BackupDocument, RestoreRequest, SettingUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"], dependencies=[Depends(get_current_user)])

# key -> (type, value)
DEFAULT_SETTINGS = {
  "general_settings": ("general", {
    "companyName": "ISP Billing Co.",
    "companyEmail": "admin@ispbilling.com",
    "companyPhone": "+62 812 3456 7890",
    "companyAddress": "Jl. Teknologi No. 123, Jakarta",
    "currency": "IDR",
    "timezone": "Asia/Jakarta",
    "language": "id",
    "dateFormat": "DD/MM/YYYY",
    "timeFormat": "24h",
  }),
  "notification_settings": ("notifications", {
    "emailNotifications": True,
    "smsNotifications": False,
    "pushNotifications": True,
    "overdueReminders": True,
    "paymentConfirmations": True,
    "newCustomerAlerts": True,
    "invoiceGeneration": True,
    "systemUpdates": False,
  }),
  "backup_settings": ("backup", {
    "autoBackup": True,
    "backupFrequency": "daily",
    "backupTime": "02:00",
    "dataRetention": 365,
    "includeAttachments": True,
    "compressBackups": True,
  }),
}

def _setting_dict(row: Setting) -> dict:
  return {"key": row.key, "value": row.value, "type": row.type, "updated_at": row.updated_at}

def _replace_all(session: Session, rows: List[Setting]) -> None:
  session.exec(delete(Setting))
  session.add_all(rows)
  session.commit()

@router.get("")
def list_settings(session: Session = Depends(get_session)):
  rows = session.exec(select(Setting).order_by(Setting.key)).all()
  return {
    "success": True,
    "settings": {r.key: {"value": r.value, "type": r.type, "updated_at": r.updated_at} for r in rows},
  }

@router.post("/reset")
def reset_settings(session: Session = Depends(get_session), user: CurrentUser = Depends(get_current_user)):
  defaults = {key: copy.deepcopy(value) for key, (_, value) in DEFAULT_SETTINGS.items()}
  _replace_all(session, [
    Setting(key=key, value=defaults[key], type=kind) for key, (kind, _) in DEFAULT_SETTINGS.items()
  ])
  logger.info(f"Settings reset to defaults by {user.username}")
  return {"success": True, "message": "Settings reset to defaults successfully", "settings": defaults}

@router.get("/export/backup")
def export_backup(session: Session = Depends(get_session), user: CurrentUser = Depends(get_current_user)):
  grouped: Dict[str, Dict[str, object]] = {}
  for row in session.exec(select(Setting).order_by(Setting.key)).all():
    grouped.setdefault(row.type, {})[row.key] = row.value
  backup = BackupDocument(
    timestamp=utcnow(),
    version=APP_VERSION,
    settings=grouped,
    user={"username": user.username, "email": user.email, "role": user.role},
  )
  return {"success": True, "backup": backup}

@router.post("/import/restore")
def import_restore(
  payload: RestoreRequest,
  session: Session = Depends(get_session),
  user: CurrentUser = Depends(get_current_user),
):
  rows = [
    Setting(key=key, value=value, type=kind)
    for kind, group in payload.backup.settings.items()
    for key, value in group.items()
  ]
  _replace_all(session, rows)
  logger.info(f"Restored {len(rows)} settings from backup {payload.backup.timestamp} by {user.username}")
  return {"success": True, "message": "Settings restored successfully", "restored": len(rows)}

@router.get("/{key}")
def get_setting(key: str, session: Session = Depends(get_session)):
  row = session.exec(select(Setting).where(Setting.key == key)).first()
  if not row:
    raise NotFound("Setting not found")
  return {"success": True, "setting": _setting_dict(row)}

@router.put("/{key}")
def put_setting(key: str, payload: SettingUpdate, session: Session = Depends(get_session)):
  row = session.exec(select(Setting).where(Setting.key == key)).first()
  if row is None:
    row = Setting(key=key, value=payload.value, type=payload.type)
  else:
    row.value = payload.value
    row.type = payload.type
    row.updated_at = utcnow()
  session.add(row)
  session.commit()
  session.refresh(row)
  return {"success": True, "message": "Setting saved successfully", "setting": _setting_dict(row)}

@router.delete("/{key}")
def delete_setting(key: str, session: Session = Depends(get_session)):
  row = session.exec(select(Setting).where(Setting.key == key)).first()
  if not row:
    raise NotFound("Setting not found")
  session.delete(row)
  session.commit()
  return {"success": True, "message": "Setting deleted successfully"}
