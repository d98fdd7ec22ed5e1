# schemas.py
from typing import Annotated, Any, Dict, Optional
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator

from models import (
  CustomerStatus, InvoiceStatus, PackageStatus, UserRole, UserStatus,
)

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Money = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]

INVOICE_NUMBER_PATTERN = r"^INV-\d{6}-\d{4,}$"

def _not_null(v):
  # omitted means unchanged, an explicit null would clear a NOT NULL column
  if v is None:
    raise ValueError("must not be null")
  return v

# ---------- auth ----------

class LoginRequest(BaseModel):
  username: NonEmptyStr
  password: str = Field(min_length=1)

class ChangePasswordRequest(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  current_password: str = Field(alias="currentPassword", min_length=1)
  new_password: str = Field(alias="newPassword", min_length=8)

class UserProfile(BaseModel):
  model_config = ConfigDict(from_attributes=True)

  id: int
  username: str
  email: str
  full_name: Optional[str] = None
  role: UserRole
  status: UserStatus
  last_login: Optional[datetime] = None
  created_at: datetime

# ---------- customers ----------

class CustomerCreate(BaseModel):
  name: NonEmptyStr
  email: NonEmptyStr
  phone: Optional[str] = None
  address: Optional[str] = None
  installation_address: Optional[str] = None
  package_id: Optional[int] = None
  status: CustomerStatus = CustomerStatus.active

class CustomerUpdate(BaseModel):
  name: Optional[NonEmptyStr] = None
  email: Optional[NonEmptyStr] = None
  phone: Optional[str] = None
  address: Optional[str] = None
  installation_address: Optional[str] = None
  package_id: Optional[int] = None
  status: Optional[CustomerStatus] = None

  @field_validator("name", "email", "status")
  @classmethod
  def not_null(cls, v):
    return _not_null(v)

# ---------- packages ----------

class PackageCreate(BaseModel):
  name: NonEmptyStr
  speed: NonEmptyStr
  price: Money
  description: Optional[str] = None
  status: PackageStatus = PackageStatus.active

class PackageUpdate(BaseModel):
  name: Optional[NonEmptyStr] = None
  speed: Optional[NonEmptyStr] = None
  price: Optional[Money] = None
  description: Optional[str] = None
  status: Optional[PackageStatus] = None

  @field_validator("name", "speed", "price", "status")
  @classmethod
  def not_null(cls, v):
    return _not_null(v)

class PackageRead(BaseModel):
  model_config = ConfigDict(from_attributes=True)

  id: int
  name: str
  speed: str
  price: Decimal
  description: Optional[str] = None
  status: PackageStatus
  created_at: datetime
  subscriber_count: int = 0

# ---------- invoices ----------

class InvoiceCreate(BaseModel):
  customer_id: int
  package_id: int
  due_date: date
  amount: Optional[Money] = None  # defaults to the package price
  invoice_number: Optional[str] = Field(default=None, pattern=INVOICE_NUMBER_PATTERN)
  discount: Decimal = Field(default=Decimal("0"), ge=0)
  discount_note: Optional[str] = None

class InvoiceUpdate(BaseModel):
  package_id: Optional[int] = None
  amount: Optional[Money] = None
  discount: Optional[Decimal] = Field(default=None, ge=0)
  discount_note: Optional[str] = None
  due_date: Optional[date] = None
  status: Optional[InvoiceStatus] = None

  @field_validator("amount", "discount", "due_date", "status")
  @classmethod
  def not_null(cls, v):
    return _not_null(v)

class InvoiceStatusUpdate(BaseModel):
  status: InvoiceStatus

class InvoiceRead(BaseModel):
  id: int
  invoice_number: str
  customer_id: int
  package_id: Optional[int] = None
  amount: Decimal
  discount: Decimal
  discount_note: Optional[str] = None
  total: Decimal
  due_date: date
  status: InvoiceStatus
  created_at: datetime
  customer_name: Optional[str] = None
  email: Optional[str] = None
  package_name: Optional[str] = None
  days_overdue: Optional[int] = None
  is_overdue: bool = False

# ---------- payments ----------

class PaymentCreate(BaseModel):
  invoice_id: int
  amount: Money
  payment_method: NonEmptyStr
  notes: Optional[str] = None
  payment_date: Optional[datetime] = None
  mark_paid: bool = False  # also flip the invoice to paid

class PaymentRead(BaseModel):
  id: int
  invoice_id: int
  amount: Decimal
  payment_method: str
  payment_date: datetime
  notes: Optional[str] = None
  created_at: datetime
  invoice_number: Optional[str] = None
  customer_name: Optional[str] = None
  customer_email: Optional[str] = None

# ---------- settings ----------

class SettingUpdate(BaseModel):
  value: Any
  type: NonEmptyStr

  @field_validator("value")
  @classmethod
  def value_required(cls, v):
    if v is None:
      raise ValueError("value is required")
    return v

class BackupUser(BaseModel):
  username: str
  email: Optional[str] = None
  role: Optional[UserRole] = None

class BackupDocument(BaseModel):
  timestamp: datetime
  version: str
  settings: Dict[str, Dict[str, Any]]  # type -> {key: value}
  user: Optional[BackupUser] = None

  @model_validator(mode="after")
  def unique_keys(self):
    seen = set()
    for group in self.settings.values():
      for key in group:
        if key in seen:
          raise ValueError(f"Duplicate setting key '{key}'")
        seen.add(key)
    return self

class RestoreRequest(BaseModel):
  backup: BackupDocument
