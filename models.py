# models.py
from enum import Enum
from typing import Any, Optional
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field

def utcnow() -> datetime:
  # naive UTC, the same shape every backend hands back
  return datetime.now(timezone.utc).replace(tzinfo=None)

class UserRole(str, Enum):
  admin = "admin"
  staff = "staff"

class UserStatus(str, Enum):
  active = "active"
  inactive = "inactive"

class CustomerStatus(str, Enum):
  active = "active"
  inactive = "inactive"
  suspended = "suspended"

class PackageStatus(str, Enum):
  active = "active"
  inactive = "inactive"

class InvoiceStatus(str, Enum):
  unpaid = "unpaid"
  paid = "paid"
  overdue = "overdue"

class User(SQLModel, table=True):
  __tablename__ = "users"

  id: Optional[int] = Field(default=None, primary_key=True)
  username: str = Field(index=True, unique=True)
  email: str = Field(index=True, unique=True)
  full_name: Optional[str] = None
  password: str  # bcrypt hash
  role: UserRole = UserRole.staff
  status: UserStatus = UserStatus.active
  last_login: Optional[datetime] = None
  created_at: datetime = Field(default_factory=utcnow)
  updated_at: datetime = Field(default_factory=utcnow)

class AuthSession(SQLModel, table=True):
  __tablename__ = "sessions"

  id: Optional[int] = Field(default=None, primary_key=True)
  user_id: int = Field(foreign_key="users.id", index=True)
  token: str = Field(index=True, unique=True)
  ip_address: Optional[str] = None
  user_agent: Optional[str] = None
  expires_at: datetime
  created_at: datetime = Field(default_factory=utcnow)

class Package(SQLModel, table=True):
  __tablename__ = "packages"

  id: Optional[int] = Field(default=None, primary_key=True)
  name: str
  speed: str  # "50 Mbps"
  price: Decimal = Field(max_digits=12, decimal_places=2)  # monthly
  description: Optional[str] = None
  status: PackageStatus = PackageStatus.active
  created_at: datetime = Field(default_factory=utcnow)

class Customer(SQLModel, table=True):
  __tablename__ = "customers"

  id: Optional[int] = Field(default=None, primary_key=True)
  name: str = Field(index=True)
  email: str = Field(index=True)
  phone: Optional[str] = None
  address: Optional[str] = None
  installation_address: Optional[str] = None
  package_id: Optional[int] = Field(default=None, foreign_key="packages.id", index=True)
  status: CustomerStatus = CustomerStatus.active
  created_at: datetime = Field(default_factory=utcnow)
  updated_at: datetime = Field(default_factory=utcnow)

class Invoice(SQLModel, table=True):
  __tablename__ = "invoices"

  id: Optional[int] = Field(default=None, primary_key=True)
  invoice_number: str = Field(index=True, unique=True)  # INV-202401-0001
  customer_id: int = Field(foreign_key="customers.id", index=True)
  package_id: Optional[int] = Field(default=None, foreign_key="packages.id")
  amount: Decimal = Field(max_digits=12, decimal_places=2)
  discount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
  discount_note: Optional[str] = None
  due_date: date
  status: InvoiceStatus = InvoiceStatus.unpaid
  created_at: datetime = Field(default_factory=utcnow)

class Payment(SQLModel, table=True):
  __tablename__ = "payments"

  id: Optional[int] = Field(default=None, primary_key=True)
  invoice_id: int = Field(foreign_key="invoices.id", index=True)
  amount: Decimal = Field(max_digits=12, decimal_places=2)
  payment_method: str  # cash|transfer|ewallet|...
  payment_date: datetime = Field(default_factory=utcnow)
  notes: Optional[str] = None
  created_at: datetime = Field(default_factory=utcnow)

class Setting(SQLModel, table=True):
  __tablename__ = "settings"

  id: Optional[int] = Field(default=None, primary_key=True)
  key: str = Field(index=True, unique=True)
  value: Any = Field(default=None, sa_column=Column(JSON))
  type: str
  updated_at: datetime = Field(default_factory=utcnow)
