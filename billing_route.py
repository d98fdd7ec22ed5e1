# billing_route.py
import logging
from typing import List, Optional, Tuple
from datetime import date, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, col

from auth import CurrentUser, get_current_user, require_admin
from db import get_session
from errors import Conflict, NotFound, ValidationError
from invoicing import (
  days_overdue, generate_monthly_invoices, invoice_total, next_invoice_number, overdue_invoices,
)
from models import (
  Customer, CustomerStatus, Invoice, InvoiceStatus, Package, PackageStatus, Payment, utcnow,
)
from schemas import (
  CustomerCreate, CustomerUpdate, InvoiceCreate, InvoiceRead, InvoiceStatusUpdate, InvoiceUpdate,
  PackageCreate, PackageRead, PackageUpdate, PaymentCreate, PaymentRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"], dependencies=[Depends(get_current_user)])

def _match(q: str, *values: Optional[str]) -> bool:
  ql = q.strip().lower()
  return any(ql in (v or "").lower() for v in values)

def _get_or_404(session: Session, model, obj_id: int, label: str):
  obj = session.get(model, obj_id)
  if not obj:
    raise NotFound(f"{label} not found")
  return obj

def _commit(session: Session, conflict_message: str) -> None:
  try:
    session.commit()
  except IntegrityError:
    session.rollback()
    raise Conflict(conflict_message)

# ==================== CUSTOMERS ====================

@router.get("/customers")
def list_customers(
  search: Optional[str] = None,
  status: Optional[CustomerStatus] = None,
  limit: int = Query(100, ge=1, le=1000),
  offset: int = Query(0, ge=0),
  session: Session = Depends(get_session),
):
  query = select(Customer)
  if status:
    query = query.where(Customer.status == status)
  rows = session.exec(query.order_by(col(Customer.created_at).desc(), col(Customer.id).desc())).all()
  if search and search.strip():
    rows = [r for r in rows if _match(search, r.name, r.email, r.phone)]
  return {"data": rows[offset:offset + limit], "total": len(rows), "limit": limit, "offset": offset}

@router.get("/customers/{customer_id}", response_model=Customer)
def get_customer(customer_id: int, session: Session = Depends(get_session)):
  return _get_or_404(session, Customer, customer_id, "Customer")

@router.post("/customers", status_code=201)
def create_customer(payload: CustomerCreate, session: Session = Depends(get_session)):
  if payload.package_id is not None:
    _get_or_404(session, Package, payload.package_id, "Package")
  customer = Customer(**payload.model_dump())
  session.add(customer)
  session.commit()
  session.refresh(customer)
  return {"message": "Customer created successfully", "data": customer}

@router.put("/customers/{customer_id}")
def update_customer(customer_id: int, payload: CustomerUpdate, session: Session = Depends(get_session)):
  customer = _get_or_404(session, Customer, customer_id, "Customer")
  data = payload.model_dump(exclude_unset=True)
  if data.get("package_id") is not None:
    _get_or_404(session, Package, data["package_id"], "Package")
  customer.sqlmodel_update(data)
  customer.updated_at = utcnow()
  session.add(customer)
  session.commit()
  session.refresh(customer)
  return {"message": "Customer updated successfully", "data": customer}

@router.delete("/customers/{customer_id}", dependencies=[Depends(require_admin)])
def delete_customer(customer_id: int, session: Session = Depends(get_session)):
  customer = _get_or_404(session, Customer, customer_id, "Customer")
  if session.exec(select(Invoice.id).where(Invoice.customer_id == customer_id)).first() is not None:
    raise Conflict("Customer has invoices and cannot be deleted")
  session.delete(customer)
  session.commit()
  logger.info(f"Deleted customer {customer_id}")
  return {"message": "Customer deleted successfully", "id": customer_id}

# ==================== PACKAGES ====================

def _subscriber_counts(session: Session) -> dict:
  rows = session.exec(
    select(Customer.package_id, func.count(Customer.id))
    .where(Customer.status == CustomerStatus.active)
    .where(col(Customer.package_id).is_not(None))
    .group_by(Customer.package_id)
  ).all()
  return {package_id: count for package_id, count in rows}

def _package_read(pkg: Package, counts: dict) -> PackageRead:
  return PackageRead.model_validate({**pkg.model_dump(), "subscriber_count": counts.get(pkg.id, 0)})

@router.get("/packages", response_model=List[PackageRead])
def list_packages(
  q: Optional[str] = None,
  status: Optional[PackageStatus] = None,
  session: Session = Depends(get_session),
):
  query = select(Package)
  if status:
    query = query.where(Package.status == status)
  rows = session.exec(query.order_by(col(Package.created_at).desc(), col(Package.id).desc())).all()
  if q and q.strip():
    rows = [r for r in rows if _match(q, r.name, r.speed, r.description)]
  counts = _subscriber_counts(session)
  return [_package_read(r, counts) for r in rows]

@router.get("/packages/{package_id}", response_model=PackageRead)
def get_package(package_id: int, session: Session = Depends(get_session)):
  pkg = _get_or_404(session, Package, package_id, "Package")
  return _package_read(pkg, _subscriber_counts(session))

@router.post("/packages", status_code=201, dependencies=[Depends(require_admin)])
def create_package(payload: PackageCreate, session: Session = Depends(get_session)):
  pkg = Package(**payload.model_dump())
  session.add(pkg)
  session.commit()
  session.refresh(pkg)
  return {"message": "Package created successfully", "data": _package_read(pkg, {})}

@router.put("/packages/{package_id}", dependencies=[Depends(require_admin)])
def update_package(package_id: int, payload: PackageUpdate, session: Session = Depends(get_session)):
  pkg = _get_or_404(session, Package, package_id, "Package")
  pkg.sqlmodel_update(payload.model_dump(exclude_unset=True))
  session.add(pkg)
  session.commit()
  session.refresh(pkg)
  return {"message": "Package updated successfully", "data": _package_read(pkg, _subscriber_counts(session))}

@router.delete("/packages/{package_id}", dependencies=[Depends(require_admin)])
def delete_package(package_id: int, session: Session = Depends(get_session)):
  pkg = _get_or_404(session, Package, package_id, "Package")
  if session.exec(select(Customer.id).where(Customer.package_id == package_id)).first() is not None:
    raise Conflict("Package is assigned to customers and cannot be deleted")
  if session.exec(select(Invoice.id).where(Invoice.package_id == package_id)).first() is not None:
    raise Conflict("Package has invoices and cannot be deleted")
  session.delete(pkg)
  session.commit()
  logger.info(f"Deleted package {package_id}")
  return {"message": "Package deleted successfully", "id": package_id}

# ==================== INVOICES ====================

InvoiceRow = Tuple[Invoice, Customer, Optional[Package]]

def _invoice_query():
  return (
    select(Invoice, Customer, Package)
    .join(Customer, Invoice.customer_id == Customer.id)
    .join(Package, Invoice.package_id == Package.id, isouter=True)
  )

def _invoice_read(invoice: Invoice, customer: Optional[Customer], package: Optional[Package],
                  today: Optional[date] = None) -> InvoiceRead:
  overdue_days = days_overdue(invoice, today)
  return InvoiceRead(
    **invoice.model_dump(),
    total=invoice_total(invoice.amount, invoice.discount),
    customer_name=customer.name if customer else None,
    email=customer.email if customer else None,
    package_name=package.name if package else None,
    days_overdue=overdue_days,
    is_overdue=overdue_days is not None,
  )

def _load_invoice(session: Session, invoice_id: int) -> InvoiceRow:
  row = session.exec(_invoice_query().where(Invoice.id == invoice_id)).first()
  if row is None:
    raise NotFound("Invoice not found")
  return row

@router.get("/invoices", response_model=List[InvoiceRead])
def list_invoices(
  q: Optional[str] = None,
  status: Optional[InvoiceStatus] = None,
  customer_id: Optional[int] = None,
  limit: int = Query(100, ge=1, le=1000),
  offset: int = Query(0, ge=0),
  session: Session = Depends(get_session),
):
  query = _invoice_query()
  if status:
    query = query.where(Invoice.status == status)
  if customer_id is not None:
    query = query.where(Invoice.customer_id == customer_id)
  rows = session.exec(query.order_by(col(Invoice.created_at).desc(), col(Invoice.id).desc())).all()
  if q and q.strip():
    rows = [r for r in rows if _match(q, r[0].invoice_number, r[1].name, r[1].email)]
  today = date.today()
  return [_invoice_read(inv, cust, pkg, today) for inv, cust, pkg in rows[offset:offset + limit]]

@router.get("/invoices/overdue")
def list_overdue_invoices(session: Session = Depends(get_session)):
  today = date.today()
  rows = session.exec(_invoice_query().where(Invoice.status == InvoiceStatus.unpaid)).all()
  related = {inv.id: (cust, pkg) for inv, cust, pkg in rows}
  overdue = overdue_invoices([inv for inv, _, _ in rows], today)
  data = [_invoice_read(inv, *related[inv.id], today) for inv in overdue]
  return {"data": data, "count": len(data), "total_amount": sum((d.total for d in data), Decimal("0"))}

@router.post("/invoices/generate-monthly", dependencies=[Depends(require_admin)])
def generate_invoices(session: Session = Depends(get_session)):
  result = generate_monthly_invoices(session)
  return {"message": f"Generated {result['generated']} invoices", **result}

@router.get("/invoices/{invoice_id}", response_model=InvoiceRead)
def get_invoice(invoice_id: int, session: Session = Depends(get_session)):
  return _invoice_read(*_load_invoice(session, invoice_id))

@router.post("/invoices/create", status_code=201)
def create_invoice(payload: InvoiceCreate, session: Session = Depends(get_session)):
  customer = _get_or_404(session, Customer, payload.customer_id, "Customer")
  package = _get_or_404(session, Package, payload.package_id, "Package")

  amount = payload.amount if payload.amount is not None else package.price
  if payload.discount > amount:
    raise ValidationError("Discount cannot exceed the invoice amount")

  number = payload.invoice_number or next_invoice_number(session)
  if session.exec(select(Invoice.id).where(Invoice.invoice_number == number)).first() is not None:
    raise Conflict("Invoice number already exists")

  invoice = Invoice(
    invoice_number=number,
    customer_id=customer.id,
    package_id=package.id,
    amount=amount,
    discount=payload.discount,
    discount_note=payload.discount_note,
    due_date=payload.due_date,
    status=InvoiceStatus.unpaid,
  )
  session.add(invoice)
  _commit(session, "Invoice number already exists")
  session.refresh(invoice)
  return {"message": "Invoice created successfully", "data": _invoice_read(invoice, customer, package)}

@router.put("/invoices/{invoice_id}")
def update_invoice(invoice_id: int, payload: InvoiceUpdate, session: Session = Depends(get_session)):
  invoice, customer, package = _load_invoice(session, invoice_id)
  data = payload.model_dump(exclude_unset=True)
  if "package_id" in data:
    package = None
    if data["package_id"] is not None:
      package = _get_or_404(session, Package, data["package_id"], "Package")
  invoice.sqlmodel_update(data)
  if invoice.discount > invoice.amount:
    session.rollback()
    raise ValidationError("Discount cannot exceed the invoice amount")
  session.add(invoice)
  session.commit()
  session.refresh(invoice)
  return {"message": "Invoice updated successfully", "data": _invoice_read(invoice, customer, package)}

@router.put("/invoices/{invoice_id}/status")
def update_invoice_status(invoice_id: int, payload: InvoiceStatusUpdate, session: Session = Depends(get_session)):
  invoice, customer, package = _load_invoice(session, invoice_id)
  invoice.status = payload.status
  session.add(invoice)
  session.commit()
  session.refresh(invoice)
  return {"message": "Invoice status updated successfully", "data": _invoice_read(invoice, customer, package)}

@router.delete("/invoices/{invoice_id}", dependencies=[Depends(require_admin)])
def delete_invoice(invoice_id: int, session: Session = Depends(get_session)):
  invoice = _get_or_404(session, Invoice, invoice_id, "Invoice")
  if session.exec(select(Payment.id).where(Payment.invoice_id == invoice_id)).first() is not None:
    raise Conflict("Invoice has payments and cannot be deleted")
  number = invoice.invoice_number
  session.delete(invoice)
  session.commit()
  logger.info(f"Deleted invoice {number}")
  return {"message": "Invoice deleted successfully", "id": invoice_id}

# ==================== PAYMENTS ====================

def _payment_read(payment: Payment, invoice: Optional[Invoice], customer: Optional[Customer]) -> PaymentRead:
  return PaymentRead(
    **payment.model_dump(),
    invoice_number=invoice.invoice_number if invoice else None,
    customer_name=customer.name if customer else None,
    customer_email=customer.email if customer else None,
  )

def _payment_query():
  return (
    select(Payment, Invoice, Customer)
    .join(Invoice, Payment.invoice_id == Invoice.id)
    .join(Customer, Invoice.customer_id == Customer.id)
  )

@router.get("/payments", response_model=List[PaymentRead])
def list_payments(invoice_id: Optional[int] = None, session: Session = Depends(get_session)):
  query = _payment_query()
  if invoice_id is not None:
    query = query.where(Payment.invoice_id == invoice_id)
  rows = session.exec(query.order_by(col(Payment.payment_date).desc(), col(Payment.id).desc())).all()
  return [_payment_read(*row) for row in rows]

@router.get("/payments/{payment_id}", response_model=PaymentRead)
def get_payment(payment_id: int, session: Session = Depends(get_session)):
  row = session.exec(_payment_query().where(Payment.id == payment_id)).first()
  if row is None:
    raise NotFound("Payment not found")
  return _payment_read(*row)

@router.post("/payments", status_code=201)
def create_payment(
  payload: PaymentCreate,
  session: Session = Depends(get_session),
  user: CurrentUser = Depends(get_current_user),
):
  invoice = _get_or_404(session, Invoice, payload.invoice_id, "Invoice")
  if invoice.status == InvoiceStatus.paid:
    raise Conflict("Invoice is already paid")

  paid_at = payload.payment_date or utcnow()
  if paid_at.tzinfo is not None:
    paid_at = paid_at.astimezone(timezone.utc).replace(tzinfo=None)

  payment = Payment(
    invoice_id=invoice.id,
    amount=payload.amount,
    payment_method=payload.payment_method,
    notes=payload.notes,
    payment_date=paid_at,
  )
  session.add(payment)
  if payload.mark_paid:
    invoice.status = InvoiceStatus.paid
    session.add(invoice)
  session.commit()
  session.refresh(payment)
  logger.info(f"{user.username} recorded payment {payment.id} on {invoice.invoice_number}")

  customer = session.get(Customer, invoice.customer_id)
  return {"message": "Payment recorded successfully", "data": _payment_read(payment, invoice, customer)}

@router.delete("/payments/{payment_id}", dependencies=[Depends(require_admin)])
def delete_payment(payment_id: int, session: Session = Depends(get_session)):
  payment = _get_or_404(session, Payment, payment_id, "Payment")
  session.delete(payment)
  session.commit()
  return {"message": "Payment deleted successfully", "id": payment_id}
