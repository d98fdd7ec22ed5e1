# invoicing.py
"""
Invoice bookkeeping shared by the billing routes and the dashboard.

The overdue classification lives here and only here: an invoice is overdue
when its stored status is ``unpaid`` and its due date lies before today, both
taken at day precision. It is computed on read and never written back to the
invoice status.
"""

import calendar
import logging
from typing import Dict, Iterable, List, Optional
from datetime import date
from decimal import Decimal

from sqlmodel import Session, select, col

from models import Customer, CustomerStatus, Invoice, InvoiceStatus, Package, PackageStatus

logger = logging.getLogger(__name__)

def invoice_total(amount: Decimal, discount: Optional[Decimal]) -> Decimal:
  return max(Decimal("0"), Decimal(amount) - Decimal(discount or 0))

def days_overdue(invoice: Invoice, today: Optional[date] = None) -> Optional[int]:
  if invoice.status != InvoiceStatus.unpaid:
    return None
  today = today or date.today()
  days = (today - invoice.due_date).days
  return days if days > 0 else None

def is_overdue(invoice: Invoice, today: Optional[date] = None) -> bool:
  return days_overdue(invoice, today) is not None

def overdue_invoices(invoices: Iterable[Invoice], today: Optional[date] = None) -> List[Invoice]:
  """Overdue invoices, most overdue first."""
  today = today or date.today()
  found = [inv for inv in invoices if is_overdue(inv, today)]
  return sorted(found, key=lambda inv: (inv.due_date, inv.id or 0))

def invoice_prefix(today: date) -> str:
  return f"INV-{today:%Y%m}-"

def next_invoice_number(session: Session, today: Optional[date] = None) -> str:
  prefix = invoice_prefix(today or date.today())
  numbers = session.exec(
    select(Invoice.invoice_number).where(col(Invoice.invoice_number).startswith(prefix))
  ).all()
  last = max((int(n[len(prefix):]) for n in numbers if n[len(prefix):].isdigit()), default=0)
  return f"{prefix}{last + 1:04d}"

def clamp_due_date(year: int, month: int, day: int) -> date:
  # Jan 31 billing day becomes Feb 28/29
  return date(year, month, min(day, calendar.monthrange(year, month)[1]))

def generate_monthly_invoices(session: Session, today: Optional[date] = None) -> Dict[str, int]:
  """
  Bill every active customer on an active package once for the month.

  A customer already holding an invoice due inside the month is skipped, so
  running this twice in the same month is harmless. The due date falls on the
  customer's signup day-of-month.
  """
  today = today or date.today()
  month_start = today.replace(day=1)
  month_end = clamp_due_date(today.year, today.month, 31)

  rows = session.exec(
    select(Customer, Package)
    .join(Package, Customer.package_id == Package.id)
    .where(Customer.status == CustomerStatus.active)
    .where(Package.status == PackageStatus.active)
  ).all()

  generated = 0
  skipped = 0
  for customer, package in rows:
    existing = session.exec(
      select(Invoice.id)
      .where(Invoice.customer_id == customer.id)
      .where(Invoice.due_date >= month_start)
      .where(Invoice.due_date <= month_end)
    ).first()
    if existing is not None:
      skipped += 1
      continue

    invoice = Invoice(
      invoice_number=next_invoice_number(session, today),
      customer_id=customer.id,
      package_id=package.id,
      amount=package.price,
      due_date=clamp_due_date(today.year, today.month, customer.created_at.day),
    )
    session.add(invoice)
    session.flush()
    logger.info(f"Generated invoice {invoice.invoice_number} for {customer.name} (due {invoice.due_date})")
    generated += 1

  session.commit()
  logger.info(f"Monthly invoice run: {generated} generated, {skipped} skipped")
  return {"generated": generated, "skipped": skipped}
