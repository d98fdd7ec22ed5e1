# dashboard.py
"""
Summary figures for the admin dashboard.

Every function here works on rows already loaded from the store, grouped by
calendar month in Python so the results are the same on PostgreSQL and
SQLite. Month series are zero-filled and oldest first.
"""

import calendar
from typing import Dict, Iterable, List, Optional, Tuple
from datetime import date, datetime
from decimal import Decimal

from invoicing import overdue_invoices
from models import Customer, CustomerStatus, Invoice, InvoiceStatus, Package, Payment

CHART_MONTHS = 6
RECENT_LIMIT = 5

def _day(value) -> date:
  return value.date() if isinstance(value, datetime) else value

def shift_month(d: date, months: int) -> date:
  """First day of the month ``months`` away from ``d``."""
  index = d.year * 12 + (d.month - 1) + months
  return date(index // 12, index % 12 + 1, 1)

def month_window(today: date, months: int = CHART_MONTHS) -> List[date]:
  return [shift_month(today, -offset) for offset in range(months - 1, -1, -1)]

def _month_key(value) -> Tuple[int, int]:
  d = _day(value)
  return (d.year, d.month)

def month_label(d: date, short_year: bool = False) -> str:
  year = f"{d.year % 100:02d}" if short_year else str(d.year)
  return f"{calendar.month_abbr[d.month]} {year}"

def monthly_revenue(payments: Iterable[Payment], today: date) -> Decimal:
  key = (today.year, today.month)
  return sum((Decimal(p.amount) for p in payments if _month_key(p.payment_date) == key), Decimal("0"))

def summary_stats(
  customers: List[Customer],
  packages: List[Package],
  invoices: List[Invoice],
  payments: Iterable[Payment],
  today: date,
) -> Dict[str, object]:
  return {
    "totalCustomers": len(customers),
    "totalPackages": len(packages),
    "monthlyRevenue": monthly_revenue(payments, today),
    "pendingInvoices": sum(1 for inv in invoices if inv.status == InvoiceStatus.unpaid),
    "overdueInvoices": len(overdue_invoices(invoices, today)),
  }

def revenue_series(payments: Iterable[Payment], today: date, months: int = CHART_MONTHS) -> List[dict]:
  window = month_window(today, months)
  totals = {(m.year, m.month): Decimal("0") for m in window}
  counts = {key: 0 for key in totals}
  for p in payments:
    key = _month_key(p.payment_date)
    if key in totals:
      totals[key] += Decimal(p.amount)
      counts[key] += 1
  return [
    {"label": month_label(m), "value": totals[(m.year, m.month)], "count": counts[(m.year, m.month)]}
    for m in window
  ]

def customer_growth_series(customers: Iterable[Customer], today: date, months: int = CHART_MONTHS) -> List[dict]:
  window = month_window(today, months)
  counts = {(m.year, m.month): 0 for m in window}
  for c in customers:
    key = _month_key(c.created_at)
    if key in counts:
      counts[key] += 1
  return [{"label": month_label(m, short_year=True), "value": counts[(m.year, m.month)]} for m in window]

def package_distribution(packages: Iterable[Package], customers: Iterable[Customer]) -> List[dict]:
  subscribers: Dict[int, int] = {}
  for c in customers:
    if c.package_id is not None and c.status == CustomerStatus.active:
      subscribers[c.package_id] = subscribers.get(c.package_id, 0) + 1
  rows = [
    {
      "label": p.name,
      "value": subscribers.get(p.id, 0),
      "speed": p.speed,
      "total_value": Decimal(p.price) * subscribers.get(p.id, 0),
    }
    for p in packages
  ]
  return sorted(rows, key=lambda r: r["value"], reverse=True)

def recent_activity(
  payments: Iterable[Tuple[Payment, Optional[Customer]]],
  customers: Iterable[Customer],
  limit: int = RECENT_LIMIT * 2,
) -> List[dict]:
  payment_items = [
    {
      "type": "payment",
      "customer_name": customer.name if customer else None,
      "amount": p.amount,
      "date": p.payment_date,
      "payment_method": p.payment_method,
    }
    for p, customer in sorted(payments, key=lambda row: row[0].payment_date, reverse=True)[:RECENT_LIMIT]
  ]
  customer_items = [
    {
      "type": "customer",
      "customer_name": c.name,
      "amount": Decimal("0"),
      "date": c.created_at,
      "status": c.status,
    }
    for c in sorted(customers, key=lambda c: c.created_at, reverse=True)[:RECENT_LIMIT]
  ]
  return sorted(payment_items + customer_items, key=lambda item: item["date"], reverse=True)[:limit]
