# dashboard_route.py
from datetime import date, datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from auth import get_current_user
from dashboard import (
  customer_growth_series, month_window, package_distribution, recent_activity, revenue_series,
  summary_stats,
)
from db import get_session
from models import Customer, Invoice, Package, Payment

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_user)])

def _window_start() -> datetime:
  return datetime.combine(month_window(date.today())[0], datetime.min.time())

@router.get("/stats")
def stats(session: Session = Depends(get_session)):
  today = date.today()
  month_start = datetime.combine(today.replace(day=1), datetime.min.time())
  return summary_stats(
    customers=session.exec(select(Customer)).all(),
    packages=session.exec(select(Package)).all(),
    invoices=session.exec(select(Invoice)).all(),
    payments=session.exec(select(Payment).where(Payment.payment_date >= month_start)).all(),
    today=today,
  )

@router.get("/revenue-chart")
def revenue_chart(session: Session = Depends(get_session)):
  payments = session.exec(select(Payment).where(Payment.payment_date >= _window_start())).all()
  return revenue_series(payments, date.today())

@router.get("/customer-growth")
def customer_growth(session: Session = Depends(get_session)):
  customers = session.exec(select(Customer).where(Customer.created_at >= _window_start())).all()
  return customer_growth_series(customers, date.today())

@router.get("/package-distribution")
def package_dist(session: Session = Depends(get_session)):
  return package_distribution(session.exec(select(Package)).all(), session.exec(select(Customer)).all())

@router.get("/recent-activity")
def recent(session: Session = Depends(get_session)):
  payments = session.exec(
    select(Payment, Customer)
    .join(Invoice, Payment.invoice_id == Invoice.id)
    .join(Customer, Invoice.customer_id == Customer.id)
  ).all()
  return recent_activity(payments, session.exec(select(Customer)).all())
