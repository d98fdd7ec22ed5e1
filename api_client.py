# api_client.py
"""
HTTP client for the billing API.

The client owns an explicit ``ApiSession`` rather than reading a token from
global state. Any 401 or 403 on an authenticated call drops that session,
the same as a full logout; the login call itself is exempt. Nothing is
retried.
"""

import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

class View(str, Enum):
  dashboard = "dashboard"
  customers = "customers"
  packages = "packages"
  invoices = "invoices"
  payments = "payments"
  settings = "settings"

@dataclass
class ApiSession:
  token: str
  user: Dict[str, Any] = field(default_factory=dict)

class ApiError(Exception):
  def __init__(self, status_code: int, error: Optional[str], message: Optional[str]):
    self.status_code = status_code
    self.error = error or "HTTPError"
    self.message = message or ""
    super().__init__(f"{status_code} {self.error}: {self.message}")

class BillingClient:
  def __init__(self, http: httpx.Client, session: Optional[ApiSession] = None):
    self.http = http
    self.session = session

  @classmethod
  def connect(cls, base_url: str, timeout: float = 30.0, session: Optional[ApiSession] = None) -> "BillingClient":
    return cls(httpx.Client(base_url=base_url, timeout=timeout), session)

  @property
  def authenticated(self) -> bool:
    return self.session is not None

  def _request(self, method: str, path: str, authenticated: bool = True, **kwargs) -> Any:
    headers = kwargs.pop("headers", {})
    if authenticated and self.session:
      headers["Authorization"] = f"Bearer {self.session.token}"

    r = self.http.request(method, f"/api{path}", headers=headers, **kwargs)
    if r.status_code >= 400:
      try:
        body = r.json()
      except ValueError:
        body = {}
      if not isinstance(body, dict):
        body = {}
      if authenticated and r.status_code in (401, 403):
        logger.info(f"{method} {path} rejected with {r.status_code}, dropping session")
        self.session = None
      raise ApiError(r.status_code, body.get("error"), body.get("message"))
    return r.json()

  # ---------- auth ----------

  def login(self, username: str, password: str) -> ApiSession:
    data = self._request("POST", "/auth/login", authenticated=False,
                         json={"username": username, "password": password})
    self.session = ApiSession(token=data["token"], user=data["user"])
    return self.session

  def logout(self) -> None:
    try:
      self._request("POST", "/auth/logout")
    finally:
      self.session = None

  def verify(self) -> Dict[str, Any]:
    return self._request("GET", "/auth/verify")["user"]

  def me(self) -> Dict[str, Any]:
    return self._request("GET", "/auth/me")["user"]

  def change_password(self, current_password: str, new_password: str) -> None:
    self._request("POST", "/auth/change-password",
                  json={"currentPassword": current_password, "newPassword": new_password})
    # the server revoked every session for this user
    self.session = None

  # ---------- customers ----------

  def list_customers(self, search: Optional[str] = None, status: Optional[str] = None,
                     limit: int = 100, offset: int = 0) -> Dict[str, Any]:
    params = {"limit": limit, "offset": offset}
    if search:
      params["search"] = search
    if status:
      params["status"] = status
    return self._request("GET", "/customers", params=params)

  def get_customer(self, customer_id: int) -> Dict[str, Any]:
    return self._request("GET", f"/customers/{customer_id}")

  def create_customer(self, **fields) -> Dict[str, Any]:
    return self._request("POST", "/customers", json=fields)["data"]

  def update_customer(self, customer_id: int, **fields) -> Dict[str, Any]:
    return self._request("PUT", f"/customers/{customer_id}", json=fields)["data"]

  def delete_customer(self, customer_id: int) -> None:
    self._request("DELETE", f"/customers/{customer_id}")

  # ---------- packages ----------

  def list_packages(self) -> List[Dict[str, Any]]:
    return self._request("GET", "/packages")

  def create_package(self, **fields) -> Dict[str, Any]:
    return self._request("POST", "/packages", json=fields)["data"]

  def update_package(self, package_id: int, **fields) -> Dict[str, Any]:
    return self._request("PUT", f"/packages/{package_id}", json=fields)["data"]

  def delete_package(self, package_id: int) -> None:
    self._request("DELETE", f"/packages/{package_id}")

  # ---------- invoices ----------

  def list_invoices(self, status: Optional[str] = None, q: Optional[str] = None) -> List[Dict[str, Any]]:
    params = {}
    if status:
      params["status"] = status
    if q:
      params["q"] = q
    return self._request("GET", "/invoices", params=params)

  def overdue_invoices(self) -> Dict[str, Any]:
    return self._request("GET", "/invoices/overdue")

  def create_invoice(self, **fields) -> Dict[str, Any]:
    return self._request("POST", "/invoices/create", json=fields)["data"]

  def update_invoice_status(self, invoice_id: int, status: str) -> Dict[str, Any]:
    return self._request("PUT", f"/invoices/{invoice_id}/status", json={"status": status})["data"]

  def delete_invoice(self, invoice_id: int) -> None:
    self._request("DELETE", f"/invoices/{invoice_id}")

  def generate_monthly_invoices(self) -> Dict[str, Any]:
    return self._request("POST", "/invoices/generate-monthly")

  # ---------- payments ----------

  def list_payments(self) -> List[Dict[str, Any]]:
    return self._request("GET", "/payments")

  def record_payment(self, invoice_id: int, amount, payment_method: str, notes: Optional[str] = None,
                     mark_paid: bool = False) -> Dict[str, Any]:
    payload = {
      "invoice_id": invoice_id,
      "amount": str(amount),
      "payment_method": payment_method,
      "notes": notes,
      "mark_paid": mark_paid,
    }
    return self._request("POST", "/payments", json=payload)["data"]

  # ---------- settings ----------

  def get_settings(self) -> Dict[str, Any]:
    return self._request("GET", "/settings")["settings"]

  def put_setting(self, key: str, value: Any, type: str) -> Dict[str, Any]:
    return self._request("PUT", f"/settings/{key}", json={"value": value, "type": type})["setting"]

  def delete_setting(self, key: str) -> None:
    self._request("DELETE", f"/settings/{key}")

  def reset_settings(self) -> Dict[str, Any]:
    return self._request("POST", "/settings/reset")["settings"]

  def export_backup(self) -> Dict[str, Any]:
    return self._request("GET", "/settings/export/backup")["backup"]

  def import_backup(self, backup: Dict[str, Any]) -> None:
    self._request("POST", "/settings/import/restore", json={"backup": backup})

  # ---------- dashboard ----------

  def dashboard(self) -> Dict[str, Any]:
    return {
      "stats": self._request("GET", "/dashboard/stats"),
      "recent_activity": self._request("GET", "/dashboard/recent-activity"),
      "revenue_chart": self._request("GET", "/dashboard/revenue-chart"),
      "customer_growth": self._request("GET", "/dashboard/customer-growth"),
      "package_distribution": self._request("GET", "/dashboard/package-distribution"),
      "overdue": self.overdue_invoices(),
    }

  def load_view(self, view: View) -> Dict[str, Any]:
    """Fetch everything one screen shows."""
    if view is View.dashboard:
      return self.dashboard()
    if view is View.customers:
      return {"customers": self.list_customers(), "packages": self.list_packages()}
    if view is View.packages:
      return {"packages": self.list_packages()}
    if view is View.invoices:
      return {
        "invoices": self.list_invoices(),
        "customers": self.list_customers(),
        "packages": self.list_packages(),
      }
    if view is View.payments:
      return {"payments": self.list_payments(), "invoices": self.list_invoices(status="unpaid")}
    if view is View.settings:
      return {"settings": self.get_settings()}
    raise ValueError(f"Unknown view: {view!r}")
