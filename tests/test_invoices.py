import re
from datetime import date, timedelta
from decimal import Decimal

import pytest

from models import Invoice, InvoiceStatus, Payment

@pytest.fixture
def billed(make_customer, make_package):
  return make_customer(), make_package()

def _create(client, headers, customer, package, **fields):
  payload = {"customer_id": customer.id, "package_id": package.id, "due_date": "2024-02-15", **fields}
  return client.post("/api/invoices/create", headers=headers, json=payload)

class TestCreateInvoice:
  def test_amount_defaults_to_package_price(self, client, staff_headers, billed):
    customer, package = billed
    r = _create(client, staff_headers, customer, package)
    assert r.status_code == 201
    data = r.json()["data"]
    assert Decimal(data["amount"]) == Decimal("300000")
    assert data["status"] == "unpaid"
    assert data["customer_name"] == "Budi Santoso"
    assert data["package_name"] == "Home 50"

  def test_generated_numbers_are_sequential(self, client, staff_headers, billed):
    customer, package = billed
    first = _create(client, staff_headers, customer, package).json()["data"]["invoice_number"]
    second = _create(client, staff_headers, customer, package).json()["data"]["invoice_number"]

    prefix = f"INV-{date.today():%Y%m}-"
    assert re.match(r"^INV-\d{6}-\d{4}$", first)
    assert first == f"{prefix}0001"
    assert second == f"{prefix}0002"

  def test_explicit_amount_and_number(self, client, staff_headers, billed):
    customer, package = billed
    r = _create(client, staff_headers, customer, package, amount="250000", invoice_number="INV-202402-0042")
    data = r.json()["data"]
    assert data["invoice_number"] == "INV-202402-0042"
    assert Decimal(data["amount"]) == Decimal("250000")

  def test_duplicate_number(self, client, staff_headers, billed):
    customer, package = billed
    assert _create(client, staff_headers, customer, package, invoice_number="INV-202402-0001").status_code == 201
    r = _create(client, staff_headers, customer, package, invoice_number="INV-202402-0001")
    assert r.status_code == 409
    assert r.json()["error"] == "Conflict"

  @pytest.mark.parametrize("number", ["INV-2024-0001", "inv-202402-0001", "INV-202402-01", "202402-0001"])
  def test_bad_number_format(self, client, staff_headers, billed, number):
    customer, package = billed
    r = _create(client, staff_headers, customer, package, invoice_number=number)
    assert r.status_code == 400

  def test_missing_fields(self, client, staff_headers, billed):
    customer, _ = billed
    r = client.post("/api/invoices/create", headers=staff_headers, json={"customer_id": customer.id})
    assert r.status_code == 400
    assert r.json()["details"]

  def test_unknown_customer_or_package(self, client, staff_headers, billed):
    customer, package = billed
    r = client.post("/api/invoices/create", headers=staff_headers,
                    json={"customer_id": 999, "package_id": package.id, "due_date": "2024-02-15"})
    assert r.status_code == 404
    r = client.post("/api/invoices/create", headers=staff_headers,
                    json={"customer_id": customer.id, "package_id": 999, "due_date": "2024-02-15"})
    assert r.status_code == 404

  def test_discount(self, client, staff_headers, billed):
    customer, package = billed
    r = _create(client, staff_headers, customer, package, discount="50000", discount_note="loyalty")
    data = r.json()["data"]
    assert Decimal(data["total"]) == Decimal("250000")
    assert data["discount_note"] == "loyalty"

    r = _create(client, staff_headers, customer, package, discount="300001")
    assert r.status_code == 400

class TestInvoiceStatus:
  @pytest.mark.parametrize("start,target", [
    ("unpaid", "paid"),
    ("paid", "unpaid"),
    ("overdue", "paid"),
    ("paid", "overdue"),
  ])
  def test_any_transition_is_allowed(self, client, staff_headers, make_customer, make_invoice, start, target):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1), status=start)
    r = client.put(f"/api/invoices/{invoice.id}/status", headers=staff_headers, json={"status": target})
    assert r.status_code == 200
    assert r.json()["data"]["status"] == target

  def test_unknown_status(self, client, staff_headers, make_customer, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    r = client.put(f"/api/invoices/{invoice.id}/status", headers=staff_headers, json={"status": "void"})
    assert r.status_code == 400

  def test_missing_invoice(self, client, staff_headers):
    r = client.put("/api/invoices/999/status", headers=staff_headers, json={"status": "paid"})
    assert r.status_code == 404

class TestInvoiceReads:
  def test_list_marks_overdue(self, client, staff_headers, make_customer, make_invoice):
    customer = make_customer()
    today = date.today()
    late = make_invoice(customer, due_date=today - timedelta(days=3))
    due_today = make_invoice(customer, due_date=today)
    paid = make_invoice(customer, due_date=today - timedelta(days=30), status=InvoiceStatus.paid)

    r = client.get("/api/invoices", headers=staff_headers)
    rows = {row["id"]: row for row in r.json()}
    assert rows[late.id]["is_overdue"] is True
    assert rows[late.id]["days_overdue"] == 3
    assert rows[late.id]["status"] == "unpaid"
    assert rows[due_today.id]["is_overdue"] is False
    assert rows[paid.id]["is_overdue"] is False
    assert rows[paid.id]["days_overdue"] is None

  def test_list_filters(self, client, staff_headers, make_customer, make_invoice):
    budi = make_customer()
    sari = make_customer(name="Sari", email="sari@example.com")
    make_invoice(budi, due_date=date(2024, 1, 1))
    paid = make_invoice(sari, due_date=date(2024, 1, 1), status=InvoiceStatus.paid)

    r = client.get("/api/invoices", params={"status": "paid"}, headers=staff_headers)
    assert [row["id"] for row in r.json()] == [paid.id]

    r = client.get("/api/invoices", params={"customer_id": sari.id}, headers=staff_headers)
    assert [row["id"] for row in r.json()] == [paid.id]

    r = client.get("/api/invoices", params={"q": "SARI"}, headers=staff_headers)
    assert [row["customer_name"] for row in r.json()] == ["Sari"]

  def test_get_invoice(self, client, staff_headers, make_customer, make_package, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1), package=make_package())
    r = client.get(f"/api/invoices/{invoice.id}", headers=staff_headers)
    assert r.status_code == 200
    assert r.json()["invoice_number"] == invoice.invoice_number
    assert r.json()["package_name"] == "Home 50"

    assert client.get("/api/invoices/999", headers=staff_headers).status_code == 404

  def test_overdue_endpoint(self, client, staff_headers, make_customer, make_invoice):
    customer = make_customer()
    later = make_invoice(customer, due_date=date(2024, 1, 10), amount="200000")
    earlier = make_invoice(customer, due_date=date(2024, 1, 1), amount="100000")
    make_invoice(customer, due_date=date.today())
    make_invoice(customer, due_date=date(2023, 12, 1), status=InvoiceStatus.paid)

    r = client.get("/api/invoices/overdue", headers=staff_headers)
    assert r.status_code == 200
    body = r.json()
    assert [row["id"] for row in body["data"]] == [earlier.id, later.id]
    assert body["count"] == 2
    assert Decimal(str(body["total_amount"])) == Decimal("300000")
    assert all(row["customer_name"] == "Budi Santoso" for row in body["data"])

class TestInvoiceUpdateAndDelete:
  def test_partial_update(self, client, staff_headers, make_customer, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    r = client.put(f"/api/invoices/{invoice.id}", headers=staff_headers,
                   json={"due_date": "2024-01-20", "discount": "1000"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["due_date"] == "2024-01-20"
    assert Decimal(data["total"]) == Decimal("299000")

  @pytest.mark.parametrize("field", ["amount", "discount", "due_date", "status"])
  def test_update_rejects_null_required_field(self, client, session, staff_headers, make_customer,
                                              make_invoice, field):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    r = client.put(f"/api/invoices/{invoice.id}", headers=staff_headers, json={field: None})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"
    assert session.get(Invoice, invoice.id).amount == Decimal("300000")

  def test_update_can_detach_package(self, client, staff_headers, make_customer, make_package, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1), package=make_package())
    r = client.put(f"/api/invoices/{invoice.id}", headers=staff_headers, json={"package_id": None})
    assert r.status_code == 200
    assert r.json()["data"]["package_id"] is None
    assert r.json()["data"]["package_name"] is None

  def test_update_rejects_discount_over_amount(self, client, session, staff_headers, make_customer, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    r = client.put(f"/api/invoices/{invoice.id}", headers=staff_headers, json={"discount": "400000"})
    assert r.status_code == 400
    assert session.get(Invoice, invoice.id).discount == Decimal("0")

  def test_delete(self, client, session, admin_headers, make_customer, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    r = client.delete(f"/api/invoices/{invoice.id}", headers=admin_headers)
    assert r.status_code == 200
    assert session.get(Invoice, invoice.id) is None

  def test_delete_with_payments(self, client, session, admin_headers, make_customer, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    session.add(Payment(invoice_id=invoice.id, amount=Decimal("100000"), payment_method="cash"))
    session.commit()

    r = client.delete(f"/api/invoices/{invoice.id}", headers=admin_headers)
    assert r.status_code == 409
    assert session.get(Invoice, invoice.id) is not None

  def test_staff_cannot_delete(self, client, staff_headers, make_customer, make_invoice):
    invoice = make_invoice(make_customer(), due_date=date(2024, 1, 1))
    assert client.delete(f"/api/invoices/{invoice.id}", headers=staff_headers).status_code == 403
