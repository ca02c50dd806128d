from decimal import Decimal

import pytest
from sqlalchemy import select

from app.models.audit_log import AuditLog
from app.models.car import Car
from app.models.customer import Customer

API = "/api/v1"


@pytest.fixture
def seeded(session_factory):
    with session_factory() as s:
        customer = Customer(email="api@example.com", first_name="Api", last_name="User")
        car = Car(make="Mitsubishi", model="Xpander", year=2023, license_plate="XPD-2023", rent_price_cents=1500_00)
        s.add_all([customer, car])
        s.commit()
        return {"customerId": customer.id, "carId": car.id}


def new_booking(client, seeded, total=None, actor="admin@rentwise"):
    r = client.post(f"{API}/bookings", json={
        **seeded,
        "startDate": "2026-11-02T09:00:00Z",
        "endDate": "2026-11-05T09:00:00Z",
        "pickupLoc": "NAIA Terminal 3",
        "dropoffLoc": "Makati",
    }, headers={"X-Actor": actor})
    assert r.status_code == 201, r.text
    booking = r.json()
    if total is not None:
        r = client.post(f"{API}/bookings/{booking['id']}/price", json={"totalAmount": total})
        assert r.status_code == 200, r.text
        booking = r.json()
    return booking


def pay(client, booking, amount, path="/payments", headers=None, **extra):
    body = {"bookingId": booking["id"], "customerId": booking["customerId"], "amount": amount, **extra}
    return client.post(f"{API}{path}", json=body, headers=headers or {})


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_booking_payment_flow(client, seeded):
    booking = new_booking(client, seeded)
    assert booking["paymentStatus"] == "Pending"
    assert booking["bookingStatus"] == "Pending"
    assert booking["totalAmount"] is None

    r = client.post(f"{API}/bookings/{booking['id']}/price", json={"totalAmount": "10000"})
    assert r.json()["bookingStatus"] == "Confirmed"
    assert Decimal(r.json()["balance"]) == Decimal("10000")

    r = pay(client, booking, "4000.00", path="/payments/release")
    assert r.status_code == 201, r.text
    assert r.json()["description"] == "Release Payment"
    assert Decimal(r.json()["runningBalance"]) == Decimal("6000")

    r = pay(client, booking, "6000.00", paymentMethod="GCash", gcashNo="09171234567", referenceNo="GC-778")
    assert r.status_code == 201, r.text
    assert Decimal(r.json()["runningBalance"]) == 0

    b = client.get(f"{API}/bookings/{booking['id']}").json()
    assert b["bookingStatus"] == "In Progress"
    assert b["paymentStatus"] == "Paid"
    assert Decimal(b["balance"]) == 0

    listed = client.get(f"{API}/payments", params={"bookingId": booking["id"]}).json()
    assert [Decimal(p["amount"]) for p in listed] == [Decimal("6000"), Decimal("4000")]


def test_idempotency_key_header(client, seeded):
    booking = new_booking(client, seeded, total="10000")
    headers = {"Idempotency-Key": "till-7-receipt-0042"}
    first = pay(client, booking, "2500", headers=headers).json()
    second = pay(client, booking, "2500", headers=headers).json()
    assert first["paymentId"] == second["paymentId"]
    assert len(client.get(f"{API}/payments", params={"bookingId": booking["id"]}).json()) == 1


@pytest.mark.parametrize("amount", ["0", "-5", "abc", "10.001"])
def test_bad_amount_is_400(client, seeded, amount):
    booking = new_booking(client, seeded, total="10000")
    r = pay(client, booking, amount)
    assert r.status_code == 400
    assert "amount" in r.json()["detail"]


def test_error_mapping(client, seeded):
    unpriced = new_booking(client, seeded)
    r = pay(client, unpriced, "100")
    assert r.status_code == 409

    r = client.post(f"{API}/payments", json={"bookingId": 999, "customerId": seeded["customerId"], "amount": "100"})
    assert r.status_code == 404
    assert r.json() == {"detail": "booking 999 not found"}

    r = client.post(f"{API}/payments", json={"bookingId": unpriced["id"]})
    assert r.status_code == 422

    r = pay(client, new_booking(client, seeded, total="100"), "1", paymentMethod="GCash")
    assert r.status_code == 400


def test_delete_payment_and_recalculate(client, seeded):
    booking = new_booking(client, seeded, total="10000")
    first = pay(client, booking, "1000").json()
    pay(client, booking, "2000")

    r = client.delete(f"{API}/payments/{first['paymentId']}", headers={"X-Actor": "admin@rentwise"})
    assert r.status_code == 200
    assert r.json() == {"bookingId": booking["id"], "totalPaid": "2000.00", "balance": "8000.00", "paymentStatus": "Unpaid"}
    assert client.delete(f"{API}/payments/{first['paymentId']}").status_code == 404

    r = client.post(f"{API}/bookings/{booking['id']}/recalculate")
    assert r.status_code == 200
    assert Decimal(r.json()["balance"]) == Decimal("8000")
    assert client.post(f"{API}/bookings/999/recalculate").status_code == 404


def test_reconcile_endpoint_is_audited(client, seeded, session_factory):
    booking = new_booking(client, seeded, total="10000")
    pay(client, booking, "1000")

    r = client.post(f"{API}/admin/ledger/reconcile", headers={"X-Actor": "ops@rentwise"})
    assert r.status_code == 200
    assert r.json() == {"checked": 1, "corrected": 0, "bookingIds": []}

    with session_factory() as s:
        actors = s.execute(select(AuditLog.actor).where(AuditLog.action == "ledger.reconciled")).scalars().all()
    assert actors == ["ops@rentwise"]


def test_extension_flow_over_http(client, seeded):
    booking = new_booking(client, seeded, total="4500")
    pay(client, booking, "4500", path="/payments/release")

    r = client.post(f"{API}/bookings/{booking['id']}/extensions", json={"newEndDate": "2026-11-07T09:00:00Z"})
    assert r.status_code == 201, r.text
    ext = r.json()
    assert ext["status"] == "pending"

    r = client.post(f"{API}/bookings/{booking['id']}/extensions", json={"newEndDate": "2026-11-08T09:00:00Z"})
    assert r.status_code == 409

    assert client.post(f"{API}/extensions/{ext['extensionId']}/complete").status_code == 409

    r = client.post(f"{API}/extensions/{ext['extensionId']}/approve")
    assert r.status_code == 200
    assert Decimal(r.json()["fee"]) == Decimal("3000")

    b = client.get(f"{API}/bookings/{booking['id']}").json()
    assert b["isExtend"] is True
    assert b["isPay"] is False
    assert Decimal(b["balance"]) == Decimal("3000")

    r = pay(client, booking, "3000", extensionId=ext["extensionId"])
    assert r.status_code == 201

    r = client.post(f"{API}/extensions/{ext['extensionId']}/complete")
    assert r.status_code == 200
    b = r.json()
    assert b["endDate"].startswith("2026-11-07T09:00:00")
    assert b["isExtend"] is False
    assert b["isPay"] is False
    assert b["newEndDate"] is None
    assert b["isExtended"] is True

    listed = client.get(f"{API}/bookings/{booking['id']}/extensions").json()
    assert [e["status"] for e in listed] == ["completed"]


def test_reject_extension_over_http(client, seeded):
    booking = new_booking(client, seeded, total="4500")
    pay(client, booking, "1000", path="/payments/release")
    ext = client.post(f"{API}/bookings/{booking['id']}/extensions", json={"newEndDate": "2026-11-06T09:00:00Z"}).json()
    client.post(f"{API}/extensions/{ext['extensionId']}/approve", json={"fee": "750"})

    r = client.post(f"{API}/extensions/{ext['extensionId']}/reject", json={"reason": "unit due for PMS"})
    assert r.status_code == 200
    assert r.json()["rejectionReason"] == "unit due for PMS"
    b = client.get(f"{API}/bookings/{booking['id']}").json()
    assert Decimal(b["totalAmount"]) == Decimal("4500")
    assert Decimal(b["balance"]) == Decimal("3500")


def test_refunds_over_http(client, seeded):
    booking = new_booking(client, seeded, total="3000")
    pay(client, booking, "3000")

    r = client.post(f"{API}/refunds", json={
        "bookingId": booking["id"], "customerId": booking["customerId"], "amount": "3000",
        "description": "trip cancelled by customer",
    })
    assert r.status_code == 201, r.text
    assert client.get(f"{API}/bookings/{booking['id']}").json()["paymentStatus"] == "Refunded"

    r = client.post(f"{API}/refunds", json={
        "bookingId": booking["id"], "customerId": booking["customerId"], "amount": "1",
    })
    assert r.status_code == 409
    assert r.json()["context"] == {"totalPaid": "3000.00", "totalRefunded": "3000.00"}
    assert len(client.get(f"{API}/refunds", params={"bookingId": booking["id"]}).json()) == 1


def test_cancel_and_complete_booking(client, seeded):
    booking = new_booking(client, seeded, total="3000")
    assert client.post(f"{API}/bookings/{booking['id']}/complete").status_code == 409

    r = client.post(f"{API}/bookings/{booking['id']}/cancel", json={"reason": "double booking"})
    assert r.json()["bookingStatus"] == "Cancelled"
    assert client.post(f"{API}/bookings/{booking['id']}/cancel").status_code == 409
    assert pay(client, booking, "100").status_code == 409


def test_return_with_fees_over_http(client, seeded):
    booking = new_booking(client, seeded, total="4500")
    pay(client, booking, "4500", path="/payments/release")

    r = client.post(f"{API}/bookings/{booking['id']}/return", json={
        "gasLevelAtRelease": "High",
        "gasLevel": "Mid",
        "releasedEquipment": ["Jack", "Spare Tire"],
        "returnedEquipment": ["Jack"],
        "isClean": False,
        "hasStain": True,
        "payment": {"amount": "1000", "paymentMethod": "Cash"},
    })
    assert r.status_code == 200, r.text
    b = r.json()
    assert b["bookingStatus"] == "Completed"
    # 500 fuel + 500 spare tire + 200 cleaning + 500 stain
    assert Decimal(b["returnFee"]) == Decimal("1700")
    assert Decimal(b["totalAmount"]) == Decimal("6200")
    assert Decimal(b["balance"]) == Decimal("700")
    assert b["paymentStatus"] == "Unpaid"

    listed = client.get(f"{API}/payments", params={"bookingId": booking["id"]}).json()
    assert listed[0]["description"] == "Return fees payment"

    r = client.post(f"{API}/bookings/{booking['id']}/return", json={"gasLevelAtRelease": "High", "gasLevel": "High"})
    assert r.status_code == 409


def test_return_rejects_unknown_gas_level(client, seeded):
    booking = new_booking(client, seeded, total="4500")
    pay(client, booking, "4500", path="/payments/release")
    r = client.post(f"{API}/bookings/{booking['id']}/return", json={"gasLevelAtRelease": "Full", "gasLevel": "High"})
    assert r.status_code == 400
    assert client.get(f"{API}/bookings/{booking['id']}").json()["bookingStatus"] == "In Progress"


def test_fee_schedule_over_http(client):
    assert client.get(f"{API}/fees").json()["damage_fee"] == "5000.00"

    r = client.put(f"{API}/fees", json={"damage_fee": "7500", "cleaning_fee": 250})
    assert r.status_code == 200
    assert r.json()["damage_fee"] == "7500.00"
    assert r.json()["cleaning_fee"] == "250.00"

    assert client.put(f"{API}/fees", json={"towing_fee": "100"}).status_code == 400
    assert client.get(f"{API}/fees").json()["damage_fee"] == "7500.00"
