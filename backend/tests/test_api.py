"""
Tests HTTP degli endpoint /api/v1 (httpx.AsyncClient su ASGITransport).
"""

import datetime
import uuid

import httpx
import pytest

from freight_cash.core.database import get_db
from freight_cash.core.deps import get_bill_ledger
from freight_cash.main import app

from conftest import COLLECTOR, add_payment

DAY_1 = datetime.date(2024, 1, 1)


@pytest.fixture
async def client(session_factory, ledger):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_bill_ledger] = lambda: ledger

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# Tests di sistema
# ============================================================


class TestSystem:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_denominations(self, client):
        response = await client.get("/api/v1/denominations")
        assert response.status_code == 200
        body = response.json()
        assert len(body) == 12
        assert body[0] == {"key": "50", "label": "£50", "minorValue": 5000, "kind": "note"}


# ============================================================
# Tests per gli incassi
# ============================================================


class TestPaymentsApi:
    async def test_record_and_list(self, client):
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments",
            json={"billId": "bill-1", "amount": "20.00", "paymentMethod": "card"},
        )
        assert response.status_code == 201
        payment = response.json()
        assert payment["billId"] == "bill-1"
        assert payment["amount"] == "20.00"
        assert payment["paymentMethod"] == "card"
        assert payment["isClosed"] is False

        response = await client.get(f"/api/v1/collectors/{COLLECTOR}/payments/unclosed")
        assert [p["id"] for p in response.json()] == [payment["id"]]

        response = await client.get(
            f"/api/v1/collectors/{COLLECTOR}/payments", params={"unclosedOnly": "true"}
        )
        assert response.status_code == 200
        assert len(response.json()) == 1

    async def test_locked_collector_gets_423(self, client, session_factory):
        async with session_factory() as session:
            await add_payment(session, DAY_1, "50.00")

        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "bill-2"}
        )
        assert response.status_code == 423
        body = response.json()
        assert body["errorCode"] == "CLOSURE_PENDING"
        assert body["requiredClosureDate"] == "2024-01-01"
        assert "2024-01-01" in body["detail"]

        response = await client.get(f"/api/v1/collectors/{COLLECTOR}/guard")
        assert response.status_code == 200
        assert response.json()["allow"] is False
        assert response.json()["requiredClosureDate"] == "2024-01-01"

    async def test_amount_over_balance_is_422(self, client):
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments",
            json={"billId": "bill-1", "amount": "75.00"},
        )
        assert response.status_code == 422
        assert response.json()["errorCode"] == "AMOUNT_EXCEEDS_BALANCE"

    async def test_unknown_bill_is_404(self, client):
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "missing"}
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "BILL_NOT_FOUND"

    async def test_outstanding_bills(self, client):
        response = await client.get(f"/api/v1/collectors/{COLLECTOR}/bills")
        assert response.status_code == 200
        assert {b["id"] for b in response.json()} == {"bill-1", "bill-2"}


# ============================================================
# Tests per le chiusure cassa
# ============================================================


class TestCashClosuresApi:
    async def test_close_flow(self, client):
        """Test incasso £50 in contanti, anteprima, chiusura e dettaglio."""
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "bill-1"}
        )
        payment_id = response.json()["id"]

        payload = {"paymentIds": [payment_id], "cashBreakdown": {"20": 2, "10": 1}}
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures/preview", json=payload
        )
        assert response.status_code == 200
        assert response.json()["cashDifference"] == "0.00"

        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures", json=payload
        )
        assert response.status_code == 201
        closure = response.json()
        assert closure["status"] == "closed"
        assert closure["cashExpectedTotal"] == "50.00"
        assert closure["cashCountedTotal"] == "50.00"
        assert closure["isBalanced"] is True
        assert closure["paymentIds"] == [payment_id]
        assert closure["payments"][0]["isClosed"] is True

        response = await client.get(f"/api/v1/cash-closures/{closure['id']}")
        assert response.status_code == 200
        assert response.json()["grandTotal"] == "50.00"

        response = await client.get(f"/api/v1/collectors/{COLLECTOR}/cash-closures")
        assert [c["id"] for c in response.json()] == [closure["id"]]

        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures", json=payload
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "PAYMENT_ALREADY_CLOSED"

    async def test_missing_cash_count_is_422(self, client):
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "bill-2"}
        )
        payment_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures",
            json={"paymentIds": [payment_id], "cashBreakdown": {}},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["errorCode"] == "MISSING_CASH_COUNT"
        assert body["cashExpectedTotal"] == "40.00"

    async def test_fractional_quantity_is_invalid_quantity(self, client):
        """Test quantità non intera: errore del conteggio con il taglio indicato."""
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "bill-2"}
        )
        payment_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures",
            json={"paymentIds": [payment_id], "cashBreakdown": {"20": 1.5}},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["errorCode"] == "INVALID_QUANTITY"
        assert body["denomination"] == "20"

    async def test_count_beyond_column_capacity_rejected(self, client):
        """Test conteggio oltre £99.999.999,99: rifiutato prima di scrivere."""
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "bill-2"}
        )
        payment_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures",
            json={"paymentIds": [payment_id], "cashBreakdown": {"20": 10**8}},
        )
        assert response.status_code == 422
        assert response.json()["errorCode"] == "INVALID_QUANTITY"

        response = await client.get(f"/api/v1/collectors/{COLLECTOR}/cash-closures")
        assert response.json() == []

    async def test_unknown_payment_is_404(self, client):
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures",
            json={"paymentIds": [str(uuid.uuid4())]},
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "PAYMENT_NOT_FOUND"

    async def test_empty_selection_rejected(self, client):
        response = await client.post(
            f"/api/v1/collectors/{COLLECTOR}/cash-closures", json={"paymentIds": []}
        )
        assert response.status_code == 422

    async def test_missing_closure_is_404(self, client):
        response = await client.get(f"/api/v1/cash-closures/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["errorCode"] == "CASH_CLOSURE_NOT_FOUND"

    async def test_summary(self, client):
        await client.post(f"/api/v1/collectors/{COLLECTOR}/payments", json={"billId": "bill-1"})
        response = await client.get(f"/api/v1/collectors/{COLLECTOR}/summary")
        assert response.status_code == 200
        body = response.json()
        assert body["paymentsToday"] == 1
        assert body["unclosedAmount"] == "50.00"
        assert body["guard"]["allow"] is True
