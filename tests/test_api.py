import uuid
from decimal import Decimal


def money(value):
    return Decimal(str(value))


def _claim(client, headers, months, year=2025, reference="TT-100"):
    response = client.post("/api/member/dues/claims", headers=headers,
                           json={"months": months, "year": year, "reference": reference})
    assert response.status_code == 200, response.text
    return response.json()


class TestService:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "version" in response.json()

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["services"]["database"] == "connected"
        assert body["status"] == "healthy"


class TestIdentity:

    def test_missing_actor(self, client):
        assert client.get("/api/member/dues/2025").status_code == 401

    def test_malformed_actor(self, client):
        assert client.get("/api/member/dues/2025", headers={"X-Actor-Id": "not-a-uuid"}).status_code == 401

    def test_finance_write_requires_capability(self, client, member_headers):
        outcomes = _claim(client, member_headers, [1])
        response = client.post(f"/api/finance/dues/{outcomes[0]['obligation_id']}/confirm", headers=member_headers)
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "authorization_denied"


class TestMemberDues:

    def test_claim_and_grid(self, client, member_headers):
        outcomes = _claim(client, member_headers, [1, 2])
        assert [o["status"] for o in outcomes] == ["pending", "pending"]

        body = client.get("/api/member/dues/2025", headers=member_headers).json()
        assert len(body["months"]) == 12
        assert body["months"][0]["status"] == "pending"
        assert body["months"][2]["status"] == "unpaid"
        assert money(body["total_pending"]) == Decimal("10.00")

    def test_duplicate_claim_is_skipped(self, client, member_headers):
        _claim(client, member_headers, [3])
        outcomes = _claim(client, member_headers, [3, 4], reference="TT-101")
        assert outcomes[0]["status"] == "skipped"
        assert outcomes[0]["reason"]
        assert outcomes[1]["status"] == "pending"

    def test_invalid_year(self, client, member_headers):
        response = client.get("/api/member/dues/1990", headers=member_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_period"

    def test_claim_for_unknown_member(self, client):
        response = client.post("/api/member/dues/claims", headers={"X-Actor-Id": str(uuid.uuid4())},
                               json={"months": [1], "year": 2025})
        assert response.status_code == 404

    def test_entrance(self, client, member_headers):
        body = client.get("/api/member/entrance", headers=member_headers).json()
        assert body["status"] == "unpaid"

        response = client.post("/api/member/entrance/claim", headers=member_headers, json={"reference": "ENT-1"})
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert money(response.json()["amount"]) == Decimal("20.00")

        response = client.post("/api/member/entrance/claim", headers=member_headers, json={"reference": "ENT-2"})
        assert response.status_code == 409


class TestFinanceReconciliation:

    def test_confirm_reject_flow(self, client, member_headers, finance_headers):
        outcomes = _claim(client, member_headers, [1, 2])
        first, second = outcomes[0]["obligation_id"], outcomes[1]["obligation_id"]

        pending = client.get("/api/finance/pending", headers=finance_headers).json()
        assert {p["id"] for p in pending} == {first, second}

        confirmed = client.post(f"/api/finance/dues/{first}/confirm", headers=finance_headers)
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "paid"
        again = client.post(f"/api/finance/dues/{first}/confirm", headers=finance_headers)
        assert again.status_code == 200
        assert again.json()["paid_at"] == confirmed.json()["paid_at"]

        rejected = client.post(f"/api/finance/dues/{second}/reject", headers=finance_headers,
                               json={"reason": "Transfer not found"})
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "failed"

        response = client.post(f"/api/finance/dues/{first}/reject", headers=finance_headers)
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_transition"

        assert client.get("/api/finance/pending", headers=finance_headers).json() == []

    def test_unknown_and_malformed_ids(self, client, finance_headers):
        assert client.post(f"/api/finance/dues/{uuid.uuid4()}/confirm", headers=finance_headers).status_code == 404
        assert client.post("/api/finance/dues/xyz/confirm", headers=finance_headers).status_code == 400

    def test_manual_backfill_and_outstanding(self, client, member, finance_headers):
        response = client.post("/api/finance/dues/manual", headers=finance_headers,
                               json={"member_id": str(member.id), "month": 1, "year": 2024})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "paid"
        assert body["reference"].startswith("MANUAL-")
        assert money(body["amount"]) == Decimal("5.00")

        outstanding = client.get(f"/api/finance/members/{member.id}/outstanding", params={"year": 2024},
                                 headers=finance_headers).json()
        assert money(outstanding["outstanding"]) == Decimal("55.00")
        assert outstanding["paid_months"] == [1]

    def test_manual_entrance_and_delete(self, client, member, finance_headers):
        response = client.post("/api/finance/entrance/manual", headers=finance_headers,
                               json={"member_id": str(member.id), "reference": "CASH-9"})
        assert response.status_code == 200
        obligation_id = response.json()["id"]

        assert client.delete(f"/api/finance/entrance/{obligation_id}", headers=finance_headers).status_code == 200
        assert client.delete(f"/api/finance/entrance/{obligation_id}", headers=finance_headers).status_code == 404


class TestFinanceLedger:

    def test_income_expense_crud(self, client, finance_headers):
        income = client.post("/api/finance/income", headers=finance_headers,
                             json={"title": "Donation", "amount": "100.00", "source": "donation"})
        assert income.status_code == 200
        expense = client.post("/api/finance/expense", headers=finance_headers,
                              json={"title": "Repair", "amount": "30.00", "category": "maintenance"})
        assert expense.status_code == 200
        expense_id = expense.json()["id"]

        updated = client.put(f"/api/finance/entries/{expense_id}", headers=finance_headers,
                             json={"amount": "35.00"})
        assert updated.status_code == 200
        assert money(updated.json()["amount"]) == Decimal("35.00")
        assert updated.json()["polarity"] == "expense"

        entries = client.get("/api/finance/entries", params={"polarity": "expense"}, headers=finance_headers).json()
        assert [e["id"] for e in entries] == [expense_id]

        assert money(client.get("/api/finance/balance", headers=finance_headers).json()["balance"]) == Decimal("65.00")

        assert client.delete(f"/api/finance/entries/{expense_id}", headers=finance_headers).status_code == 200
        assert client.get(f"/api/finance/entries/{expense_id}", headers=finance_headers).status_code == 404

    def test_validation_errors(self, client, finance_headers):
        response = client.post("/api/finance/expense", headers=finance_headers,
                               json={"title": "Fireworks", "amount": "10.00", "category": "party"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_category"

        response = client.post("/api/finance/income", headers=finance_headers,
                               json={"title": "Donation", "amount": "-5"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_amount"

        response = client.post("/api/finance/expense", headers=finance_headers,
                               json={"title": "   ", "amount": "10.00", "category": "other"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "invalid_entry"

    def test_reports(self, client, member_headers, finance_headers):
        _claim(client, member_headers, [1])
        summary = client.get("/api/finance/summary", headers=finance_headers).json()
        assert summary["pending_claims"] == 1

        categories = client.get("/api/finance/categories", headers=finance_headers).json()
        assert [c["category"] for c in categories] == ["maintenance", "activities", "welfare", "other"]

        trend = client.get("/api/finance/trend", params={"months": 3}, headers=finance_headers).json()
        assert len(trend) == 3

        overview = client.get("/api/finance/members/overview", params={"year": 2025}, headers=finance_headers).json()
        assert overview[0]["house_no"] == "A-01"

        collected = client.get("/api/finance/collected", params={"year": 2025}, headers=finance_headers).json()
        assert money(collected["collected"]) == Decimal("0")
