"""
Tests for the /loans and /credits endpoints.

These tests verify:
  - Loan disbursement, member requests with admin approval, installments
    and closing
  - Credit lines: opening, draws up to the limit, repayments, limit
    changes and closing
  - Lifecycle violations return 409, limit violations 422
"""


async def _fund(admin_client, account_id: str, amount_cents: int) -> None:
    response = await admin_client.post(
        f"/accounts/{account_id}/movements",
        json={"kind": "deposit", "amount_cents": amount_cents},
    )
    assert response.status_code == 201, response.text


class TestLoans:
    async def test_disburse_loan(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        response = await admin_client.post(
            "/loans",
            json={
                "account_id": account_id,
                "amount_cents": 1000000,
                "interest_rate": 12.0,
                "term_months": 12,
                "purpose": "Car",
            },
        )
        assert response.status_code == 201
        loan = response.json()
        assert loan["status"] == "active"
        assert loan["monthly_payment_cents"] == 88849
        assert loan["remaining_payments"] == 12

        # Disbursement does not touch the balance
        balance = await member_client.get(f"/accounts/{account_id}/balance")
        assert balance.json()["cached_balance_cents"] == 0

    async def test_member_cannot_disburse(self, member_client):
        response = await member_client.post(
            "/loans",
            json={
                "account_id": member_client.member["account_id"],
                "amount_cents": 1000,
                "interest_rate": 1.0,
                "term_months": 1,
            },
        )
        assert response.status_code == 403

    async def test_request_approve_pay(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        requested = await member_client.post(
            "/loans/request",
            json={
                "account_id": account_id,
                "amount_cents": 20000,
                "interest_rate": 0,
                "term_months": 2,
            },
        )
        assert requested.status_code == 201
        loan_id = requested.json()["id"]
        assert requested.json()["status"] == "pending"

        early_payment = await member_client.post(f"/loans/{account_id}/{loan_id}/payments")
        assert early_payment.status_code == 409

        approved = await admin_client.post(f"/loans/{account_id}/{loan_id}/approve")
        assert approved.status_code == 200
        assert approved.json()["status"] == "active"

        await _fund(admin_client, account_id, 20000)
        first = await member_client.post(f"/loans/{account_id}/{loan_id}/payments")
        second = await member_client.post(f"/loans/{account_id}/{loan_id}/payments")
        assert first.status_code == 201
        assert first.json()["movement"]["description"] == "Loan payment"
        assert second.json()["loan"]["status"] == "paid"
        assert second.json()["loan"]["remaining_payments"] == 0

    async def test_close_twice_conflicts(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        loan = (await admin_client.post(
            "/loans",
            json={"account_id": account_id, "amount_cents": 5000,
                  "interest_rate": 1.0, "term_months": 3},
        )).json()

        closed = await admin_client.post(f"/loans/{account_id}/{loan['id']}/close")
        assert closed.json()["status"] == "paid"

        again = await admin_client.post(f"/loans/{account_id}/{loan['id']}/close")
        assert again.status_code == 409
        assert again.json()["error_type"] == "invalid_state_transition"

    async def test_delete_loan(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        loan = (await admin_client.post(
            "/loans",
            json={"account_id": account_id, "amount_cents": 5000,
                  "interest_rate": 1.0, "term_months": 3},
        )).json()

        active_delete = await admin_client.delete(f"/loans/{account_id}/{loan['id']}")
        assert active_delete.status_code == 409

        await admin_client.post(f"/loans/{account_id}/{loan['id']}/close")
        deleted = await admin_client.delete(f"/loans/{account_id}/{loan['id']}")
        assert deleted.status_code == 204

        missing = await admin_client.delete(f"/loans/{account_id}/{loan['id']}")
        assert missing.status_code == 404
        assert missing.json()["error_type"] == "loan_not_found"


class TestCredits:
    async def _open(self, admin_client, account_id: str, limit_cents: int = 50000) -> dict:
        response = await admin_client.post(
            "/credits",
            json={"account_id": account_id, "limit_cents": limit_cents,
                  "interest_rate": 2.5, "credit_score": 750},
        )
        assert response.status_code == 201, response.text
        return response.json()

    async def test_open_credit(self, admin_client, member_client):
        credit = await self._open(admin_client, member_client.member["account_id"])
        assert credit["status"] == "active"
        assert credit["amount_cents"] == 0
        assert credit["available_cents"] == 50000

    async def test_draw_to_limit_then_over(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        credit = await self._open(admin_client, account_id)

        full = await member_client.post(
            f"/credits/{account_id}/{credit['id']}/draw", json={"amount_cents": 50000}
        )
        assert full.status_code == 201
        assert full.json()["credit"]["available_cents"] == 0
        assert full.json()["movement"]["balance_after_cents"] == 50000

        over = await member_client.post(
            f"/credits/{account_id}/{credit['id']}/draw", json={"amount_cents": 1}
        )
        assert over.status_code == 422
        assert over.json()["error_type"] == "credit_limit_exceeded"
        assert over.json()["available_cents"] == 0

    async def test_repay_and_adjust_limit(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        credit = await self._open(admin_client, account_id)
        await member_client.post(
            f"/credits/{account_id}/{credit['id']}/draw", json={"amount_cents": 30000}
        )

        repaid = await member_client.post(
            f"/credits/{account_id}/{credit['id']}/repay", json={"amount_cents": 10000}
        )
        assert repaid.status_code == 201
        assert repaid.json()["credit"]["amount_cents"] == 20000

        too_low = await admin_client.put(
            f"/credits/{account_id}/{credit['id']}/limit", json={"limit_cents": 19999}
        )
        assert too_low.status_code == 422

        raised = await admin_client.put(
            f"/credits/{account_id}/{credit['id']}/limit", json={"limit_cents": 90000}
        )
        assert raised.status_code == 200
        assert raised.json()["available_cents"] == 70000

    async def test_pending_credit_flow(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        response = await admin_client.post(
            "/credits",
            json={"account_id": account_id, "limit_cents": 10000,
                  "interest_rate": 3.0, "pending": True},
        )
        credit = response.json()
        assert credit["status"] == "pending"

        approved = await admin_client.post(f"/credits/{account_id}/{credit['id']}/approve")
        assert approved.json()["status"] == "active"

    async def test_closed_credit_rejects_draws(self, admin_client, member_client):
        account_id = member_client.member["account_id"]
        credit = await self._open(admin_client, account_id)

        closed = await admin_client.post(f"/credits/{account_id}/{credit['id']}/close")
        assert closed.json()["status"] == "closed"

        draw = await member_client.post(
            f"/credits/{account_id}/{credit['id']}/draw", json={"amount_cents": 100}
        )
        assert draw.status_code == 409

        deleted = await admin_client.delete(f"/credits/{account_id}/{credit['id']}")
        assert deleted.status_code == 204
