#!/usr/bin/env python3
"""
Fill a running kvbank API with demo members, movements, a loan, credit lines
and transfers. Local demos only: every password below is public.

    python demo/seed.py
    python demo/seed.py --reset          # drop data/bank.db (sql backend)
    python demo/seed.py --base-url http://localhost:9000 --admin-password s3cret

Members and their passwords are listed in MEMBERS below; the administrator
logs in as "admin" with --admin-password.
"""

import argparse
import asyncio
import os
import random
import sys
from pathlib import Path

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo members
# ---------------------------------------------------------------------------

MEMBERS = [
    {
        "full_name": "Lucía Romero",
        "email": "lucia.romero@example.com",
        "password": "Lucia-demo-1",
        "account_type": "checking",
        "opening_deposit": 850_00,
        "loan": {"amount_cents": 12_000_00, "interest_rate": 6.5, "term_months": 36,
                 "purpose": "Car"},
    },
    {
        "full_name": "Tomás Herrera",
        "email": "tomas.herrera@example.com",
        "password": "Tomas-demo-2",
        "account_type": "savings",
        "opening_deposit": 5_000_00,
        "credit": {"limit_cents": 2_500_00, "interest_rate": 2.5, "credit_score": 720},
    },
    {
        "full_name": "Inés Navarro",
        "email": "ines.navarro@example.com",
        "password": "Ines-demo-3",
        "account_type": "business",
        "opening_deposit": 12_000_00,
        "credit": {"limit_cents": 10_000_00, "interest_rate": 1.9, "credit_score": 790},
    },
    {
        "full_name": "Diego Molina",
        "email": "diego.molina@example.com",
        "password": "Diego-demo-4",
        "account_type": "checking",
        "opening_deposit": 600_00,
    },
]

WITHDRAWAL_DESCRIPTIONS = [
    "Coffee shop", "Grocery store", "Gas station", "Online subscription",
    "Restaurant", "Utility bill", "Phone bill", "Parking", "Pharmacy",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def cents_to_dollars(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def login(client: httpx.AsyncClient, identifier: str, password: str) -> str:
    resp = await client.post(
        f"{BASE_URL}/auth/login", json={"identifier": identifier, "password": password}
    )
    resp.raise_for_status()
    return resp.json()["token"]


async def signup(client: httpx.AsyncClient, member: dict) -> dict:
    """Sign up a member; return the signup response (account id, number, token)."""
    resp = await client.post(f"{BASE_URL}/auth/signup", json={
        "full_name": member["full_name"],
        "email": member["email"],
        "password": member["password"],
        "account_type": member["account_type"],
    })
    resp.raise_for_status()
    return resp.json()


async def move(client: httpx.AsyncClient, token: str, account_id: str,
               kind: str, amount_cents: int, description: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/accounts/{account_id}/movements",
        json={"kind": kind, "amount_cents": amount_cents, "description": description},
        headers=auth_header(token),
    )
    return resp.json()


async def get_balance(client: httpx.AsyncClient, token: str, account_id: str) -> int:
    resp = await client.get(
        f"{BASE_URL}/accounts/{account_id}/balance",
        headers=auth_header(token),
    )
    resp.raise_for_status()
    return resp.json()["cached_balance_cents"]


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed_history(client: httpx.AsyncClient, token: str, account_id: str) -> int:
    """Post a few paychecks and purchases; return the number of movements created."""
    created = 0
    for _ in range(2):
        result = await move(client, token, account_id, "deposit",
                            random.randint(1_800_00, 3_200_00), "Payroll deposit")
        created += "id" in result
    for _ in range(random.randint(5, 10)):
        result = await move(client, token, account_id, "withdrawal",
                            random.randint(3_00, 120_00), random.choice(WITHDRAWAL_DESCRIPTIONS))
        if result.get("error_type") == "insufficient_funds":
            break
        created += "id" in result
    return created


async def seed(base_url: str, admin_password: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print(f"\nSeeding demo data into {BASE_URL} (NOT FOR PRODUCTION)\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            sys.exit(f"No API answering at {BASE_URL}; start it with: uvicorn kvbank.main:app")

        print("Logging in as administrator...")
        admin_token = await login(client, "admin", admin_password)

        accounts: list[dict] = []
        for member in MEMBERS:
            print(f"\nCreating {member['full_name']}...")
            signed_up = await signup(client, member)
            token = signed_up["token"]
            account_id = signed_up["account_id"]
            log(f"Login: {member['email']} / {member['password']}")
            log(f"{member['account_type'].capitalize()} account: {signed_up['account_number']}")

            await move(client, token, account_id, "deposit",
                       member["opening_deposit"], "Opening deposit")
            log(f"Opening deposit: {cents_to_dollars(member['opening_deposit'])}")
            count = await seed_history(client, token, account_id)
            log(f"{count} movements seeded")

            if "loan" in member:
                resp = await client.post(
                    f"{BASE_URL}/loans",
                    json={"account_id": account_id, **member["loan"]},
                    headers=auth_header(admin_token),
                )
                resp.raise_for_status()
                loan = resp.json()
                log(f"Loan {cents_to_dollars(loan['amount_cents'])}, "
                    f"{cents_to_dollars(loan['monthly_payment_cents'])}/month")

            if "credit" in member:
                resp = await client.post(
                    f"{BASE_URL}/credits",
                    json={"account_id": account_id, **member["credit"]},
                    headers=auth_header(admin_token),
                )
                resp.raise_for_status()
                credit = resp.json()
                draw = credit["limit_cents"] // 4
                await client.post(
                    f"{BASE_URL}/credits/{account_id}/{credit['id']}/draw",
                    json={"amount_cents": draw},
                    headers=auth_header(token),
                )
                log(f"Credit line {cents_to_dollars(credit['limit_cents'])}, "
                    f"drawn {cents_to_dollars(draw)}")

            balance = await get_balance(client, token, account_id)
            log(f"Balance: {cents_to_dollars(balance)}")
            accounts.append({**signed_up, "name": member["full_name"]})

        # --- Transfers between members ---
        print("\nCreating transfers...")
        for source, target in zip(accounts, accounts[1:] + accounts[:1]):
            amount = random.randint(15_00, 100_00)
            resp = await client.post(
                f"{BASE_URL}/transfers",
                json={
                    "from_account_id": source["account_id"],
                    "to_account_number": target["account_number"],
                    "amount_cents": amount,
                    "description": f"Payment from {source['name']} to {target['name']}",
                },
                headers=auth_header(source["token"]),
            )
            if resp.status_code == 201:
                log(f"{source['name']} -> {target['name']}: {cents_to_dollars(amount)}")

    print("\nSeeded accounts:")
    for account, member in zip(accounts, MEMBERS):
        print(f"  {account['account_number']}  {member['email']:<28s} {member['password']}")
    print("\nLog in as admin to inspect /statistics and /admin/activity.\n")


def reset_sqlite_store() -> None:
    """Remove the default SQLite file (STORAGE_BACKEND=sql). The server recreates it."""
    path = Path(__file__).resolve().parent.parent / "data" / "bank.db"
    if not path.exists():
        print(f"Nothing to reset: {path} does not exist")
        return
    path.unlink()
    print(f"Removed {path}; restart the server before seeding again")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Populate a running kvbank API with demo data")
    parser.add_argument("--base-url", default=BASE_URL, help=f"API root (default: {BASE_URL})")
    parser.add_argument(
        "--admin-password",
        default=os.environ.get("ADMIN_DEFAULT_PASSWORD", "admin123"),
        help="administrator password (default: $ADMIN_DEFAULT_PASSWORD, then admin123)",
    )
    parser.add_argument("--reset", action="store_true", help="remove the SQLite store and exit")
    args = parser.parse_args()

    if args.reset:
        reset_sqlite_store()
    else:
        await seed(args.base_url.rstrip("/"), args.admin_password)


if __name__ == "__main__":
    asyncio.run(main())
