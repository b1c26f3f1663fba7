#!/usr/bin/env python3
"""Operator script: reset the administrator password. Run on the server."""
import argparse
import asyncio
import getpass

from kvbank.config import get_settings
from kvbank.services import auth_service
from kvbank.services.account_repository import AccountRepository
from kvbank.storage import build_storage


async def reset(password: str) -> None:
    storage = build_storage(get_settings())
    await storage.initialize()
    try:
        await auth_service.update_admin_info(AccountRepository(storage), {"password": password})
        print("Administrator password updated")
    finally:
        await storage.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--password", help="New password (prompted if omitted)")
    args = parser.parse_args()
    asyncio.run(reset(args.password or getpass.getpass("New admin password: ")))
