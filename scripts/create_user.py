#!/usr/bin/env python3
"""Create a customer or bank user and print an access token for it."""

import asyncio
import sys

# Add parent directory to path for imports
sys.path.insert(0, "/app")

from sqlalchemy import select

from app.core.security import create_token_for
from app.database import AsyncSessionLocal
from app.models.user import User


async def create_user(
    email: str = "admin@bank.example",
    full_name: str = "Disputes Admin",
    role: str = "bank_admin",
) -> None:
    """Create the user if it doesn't exist, then print a token."""
    async with AsyncSessionLocal() as session:

        # Check if user already exists
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user:
            user.role = role
            user.full_name = full_name
            user.is_active = True
            await session.commit()
            print(f"Updated existing user: {email}")
        else:
            user = User(email=email, full_name=full_name, role=role, is_active=True)
            session.add(user)
            await session.commit()
            print(f"Created user: {email}")

        print(f"Role: {role}")
        print(f"Token: {create_token_for(str(user.id), user.email, user.role)}")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create a user and print an access token")
    parser.add_argument("--email", default="admin@bank.example", help="User email")
    parser.add_argument("--full-name", default="Disputes Admin", help="Full name")
    parser.add_argument(
        "--role",
        default="bank_admin",
        choices=["customer", "bank_analyst", "bank_admin"],
        help="User role",
    )

    args = parser.parse_args()

    asyncio.run(create_user(email=args.email, full_name=args.full_name, role=args.role))
