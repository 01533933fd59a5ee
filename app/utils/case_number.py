"""Chargeback case number generation."""

import random
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def generate_case_number(db: AsyncSession) -> str:
    """Generate a unique chargeback case number in format CB-XXXXXXXX.

    Args:
        db: Database session for uniqueness check

    Returns:
        str: Unique case number like 'CB-A3B7K9Q2'
    """
    from app.models.transaction import Transaction

    while True:
        chars = string.ascii_uppercase + string.digits
        case_number = "CB-" + "".join(random.choices(chars, k=8))

        result = await db.execute(
            select(Transaction.id).where(Transaction.chargeback_case_id == case_number)
        )
        if result.first() is None:
            return case_number
