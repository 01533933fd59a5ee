"""Transaction lookup shared by the dispute services."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.transaction import Transaction
from app.models.user import User


def is_bank_user(user: User | None) -> bool:
    return user is not None and user.role in ("bank_analyst", "bank_admin")


async def get_transaction(
    db: AsyncSession,
    transaction_id: UUID,
    viewer: User | None = None,
) -> Transaction:
    """Load a transaction visible to ``viewer``.

    Customers only see their own transactions; another customer's
    transaction is reported as not found. Bank users see all.
    """
    query = select(Transaction).where(Transaction.id == transaction_id)
    if viewer is not None and not is_bank_user(viewer):
        query = query.where(Transaction.customer_id == viewer.id)

    result = await db.execute(query)
    transaction = result.scalar_one_or_none()
    if not transaction:
        raise NotFoundError("Transaction")
    return transaction
