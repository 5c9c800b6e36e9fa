from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eminent_bank.db.models import Account, Customer, Transaction


async def get_customer_by_user(db: AsyncSession, user_uuid) -> Optional[Customer]:
    q = select(Customer).where(Customer.user_uuid == user_uuid)
    res = await db.execute(q)
    return res.scalars().first()


async def get_customer_by_email(db: AsyncSession, email: str) -> Optional[Customer]:
    q = select(Customer).where(Customer.email == email)
    res = await db.execute(q)
    return res.scalars().first()


async def get_accounts_for_customer(db: AsyncSession, customer_id) -> List[Account]:
    q = select(Account).where(Account.customer_id == customer_id).order_by(Account.created_at, Account.account_number)
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_account(db: AsyncSession, account_id, for_update: bool = False) -> Optional[Account]:
    q = select(Account).where(Account.account_id == account_id)
    if for_update:
        q = q.with_for_update()
    res = await db.execute(q)
    return res.scalars().first()


async def get_account_by_number(db: AsyncSession, account_number: str) -> Optional[Account]:
    q = select(Account).where(Account.account_number == account_number)
    res = await db.execute(q)
    return res.scalars().first()


async def get_transaction_by_key(db: AsyncSession, idempotency_key: str) -> Optional[Transaction]:
    q = select(Transaction).where(Transaction.idempotency_key == idempotency_key)
    res = await db.execute(q)
    return res.scalars().first()


async def get_transactions_for_account(db: AsyncSession, account: Account, limit: int = 50) -> List[Transaction]:
    """
    Transfers initiated by the account or received by its number, newest first.
    """
    q = (
        select(Transaction)
        .where(
            or_(
                Transaction.initiator_account_id == account.account_id,
                Transaction.receiver_account_number == account.account_number,
            )
        )
        .order_by(Transaction.transfer_datetime.desc(), Transaction.transaction_id.desc())
        .limit(limit)
    )
    res = await db.execute(q)
    return list(res.scalars().all())
