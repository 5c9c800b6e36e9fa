"""
Ledger: the data-store side of the transfer workflow.

``Ledger`` is the interface the workflow depends on. ``SqlAlchemyLedger``
implements it on the async SQLAlchemy models and moves funds in a single
database transaction: debit, credit and the transaction record either all
land or none do.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from eminent_bank.db import crud
from eminent_bank.db.models import Account, Transaction
from eminent_bank.domain import (
    AccountSnapshot,
    AccountType,
    EntryDirection,
    HistoryEntry,
    TransactionRecord,
    TransferInstruction,
    to_money,
)
from eminent_bank.exceptions import (
    AccountUnavailableError,
    CreditFailedError,
    DebitFailedError,
    InsufficientBalanceError,
    RecordFailedError,
    TransferCommitError,
)
from eminent_bank.logging_config import get_logger

logger = get_logger("eminent_bank.db.ledger")

INSUFFICIENT_BALANCE_MESSAGE = "Insufficient balance. Transfer cannot be completed."


class Ledger(ABC):
    """Data-store operations used by the transfer workflow."""

    @abstractmethod
    async def find_customer_id(self, user_uuid: UUID) -> Optional[UUID]:
        ...

    @abstractmethod
    async def list_accounts(self, customer_id: UUID) -> List[AccountSnapshot]:
        ...

    @abstractmethod
    async def get_account(self, account_id: UUID) -> Optional[AccountSnapshot]:
        ...

    @abstractmethod
    async def find_account_by_number(self, account_number: str) -> Optional[AccountSnapshot]:
        ...

    @abstractmethod
    async def execute_transfer(self, instruction: TransferInstruction) -> TransactionRecord:
        """
        Move ``instruction.amount`` from source to destination and record it.

        Raises a ``TransferCommitError`` subclass when nothing was moved.
        Replaying an instruction whose idempotency key was already committed
        returns the first record without moving funds again.
        """

    @abstractmethod
    async def account_history(self, account_id: UUID, limit: int = 50) -> List[HistoryEntry]:
        ...


class AccountLocks:
    """
    Per-account asyncio locks. Transfers touching the same account run one
    at a time inside this process; locks are taken in a stable order so two
    opposite transfers cannot deadlock.
    """

    def __init__(self) -> None:
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def _lock_for(self, account_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *account_ids: UUID) -> AsyncIterator[None]:
        ordered = sorted(set(account_ids), key=str)
        async with AsyncExitStack() as stack:
            for account_id in ordered:
                await stack.enter_async_context(self._lock_for(account_id))
            yield


def _snapshot(account: Account) -> AccountSnapshot:
    return AccountSnapshot(
        account_id=account.account_id,
        account_number=account.account_number,
        account_type=AccountType(str(account.account_type).lower()),
        balance=to_money(account.balance if account.balance is not None else 0),
        owner_id=account.customer_id,
        nickname=account.nickname,
    )


def _to_record(tx: Transaction) -> TransactionRecord:
    return TransactionRecord(
        transaction_id=tx.transaction_id,
        source_account_id=tx.initiator_account_id,
        destination_account_number=tx.receiver_account_number,
        amount=to_money(tx.amount),
        purpose=tx.purpose or "",
        classification=tx.type_of_transfer,
        created_at=tx.transfer_datetime,
    )


def _describe(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


class SqlAlchemyLedger(Ledger):
    def __init__(self, session_factory: async_sessionmaker, locks: Optional[AccountLocks] = None):
        self._session_factory = session_factory
        self._locks = locks or AccountLocks()

    async def find_customer_id(self, user_uuid: UUID) -> Optional[UUID]:
        async with self._session_factory() as db:
            customer = await crud.get_customer_by_user(db, user_uuid)
            return customer.customer_id if customer else None

    async def list_accounts(self, customer_id: UUID) -> List[AccountSnapshot]:
        async with self._session_factory() as db:
            accounts = await crud.get_accounts_for_customer(db, customer_id)
            return [_snapshot(a) for a in accounts]

    async def get_account(self, account_id: UUID) -> Optional[AccountSnapshot]:
        async with self._session_factory() as db:
            account = await crud.get_account(db, account_id)
            return _snapshot(account) if account else None

    async def find_account_by_number(self, account_number: str) -> Optional[AccountSnapshot]:
        async with self._session_factory() as db:
            account = await crud.get_account_by_number(db, account_number)
            return _snapshot(account) if account else None

    async def account_history(self, account_id: UUID, limit: int = 50) -> List[HistoryEntry]:
        async with self._session_factory() as db:
            account = await crud.get_account(db, account_id)
            if account is None:
                return []
            txs = await crud.get_transactions_for_account(db, account, limit=limit)
            return [
                HistoryEntry(
                    record=_to_record(t),
                    direction=EntryDirection.DEBIT if t.initiator_account_id == account.account_id else EntryDirection.CREDIT,
                )
                for t in txs
            ]

    async def execute_transfer(self, instruction: TransferInstruction) -> TransactionRecord:
        amount = to_money(instruction.amount)
        if amount <= 0:
            raise TransferCommitError("Transfer amount must be greater than zero.")
        if instruction.source_account_id == instruction.destination_account_id:
            raise TransferCommitError("Cannot transfer money to the same account.")

        logger.info(
            "Transfer request key=%s from=%s to=%s amount=%s",
            instruction.idempotency_key,
            instruction.source_account_id,
            instruction.destination_account_number,
            amount,
        )
        async with self._locks.hold(instruction.source_account_id, instruction.destination_account_id):
            try:
                async with self._session_factory() as db:
                    async with db.begin():
                        record = await self._apply(db, instruction, amount)
            except TransferCommitError as e:
                logger.warning("Transfer aborted key=%s: %s", instruction.idempotency_key, e.message)
                raise
            except SQLAlchemyError as e:
                logger.exception("Transfer failed (DB error) key=%s", instruction.idempotency_key)
                raise TransferCommitError(f"Transfer failed: {_describe(e)}. No funds were moved.") from e

        logger.info(
            "Transfer success txn_id=%s key=%s amount=%s",
            record.transaction_id,
            instruction.idempotency_key,
            record.amount,
        )
        return record

    async def _apply(self, db, instruction: TransferInstruction, amount: Decimal) -> TransactionRecord:
        existing = await crud.get_transaction_by_key(db, instruction.idempotency_key)
        if existing is not None:
            logger.info("Replaying committed transfer key=%s txn_id=%s", instruction.idempotency_key, existing.transaction_id)
            return _to_record(existing)

        source = await self._read_account(db, instruction.source_account_id, "initiator")
        if to_money(source.balance) < amount:
            logger.warning(
                "Transfer failed - insufficient funds account=%s balance=%s amount=%s",
                source.account_id,
                source.balance,
                amount,
            )
            raise InsufficientBalanceError(INSUFFICIENT_BALANCE_MESSAGE)
        destination = await self._read_account(db, instruction.destination_account_id, "recipient")

        now = datetime.now(timezone.utc)
        await self._debit(db, source, amount, now)
        await self._credit(db, destination, amount, now)
        return await self._record(db, instruction, amount, now)

    async def _read_account(self, db, account_id: UUID, role: str) -> Account:
        try:
            account = await crud.get_account(db, account_id, for_update=True)
        except SQLAlchemyError as e:
            raise AccountUnavailableError(f"Failed to fetch current {role} balance: {_describe(e)}") from e
        if account is None:
            raise AccountUnavailableError(f"Failed to fetch current {role} balance: account not found")
        return account

    async def _debit(self, db, account: Account, amount: Decimal, now: datetime) -> None:
        stmt = (
            update(Account)
            .where(Account.account_id == account.account_id, Account.balance >= amount)
            .values(balance=Account.balance - amount, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            res = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise DebitFailedError(f"Transfer failed at deduction: {_describe(e)}") from e
        if res.rowcount != 1:
            # Balance dropped below the amount after it was read
            raise InsufficientBalanceError(INSUFFICIENT_BALANCE_MESSAGE)

    async def _credit(self, db, account: Account, amount: Decimal, now: datetime) -> None:
        stmt = (
            update(Account)
            .where(Account.account_id == account.account_id)
            .values(balance=Account.balance + amount, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            res = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise CreditFailedError(
                f"Transfer failed at crediting: {_describe(e)}. The deduction was rolled back; no funds were moved."
            ) from e
        if res.rowcount != 1:
            raise CreditFailedError(
                "Transfer failed at crediting: recipient account was not updated. "
                "The deduction was rolled back; no funds were moved."
            )

    async def _record(self, db, instruction: TransferInstruction, amount: Decimal, now: datetime) -> TransactionRecord:
        tx = Transaction(
            transaction_id=uuid4(),
            initiator_account_id=instruction.source_account_id,
            receiver_account_number=instruction.destination_account_number,
            amount=amount,
            purpose=instruction.purpose,
            type_of_transfer=instruction.classification,
            idempotency_key=instruction.idempotency_key,
            transfer_datetime=now,
        )
        try:
            db.add(tx)
            await db.flush()
        except SQLAlchemyError as e:
            raise RecordFailedError(
                f"Transfer failed to record the transaction: {_describe(e)}. "
                "Balances were rolled back; no funds were moved."
            ) from e
        return _to_record(tx)
