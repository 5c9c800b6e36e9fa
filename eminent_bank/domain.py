"""
Value types shared by the data store, the workflow and the API.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

CENTS = Decimal("0.01")


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"


class EntryDirection(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


def to_money(value) -> Decimal:
    """Coerce a numeric value to a two-place Decimal."""
    if isinstance(value, Decimal):
        return value.quantize(CENTS)
    return Decimal(str(value)).quantize(CENTS)


def mask_account_number(account_number: Optional[str]) -> str:
    if not account_number:
        return "N/A"
    return f"****{account_number[-4:]}"


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time copy of an account row."""

    account_id: UUID
    account_number: str
    account_type: AccountType
    balance: Decimal
    owner_id: UUID
    nickname: Optional[str] = None

    @property
    def label(self) -> str:
        """Display label, e.g. ``savings (Rainy Day) (****4321)``."""
        nickname = f" ({self.nickname})" if self.nickname else ""
        return f"{self.account_type.value}{nickname} ({mask_account_number(self.account_number)})"


@dataclass(frozen=True)
class TransferInstruction:
    """Everything the ledger needs to move funds once."""

    source_account_id: UUID
    destination_account_id: UUID
    destination_account_number: str
    amount: Decimal
    purpose: str
    classification: str
    idempotency_key: str


@dataclass(frozen=True)
class TransactionRecord:
    transaction_id: UUID
    source_account_id: UUID
    destination_account_number: str
    amount: Decimal
    purpose: str
    classification: str
    created_at: datetime


@dataclass(frozen=True)
class HistoryEntry:
    """A transaction record as seen from one account."""

    record: TransactionRecord
    direction: EntryDirection

    @property
    def signed_amount(self) -> Decimal:
        if self.direction is EntryDirection.DEBIT:
            return -self.record.amount
        return self.record.amount
