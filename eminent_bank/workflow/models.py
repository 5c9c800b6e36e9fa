from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from eminent_bank.domain import AccountSnapshot


class WorkflowState(str, Enum):
    INPUT = "input"
    CONFIRMATION = "confirmation"
    REAUTH = "reauth"
    COMMITTING = "committing"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({WorkflowState.SUCCESS, WorkflowState.FAILURE, WorkflowState.CANCELLED})


@dataclass
class TransferRequest:
    """Transfer being assembled; ``destination`` is filled in by the resolver."""

    source: AccountSnapshot
    destination_account_number: str
    amount: Decimal
    purpose: str
    destination: Optional[AccountSnapshot] = None


@dataclass(frozen=True)
class TransferConfirmation:
    """Frozen snapshot shown to the customer before re-authentication."""

    source_account_id: UUID
    source_label: str
    destination_account_id: UUID
    destination_account_number: str
    destination_label: str
    amount: Decimal
    purpose: str
    classification: str
    idempotency_key: str


@dataclass(frozen=True)
class TransferReceipt:
    amount: Decimal
    recipient_label: str
    transaction_id: UUID
    timestamp: datetime
    classification: str
    purpose: str
    status: str = "Completed"


@dataclass(frozen=True)
class TransferFailure:
    message: str
    amount: Decimal
    recipient_label: str
    classification: str
    rolled_back: bool = True
    status: str = "failure"


TransferOutcome = Union[TransferReceipt, TransferFailure]
