from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AccountOut(BaseModel):
    account_id: UUID
    account_number: str
    account_type: str
    balance: Decimal
    nickname: Optional[str] = None
    label: str


class HistoryEntryOut(BaseModel):
    transaction_id: UUID
    direction: str
    amount: Decimal
    signed_amount: Decimal
    counterparty: str
    purpose: Optional[str] = None
    type_of_transfer: str
    transfer_datetime: Optional[str] = None


class TransferIn(BaseModel):
    source_account_id: Optional[UUID] = None
    destination_account_number: str = Field("", examples=["1000000002"])
    # Kept as text so that the same rules apply as for typed input
    amount: str = Field("", examples=["100.00"])
    purpose: Optional[str] = None


class ReauthIn(BaseModel):
    password: str = ""


class ConfirmationOut(BaseModel):
    from_account: str
    to_account: str
    amount: Decimal
    amount_display: str
    purpose: str
    type_of_transfer: str


class ReceiptOut(BaseModel):
    status: str
    amount: Decimal
    recipient_name: str
    transaction_id: UUID
    timestamp: str
    type_of_transfer: str
    purpose: Optional[str] = None


class FailureOut(BaseModel):
    status: str
    message: str
    amount: Decimal
    recipient_name: str
    type_of_transfer: str
    rolled_back: bool


class TransferSessionOut(BaseModel):
    session_id: str
    state: str
    accounts: List[AccountOut]
    default_source_account_id: Optional[UUID] = None
    confirmation: Optional[ConfirmationOut] = None
    error: Optional[str] = None
    verification_error: Optional[str] = None
    receipt: Optional[ReceiptOut] = None
    failure: Optional[FailureOut] = None


class TransferResultOut(BaseModel):
    status: str
    session_id: str
    receipt: Optional[ReceiptOut] = None
    failure: Optional[FailureOut] = None
