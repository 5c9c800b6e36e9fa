from typing import Any, Dict, Optional

from eminent_bank.domain import AccountSnapshot, HistoryEntry, mask_account_number
from eminent_bank.workflow.confirmation import format_amount
from eminent_bank.workflow.models import TransferConfirmation, TransferFailure, TransferReceipt
from eminent_bank.workflow.session_manager import TransferSession

INCOMING_COUNTERPARTY = "Incoming transfer"


def serialize_account(a: AccountSnapshot) -> Dict[str, Any]:
    return {
        "account_id": str(a.account_id),
        "account_number": a.account_number,
        "account_type": a.account_type.value,
        "balance": a.balance,
        "nickname": a.nickname,
        "label": a.label,
    }


def serialize_history_entry(entry: HistoryEntry) -> Dict[str, Any]:
    r = entry.record
    is_debit = entry.direction.value == "debit"
    return {
        "transaction_id": str(r.transaction_id),
        "direction": entry.direction.value,
        "amount": r.amount,
        "signed_amount": entry.signed_amount,
        # Credits never expose the sender's account
        "counterparty": mask_account_number(r.destination_account_number) if is_debit else INCOMING_COUNTERPARTY,
        "purpose": r.purpose,
        "type_of_transfer": r.classification,
        "transfer_datetime": r.created_at.isoformat() if r.created_at else None,
    }


def serialize_confirmation(c: Optional[TransferConfirmation]) -> Optional[Dict[str, Any]]:
    if c is None:
        return None
    return {
        "from_account": c.source_label,
        "to_account": c.destination_label,
        "amount": c.amount,
        "amount_display": format_amount(c.amount),
        "purpose": c.purpose,
        "type_of_transfer": c.classification,
    }


def serialize_receipt(r: TransferReceipt) -> Dict[str, Any]:
    return {
        "status": r.status,
        "amount": r.amount,
        "recipient_name": r.recipient_label,
        "transaction_id": str(r.transaction_id),
        "timestamp": r.timestamp.isoformat(),
        "type_of_transfer": r.classification,
        "purpose": r.purpose,
    }


def serialize_failure(f: TransferFailure) -> Dict[str, Any]:
    return {
        "status": f.status,
        "message": f.message,
        "amount": f.amount,
        "recipient_name": f.recipient_label,
        "type_of_transfer": f.classification,
        "rolled_back": f.rolled_back,
    }


def serialize_session(s: TransferSession) -> Dict[str, Any]:
    wf = s.workflow
    outcome = wf.outcome
    return {
        "session_id": s.session_id,
        "state": wf.state.value,
        "accounts": [serialize_account(a) for a in wf.accounts],
        "default_source_account_id": str(wf.default_source_account_id) if wf.default_source_account_id else None,
        "confirmation": serialize_confirmation(wf.confirmation),
        "error": wf.error,
        "verification_error": wf.verification_error,
        "receipt": serialize_receipt(outcome) if isinstance(outcome, TransferReceipt) else None,
        "failure": serialize_failure(outcome) if isinstance(outcome, TransferFailure) else None,
    }
