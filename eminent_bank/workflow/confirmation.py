"""
Confirmation stage: freeze the resolved transfer for display. No backend calls.
"""

from decimal import Decimal
from uuid import uuid4

from eminent_bank.exceptions import WorkflowStateError
from eminent_bank.workflow.models import TransferConfirmation, TransferRequest


def format_amount(amount: Decimal, currency: str = "$") -> str:
    return f"{currency}{amount:,.2f}"


def build_confirmation(request: TransferRequest, classification: str) -> TransferConfirmation:
    """
    Build the display snapshot. Each confirmation gets its own idempotency
    key, so one confirmed transfer is committed at most once.
    """
    if request.destination is None:
        raise WorkflowStateError("Confirmation details missing.")
    return TransferConfirmation(
        source_account_id=request.source.account_id,
        source_label=request.source.label,
        destination_account_id=request.destination.account_id,
        destination_account_number=request.destination.account_number,
        destination_label=request.destination.label,
        amount=request.amount,
        purpose=request.purpose,
        classification=classification,
        idempotency_key=uuid4().hex,
    )
