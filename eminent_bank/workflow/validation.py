"""
Input stage: amount entry filter and submission validation.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence
from uuid import UUID

from eminent_bank.domain import AccountSnapshot
from eminent_bank.exceptions import InsufficientFundsError, TransferValidationError
from eminent_bank.workflow.models import TransferRequest

# Digits with at most one decimal point; the empty string is allowed so a
# field can be cleared
AMOUNT_INPUT_PATTERN = re.compile(r"^\d*\.?\d*$")

MISSING_FIELDS_MESSAGE = "Please fill in all required fields and ensure the amount is valid."
INVALID_SOURCE_MESSAGE = 'Invalid "from" account selected.'
INSUFFICIENT_FUNDS_MESSAGE = "Insufficient funds in the selected account."
PRECISION_MESSAGE = "Amount cannot have more than two decimal places."


def is_acceptable_amount_input(value: str) -> bool:
    return value == "" or bool(AMOUNT_INPUT_PATTERN.match(value))


def apply_amount_keystroke(current: str, proposed: str) -> str:
    """
    Return the value the amount field holds after an edit: ``proposed`` if it
    is acceptable, otherwise ``current`` unchanged.
    """
    return proposed if is_acceptable_amount_input(proposed) else current


def parse_amount(text: Optional[str]) -> Optional[Decimal]:
    """
    Parse amount text into a positive finite Decimal, or None.
    """
    if text is None:
        return None
    text = text.strip()
    if not text or not AMOUNT_INPUT_PATTERN.match(text) or text == ".":
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def validate_transfer_input(
    accounts: Sequence[AccountSnapshot],
    source_account_id: Optional[UUID],
    destination_account_number: Optional[str],
    amount_text: Optional[str],
    purpose: Optional[str],
    default_purpose: str = "General Transfer",
) -> TransferRequest:
    """
    Validate the submitted form against the last-fetched account list.

    The balance check uses the (possibly stale) snapshot balance; the commit
    stage checks again against a fresh read.
    """
    destination_number = (destination_account_number or "").strip()
    amount = parse_amount(amount_text)
    if source_account_id is None or not destination_number or amount is None:
        raise TransferValidationError(MISSING_FIELDS_MESSAGE)

    if amount.normalize().as_tuple().exponent < -2:
        raise TransferValidationError(PRECISION_MESSAGE)

    source = next((a for a in accounts if a.account_id == source_account_id), None)
    if source is None:
        raise TransferValidationError(INVALID_SOURCE_MESSAGE)

    if source.balance < amount:
        raise InsufficientFundsError(INSUFFICIENT_FUNDS_MESSAGE)

    return TransferRequest(
        source=source,
        destination_account_number=destination_number,
        amount=amount,
        purpose=(purpose or "").strip() or default_purpose,
    )
