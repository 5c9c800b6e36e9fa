from sqlalchemy.exc import SQLAlchemyError

from eminent_bank.db.ledger import Ledger
from eminent_bank.domain import AccountSnapshot
from eminent_bank.exceptions import RecipientNotFoundError, RecipientResolutionError, SelfTransferError
from eminent_bank.logging_config import get_logger
from eminent_bank.workflow.models import TransferRequest

logger = get_logger("eminent_bank.workflow.resolver")

RECIPIENT_NOT_FOUND_MESSAGE = "Recipient account not found. Please verify the account number."
SELF_TRANSFER_MESSAGE = "Cannot transfer money to the same account."


class RecipientResolver:
    """
    Looks up the destination account by its exact account number.
    One request, no retry.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    async def resolve(self, request: TransferRequest) -> AccountSnapshot:
        number = request.destination_account_number
        try:
            recipient = await self.ledger.find_account_by_number(number)
        except SQLAlchemyError as e:
            logger.exception("Recipient lookup failed for account_number=%s", number)
            raise RecipientResolutionError(f"Could not look up recipient account: {e}") from e

        if recipient is None:
            logger.info("Recipient not found account_number=%s", number)
            raise RecipientNotFoundError(RECIPIENT_NOT_FOUND_MESSAGE)
        if recipient.account_number == request.source.account_number:
            raise SelfTransferError(SELF_TRANSFER_MESSAGE)

        request.destination = recipient
        return recipient
