from eminent_bank.db.ledger import Ledger
from eminent_bank.domain import TransferInstruction
from eminent_bank.exceptions import TransferCommitError, WorkflowStateError
from eminent_bank.logging_config import get_logger
from eminent_bank.workflow.models import TransferConfirmation, TransferFailure, TransferOutcome, TransferReceipt

logger = get_logger("eminent_bank.workflow.commit")


class CommitStage:
    """
    Hands the confirmed transfer to the ledger and turns the result into a
    receipt or a failure view. Never raises for commit errors.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    async def commit(self, confirmation: TransferConfirmation) -> TransferOutcome:
        if confirmation is None:
            raise WorkflowStateError("Confirmation details missing.")
        instruction = TransferInstruction(
            source_account_id=confirmation.source_account_id,
            destination_account_id=confirmation.destination_account_id,
            destination_account_number=confirmation.destination_account_number,
            amount=confirmation.amount,
            purpose=confirmation.purpose,
            classification=confirmation.classification,
            idempotency_key=confirmation.idempotency_key,
        )
        try:
            record = await self.ledger.execute_transfer(instruction)
        except TransferCommitError as e:
            return self._failure(confirmation, e.message, e.rolled_back)
        except Exception as e:
            logger.exception("Transfer failed key=%s: %s", confirmation.idempotency_key, e)
            return self._failure(confirmation, f"Transfer failed: {e}", rolled_back=False)

        return TransferReceipt(
            amount=record.amount,
            recipient_label=confirmation.destination_label,
            transaction_id=record.transaction_id,
            timestamp=record.created_at,
            classification=record.classification,
            purpose=record.purpose,
        )

    @staticmethod
    def _failure(confirmation: TransferConfirmation, message: str, rolled_back: bool) -> TransferFailure:
        return TransferFailure(
            message=message,
            amount=confirmation.amount,
            recipient_label=confirmation.destination_label,
            classification=confirmation.classification,
            rolled_back=rolled_back,
        )
