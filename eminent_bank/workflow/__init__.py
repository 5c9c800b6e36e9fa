from eminent_bank.workflow.models import (
    TransferConfirmation,
    TransferFailure,
    TransferOutcome,
    TransferReceipt,
    TransferRequest,
    WorkflowState,
)
from eminent_bank.workflow.session_manager import TransferSession, TransferSessionManager
from eminent_bank.workflow.transfer_workflow import TransferWorkflow

__all__ = [
    "TransferConfirmation",
    "TransferFailure",
    "TransferOutcome",
    "TransferReceipt",
    "TransferRequest",
    "TransferSession",
    "TransferSessionManager",
    "TransferWorkflow",
    "WorkflowState",
]
