"""
Transfer workflow state machine.

    INPUT -> CONFIRMATION -> REAUTH -> COMMITTING -> SUCCESS | FAILURE

``cancel`` leaves for CANCELLED from INPUT or CONFIRMATION, ``revise`` goes
back from CONFIRMATION to INPUT and ``close_reauth`` from REAUTH to
CONFIRMATION. The commit stage runs at most once per workflow.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional
from uuid import UUID

from eminent_bank.clients.identity_client import IdentityClient, IdentityUser
from eminent_bank.db.ledger import Ledger
from eminent_bank.domain import AccountSnapshot
from eminent_bank.exceptions import EminentBankError, WorkflowStateError
from eminent_bank.logging_config import get_logger
from eminent_bank.workflow.commit import CommitStage
from eminent_bank.workflow.confirmation import build_confirmation
from eminent_bank.workflow.models import (
    TERMINAL_STATES,
    TransferConfirmation,
    TransferOutcome,
    TransferReceipt,
    TransferRequest,
    WorkflowState,
)
from eminent_bank.workflow.reauth import ReauthGate
from eminent_bank.workflow.resolver import RecipientResolver
from eminent_bank.workflow.validation import validate_transfer_input

logger = get_logger("eminent_bank.workflow")


class TransferWorkflow:
    def __init__(
        self,
        ledger: Ledger,
        identity: IdentityClient,
        user: IdentityUser,
        customer_id: UUID,
        accounts: List[AccountSnapshot],
        classification: str = "Customer Transfer",
        default_purpose: str = "General Transfer",
    ) -> None:
        self.ledger = ledger
        self.user = user
        self.customer_id = customer_id
        self.accounts = accounts
        self.classification = classification
        self.default_purpose = default_purpose

        self.resolver = RecipientResolver(ledger)
        self.reauth = ReauthGate(identity, user.email)
        self.commit_stage = CommitStage(ledger)

        self.state = WorkflowState.INPUT
        self.request: Optional[TransferRequest] = None
        self.confirmation: Optional[TransferConfirmation] = None
        self.outcome: Optional[TransferOutcome] = None
        self.error: Optional[str] = None
        self.verification_error: Optional[str] = None
        self.commit_count = 0
        self._commit_lock = asyncio.Lock()

    @classmethod
    async def start(
        cls,
        ledger: Ledger,
        identity: IdentityClient,
        user: IdentityUser,
        classification: str = "Customer Transfer",
        default_purpose: str = "General Transfer",
    ) -> "TransferWorkflow":
        """
        Load the customer's accounts and open a workflow in the INPUT state.
        """
        customer_id = await ledger.find_customer_id(user.user_id)
        if customer_id is None:
            raise EminentBankError("Could not retrieve customer details.")
        accounts = await ledger.list_accounts(customer_id)
        logger.info("Transfer workflow opened for %s with %d account(s)", user.email, len(accounts))
        return cls(
            ledger,
            identity,
            user,
            customer_id,
            accounts,
            classification=classification,
            default_purpose=default_purpose,
        )

    @property
    def default_source_account_id(self) -> Optional[UUID]:
        return self.accounts[0].account_id if self.accounts else None

    def _require(self, *states: WorkflowState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise WorkflowStateError(f"Action not allowed in state '{self.state.value}' (expected {allowed}).")

    async def submit(
        self,
        source_account_id: Optional[UUID],
        destination_account_number: Optional[str],
        amount_text: Optional[str],
        purpose: Optional[str] = None,
    ) -> TransferConfirmation:
        """
        Validate the form, resolve the recipient and move to CONFIRMATION.
        Errors leave the workflow in INPUT for correction.
        """
        self._require(WorkflowState.INPUT)
        self.error = None
        try:
            request = validate_transfer_input(
                self.accounts,
                source_account_id,
                destination_account_number,
                amount_text,
                purpose,
                default_purpose=self.default_purpose,
            )
            await self.resolver.resolve(request)
        except EminentBankError as e:
            self.error = e.message
            raise

        self.request = request
        self.confirmation = build_confirmation(request, self.classification)
        self.state = WorkflowState.CONFIRMATION
        logger.info(
            "Transfer confirmation ready from=%s to=%s amount=%s",
            self.confirmation.source_label,
            self.confirmation.destination_label,
            self.confirmation.amount,
        )
        return self.confirmation

    def revise(self) -> None:
        self._require(WorkflowState.CONFIRMATION)
        self.confirmation = None
        self.state = WorkflowState.INPUT

    def cancel(self) -> None:
        self._require(WorkflowState.INPUT, WorkflowState.CONFIRMATION)
        self.request = None
        self.confirmation = None
        self.state = WorkflowState.CANCELLED
        logger.info("Transfer cancelled by %s", self.user.email)

    def proceed(self) -> None:
        self._require(WorkflowState.CONFIRMATION)
        self.verification_error = None
        self.state = WorkflowState.REAUTH

    def close_reauth(self) -> None:
        self._require(WorkflowState.REAUTH)
        self.verification_error = None
        self.state = WorkflowState.CONFIRMATION

    async def verify_and_commit(self, password: str) -> TransferOutcome:
        """
        Re-authenticate and, on success, commit exactly once.

        Authentication errors are raised and keep the workflow in REAUTH.
        Commit errors are not raised: they produce a TransferFailure.
        Overlapping calls run one at a time; only the first can commit.
        """
        async with self._commit_lock:
            return await self._verify_and_commit(password)

    async def _verify_and_commit(self, password: str) -> TransferOutcome:
        self._require(WorkflowState.REAUTH)
        self.verification_error = None
        try:
            await self.reauth.verify(password)
        except EminentBankError as e:
            self.verification_error = e.message
            raise
        # The reauth dialog may have been closed while the password was checked
        self._require(WorkflowState.REAUTH)

        self.state = WorkflowState.COMMITTING
        self.commit_count += 1
        outcome = await self.commit_stage.commit(self.confirmation)
        self.outcome = outcome

        if isinstance(outcome, TransferReceipt):
            self.state = WorkflowState.SUCCESS
            await self._refresh_accounts()
        else:
            self.state = WorkflowState.FAILURE
            self.error = outcome.message
        self.request = None
        self.confirmation = None
        return outcome

    async def _refresh_accounts(self) -> None:
        try:
            self.accounts = await self.ledger.list_accounts(self.customer_id)
        except Exception:
            # The transfer itself is done; stale balances only affect display
            logger.exception("Failed to refresh accounts after transfer for %s", self.user.email)

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES
