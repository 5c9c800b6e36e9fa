"""
Transfer workflow routes.

A transfer is driven through a server-side session:

    POST /transfers                      open a workflow (INPUT)
    POST /transfers/{id}/submit          validate + resolve -> CONFIRMATION
    POST /transfers/{id}/revise          CONFIRMATION -> INPUT
    POST /transfers/{id}/cancel          INPUT | CONFIRMATION -> CANCELLED
    POST /transfers/{id}/proceed         CONFIRMATION -> REAUTH
    POST /transfers/{id}/reauth/close    REAUTH -> CONFIRMATION
    POST /transfers/{id}/reauth          verify password, commit once

Commit failures are returned with status "failure", not as HTTP errors.
"""

from fastapi import APIRouter, Body, Depends, HTTPException

from eminent_bank.clients.identity_client import IdentityClient, IdentityUser
from eminent_bank.config import Settings
from eminent_bank.db.ledger import Ledger
from eminent_bank.exceptions import (
    EminentBankError,
    RecipientNotFoundError,
    RecipientResolutionError,
    ReauthenticationError,
    TransferValidationError,
    WorkflowStateError,
)
from eminent_bank.logging_config import get_logger
from eminent_bank.workflow.models import TransferReceipt
from eminent_bank.workflow.session_manager import TransferSession, TransferSessionManager
from eminent_bank.workflow.transfer_workflow import TransferWorkflow
from .deps import get_current_user, get_identity, get_ledger, get_sessions, get_settings, get_transfer_session
from .schemas import ReauthIn, TransferIn, TransferResultOut, TransferSessionOut
from .serializers import serialize_failure, serialize_receipt, serialize_session

logger = get_logger("eminent_bank.api.transfers")

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _http_error(e: EminentBankError) -> HTTPException:
    if isinstance(e, WorkflowStateError):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, RecipientNotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if type(e) is RecipientResolutionError:
        # Lookup itself failed, not the customer's input
        return HTTPException(status_code=503, detail=e.message)
    if isinstance(e, (TransferValidationError, RecipientResolutionError)):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, ReauthenticationError):
        return HTTPException(status_code=401, detail=e.message)
    return HTTPException(status_code=500, detail=e.message)


@router.post("", response_model=TransferSessionOut, status_code=201)
async def start_transfer(
    user: IdentityUser = Depends(get_current_user),
    ledger: Ledger = Depends(get_ledger),
    identity: IdentityClient = Depends(get_identity),
    sessions: TransferSessionManager = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    sessions.purge_expired()
    try:
        workflow = await TransferWorkflow.start(
            ledger,
            identity,
            user,
            classification=settings.transfer_classification,
            default_purpose=settings.default_transfer_purpose,
        )
    except EminentBankError as e:
        logger.warning("Could not open transfer for %s: %s", user.email, e.message)
        raise HTTPException(status_code=404, detail=e.message)
    session = sessions.create_session(workflow)
    return serialize_session(session)


@router.get("/{session_id}", response_model=TransferSessionOut)
async def get_transfer(session: TransferSession = Depends(get_transfer_session)):
    return serialize_session(session)


@router.post("/{session_id}/submit", response_model=TransferSessionOut)
async def submit_transfer(payload: TransferIn, session: TransferSession = Depends(get_transfer_session)):
    """
    Validate the form and look up the recipient. On success the session
    carries the confirmation summary; on error it stays in INPUT.
    """
    try:
        await session.workflow.submit(
            payload.source_account_id,
            payload.destination_account_number,
            payload.amount,
            payload.purpose,
        )
    except EminentBankError as e:
        logger.info("Transfer submit rejected session=%s: %s", session.session_id, e.message)
        raise _http_error(e)
    return serialize_session(session)


@router.post("/{session_id}/revise", response_model=TransferSessionOut)
async def revise_transfer(session: TransferSession = Depends(get_transfer_session)):
    try:
        session.workflow.revise()
    except WorkflowStateError as e:
        raise _http_error(e)
    return serialize_session(session)


@router.post("/{session_id}/cancel", response_model=TransferSessionOut)
async def cancel_transfer(
    session: TransferSession = Depends(get_transfer_session),
    sessions: TransferSessionManager = Depends(get_sessions),
):
    try:
        session.workflow.cancel()
    except WorkflowStateError as e:
        raise _http_error(e)
    body = serialize_session(session)
    sessions.end_session(session.session_id)
    return body


@router.post("/{session_id}/proceed", response_model=TransferSessionOut)
async def proceed_to_reauth(session: TransferSession = Depends(get_transfer_session)):
    try:
        session.workflow.proceed()
    except WorkflowStateError as e:
        raise _http_error(e)
    return serialize_session(session)


@router.post("/{session_id}/reauth/close", response_model=TransferSessionOut)
async def close_reauth(session: TransferSession = Depends(get_transfer_session)):
    try:
        session.workflow.close_reauth()
    except WorkflowStateError as e:
        raise _http_error(e)
    return serialize_session(session)


@router.post("/{session_id}/reauth", response_model=TransferResultOut)
async def reauth_and_commit(
    payload: ReauthIn = Body(...),
    session: TransferSession = Depends(get_transfer_session),
):
    """
    Verify the password and commit the transfer.

    A wrong or empty password leaves the session in REAUTH and answers 401/400.
    Once the password checks out the transfer is attempted exactly once and
    the answer carries either the receipt or the failure view.
    """
    try:
        outcome = await session.workflow.verify_and_commit(payload.password)
    except EminentBankError as e:
        raise _http_error(e)

    if isinstance(outcome, TransferReceipt):
        return {"status": "success", "session_id": session.session_id, "receipt": serialize_receipt(outcome)}
    return {"status": "failure", "session_id": session.session_id, "failure": serialize_failure(outcome)}
