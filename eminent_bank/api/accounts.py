from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from eminent_bank.clients.identity_client import IdentityUser
from eminent_bank.db.ledger import Ledger
from eminent_bank.domain import AccountSnapshot
from eminent_bank.logging_config import get_logger
from .deps import get_current_user, get_ledger
from .schemas import AccountOut, HistoryEntryOut
from .serializers import serialize_account, serialize_history_entry

logger = get_logger("eminent_bank.api.accounts")

router = APIRouter(tags=["accounts"])


async def _owned_account(ledger: Ledger, user: IdentityUser, account_number: str) -> AccountSnapshot:
    acct_num = account_number.strip()
    try:
        customer_id = await ledger.find_customer_id(user.user_id)
        account = await ledger.find_account_by_number(acct_num)
    except SQLAlchemyError:
        logger.exception("Account lookup failed account_number=%s", acct_num)
        raise HTTPException(status_code=500, detail="Could not load account")
    if account is None:
        logger.warning("Account not found: %s", acct_num)
        raise HTTPException(status_code=404, detail="Account not found")
    if customer_id is None or account.owner_id != customer_id:
        logger.warning("Account %s requested by non-owner %s", acct_num, user.email)
        raise HTTPException(status_code=403, detail="Account does not belong to the signed-in customer")
    return account


@router.get("/me/accounts", response_model=List[AccountOut])
async def list_my_accounts(user: IdentityUser = Depends(get_current_user), ledger: Ledger = Depends(get_ledger)):
    """
    Accounts of the signed-in customer, with current balances.
    """
    try:
        customer_id = await ledger.find_customer_id(user.user_id)
        if customer_id is None:
            raise HTTPException(status_code=404, detail="Could not retrieve customer details.")
        accounts = await ledger.list_accounts(customer_id)
    except SQLAlchemyError:
        logger.exception("Failed to list accounts for %s", user.email)
        raise HTTPException(status_code=500, detail="Could not load accounts")
    return [serialize_account(a) for a in accounts]


@router.get("/accounts/{account_number}", response_model=AccountOut)
async def get_account(
    account_number: str,
    user: IdentityUser = Depends(get_current_user),
    ledger: Ledger = Depends(get_ledger),
):
    account = await _owned_account(ledger, user, account_number)
    return serialize_account(account)


@router.get("/accounts/{account_number}/transactions", response_model=List[HistoryEntryOut])
async def get_account_transactions(
    account_number: str,
    limit: int = 20,
    user: IdentityUser = Depends(get_current_user),
    ledger: Ledger = Depends(get_ledger),
):
    """
    Recent transactions touching an account, newest first. Each entry is a
    debit when this account sent the money and a credit when it received it.
    """
    account = await _owned_account(ledger, user, account_number)
    limit = max(1, min(limit, 200))
    logger.info("Fetching transactions for account_number=%s limit=%s", account.account_number, limit)
    try:
        history = await ledger.account_history(account.account_id, limit=limit)
    except SQLAlchemyError:
        logger.exception("Failed to load transactions for %s", account.account_number)
        raise HTTPException(status_code=500, detail="Could not load transactions")
    return [serialize_history_entry(e) for e in history]
