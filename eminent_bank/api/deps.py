from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from eminent_bank.clients.identity_client import IdentityClient, IdentityUser
from eminent_bank.config import Settings
from eminent_bank.db.ledger import Ledger
from eminent_bank.exceptions import IdentityProviderError, InvalidTokenError
from eminent_bank.logging_config import get_logger
from eminent_bank.workflow.session_manager import TransferSession, TransferSessionManager

logger = get_logger("eminent_bank.api.deps")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def get_identity(request: Request) -> IdentityClient:
    return request.app.state.identity


def get_sessions(request: Request) -> TransferSessionManager:
    return request.app.state.sessions


async def get_current_user(
    authorization: Optional[str] = Header(None),
    identity: IdentityClient = Depends(get_identity),
) -> IdentityUser:
    """
    Resolve the bearer token to the signed-in user via the identity provider.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="No active session. Please log in.")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return await identity.get_user(token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=e.message)
    except IdentityProviderError as e:
        logger.warning("Session introspection failed: %s", e.message)
        raise HTTPException(status_code=502, detail=e.message)


def get_transfer_session(
    session_id: str,
    user: IdentityUser = Depends(get_current_user),
    sessions: TransferSessionManager = Depends(get_sessions),
) -> TransferSession:
    session = sessions.get_session(session_id, user.user_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Transfer session not found")
    return session
