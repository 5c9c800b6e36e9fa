from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from eminent_bank.clients.identity_client import IdentityClient, LocalIdentityClient
from eminent_bank.exceptions import IdentityProviderError, InvalidCredentialsError
from eminent_bank.logging_config import get_logger
from .deps import get_identity

logger = get_logger("eminent_bank.api.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, identity: IdentityClient = Depends(get_identity)):
    """
    Issue an access token. Only available with the local identity backend;
    an external provider issues its own tokens.
    """
    if not isinstance(identity, LocalIdentityClient):
        raise HTTPException(status_code=404, detail="Login is handled by the identity provider")
    try:
        token = await identity.login(payload.email, payload.password)
    except InvalidCredentialsError:
        logger.info("Login failed for %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    except IdentityProviderError as e:
        raise HTTPException(status_code=503, detail=e.message)
    logger.info("Login success for %s", payload.email)
    return {"access_token": token, "token_type": "bearer"}
