from __future__ import annotations

from eminent_bank.clients.identity_client import IdentityClient
from eminent_bank.exceptions import (
    IdentityProviderError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    ReauthenticationError,
    TransferValidationError,
)
from eminent_bank.logging_config import get_logger

logger = get_logger("eminent_bank.workflow.reauth")

EMPTY_PASSWORD_MESSAGE = "Password cannot be empty."
INCORRECT_PASSWORD_MESSAGE = "Incorrect password. Please try again."
MISSING_EMAIL_MESSAGE = "User email not found for verification."


class ReauthGate:
    """
    Step-up check: the customer re-enters their password before funds move.
    """

    def __init__(self, identity: IdentityClient, email: str):
        self.identity = identity
        self.email = email
        self.attempts = 0

    async def verify(self, password: str) -> None:
        if not password:
            raise TransferValidationError(EMPTY_PASSWORD_MESSAGE)
        if not self.email:
            raise ReauthenticationError(MISSING_EMAIL_MESSAGE)

        self.attempts += 1
        try:
            await self.identity.verify_password(self.email, password)
        except InvalidCredentialsError as e:
            logger.info("Password verification failed for %s (attempt %s)", self.email, self.attempts)
            raise IncorrectPasswordError(INCORRECT_PASSWORD_MESSAGE) from e
        except IdentityProviderError as e:
            logger.warning("Password verification error for %s: %s", self.email, e.message)
            raise ReauthenticationError(f"Verification failed: {e.message}") from e
        logger.info("Password verified for %s", self.email)
