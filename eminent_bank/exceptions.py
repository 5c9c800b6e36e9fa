"""Exception hierarchy for the transfer service.

Every error carries ``message``, the text shown to the customer.
"""


class EminentBankError(Exception):
    """Base exception for all eminent_bank errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(EminentBankError):
    """Raised when configuration is invalid or missing."""


class WorkflowStateError(EminentBankError):
    """Raised when a workflow action is not allowed in the current state."""


# Validation (local, recoverable)


class TransferValidationError(EminentBankError):
    """Raised when transfer input fields are missing or invalid."""


class InsufficientFundsError(TransferValidationError):
    """Raised when the last-fetched source balance cannot cover the amount."""


# Resolution (recoverable)


class RecipientResolutionError(EminentBankError):
    """Raised when the destination account cannot be resolved."""


class RecipientNotFoundError(RecipientResolutionError):
    """Raised when no account matches the destination account number."""


class SelfTransferError(RecipientResolutionError):
    """Raised when source and destination are the same account."""


# Authentication (recoverable)


class ReauthenticationError(EminentBankError):
    """Raised when step-up verification does not succeed."""


class IncorrectPasswordError(ReauthenticationError):
    """Raised when the re-entered password is wrong."""


class IdentityProviderError(EminentBankError):
    """Raised when the identity provider fails or is unreachable."""


class InvalidCredentialsError(IdentityProviderError):
    """Raised by identity clients when email/password do not match."""


class InvalidTokenError(IdentityProviderError):
    """Raised when an access token cannot be introspected."""


# Commit (terminal for the attempt)


class TransferCommitError(EminentBankError):
    """Raised when the commit stage aborts.

    ``rolled_back`` is True when the storage transaction was rolled back and
    no balance changed.
    """

    def __init__(self, message: str, rolled_back: bool = True):
        super().__init__(message)
        self.rolled_back = rolled_back


class InsufficientBalanceError(TransferCommitError):
    """Raised when the fresh source balance cannot cover the amount."""


class AccountUnavailableError(TransferCommitError):
    """Raised when an account involved in the transfer cannot be re-read."""


class DebitFailedError(TransferCommitError):
    """Raised when debiting the source account fails."""


class CreditFailedError(TransferCommitError):
    """Raised when crediting the destination account fails."""


class RecordFailedError(TransferCommitError):
    """Raised when the transaction record cannot be written."""
