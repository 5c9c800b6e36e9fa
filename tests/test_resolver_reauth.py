"""Tests for recipient resolution and step-up re-authentication."""

import pytest
from sqlalchemy.exc import OperationalError

from eminent_bank.exceptions import (
    IncorrectPasswordError,
    RecipientNotFoundError,
    RecipientResolutionError,
    ReauthenticationError,
    SelfTransferError,
    TransferValidationError,
)
from eminent_bank.workflow.reauth import ReauthGate
from eminent_bank.workflow.resolver import RecipientResolver
from eminent_bank.workflow.validation import validate_transfer_input


async def _request(ledger, bank, destination: str, amount: str = "10"):
    accounts = await ledger.list_accounts(bank.alice_customer_id)
    return validate_transfer_input(accounts, bank.alice_checking, destination, amount, None)


class TestRecipientResolver:
    async def test_resolves_other_customer_account(self, ledger, bank) -> None:
        req = await _request(ledger, bank, "2000000001")

        recipient = await RecipientResolver(ledger).resolve(req)

        assert recipient.account_id == bank.bob_checking
        assert req.destination == recipient

    async def test_resolves_own_other_account(self, ledger, bank) -> None:
        req = await _request(ledger, bank, "1000000002")

        recipient = await RecipientResolver(ledger).resolve(req)

        assert recipient.account_id == bank.alice_savings
        assert recipient.label == "savings (Rainy Day) (****0002)"

    async def test_trims_surrounding_whitespace(self, ledger, bank) -> None:
        req = await _request(ledger, bank, "  2000000001\t")

        recipient = await RecipientResolver(ledger).resolve(req)

        assert recipient.account_id == bank.bob_checking

    async def test_not_found(self, ledger, bank) -> None:
        req = await _request(ledger, bank, "9999999999")

        with pytest.raises(RecipientNotFoundError) as exc:
            await RecipientResolver(ledger).resolve(req)
        assert exc.value.message == "Recipient account not found. Please verify the account number."
        assert req.destination is None

    async def test_self_transfer(self, ledger, bank) -> None:
        req = await _request(ledger, bank, "1000000001")

        with pytest.raises(SelfTransferError) as exc:
            await RecipientResolver(ledger).resolve(req)
        assert exc.value.message == "Cannot transfer money to the same account."

    async def test_store_error_surfaces_as_resolution_error(self, ledger, bank, monkeypatch) -> None:
        req = await _request(ledger, bank, "2000000001")

        async def broken(number):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(ledger, "find_account_by_number", broken)
        with pytest.raises(RecipientResolutionError) as exc:
            await RecipientResolver(ledger).resolve(req)
        assert not isinstance(exc.value, RecipientNotFoundError)
        assert "connection reset" in exc.value.message


class TestReauthGate:
    async def test_correct_password(self, identity, bank) -> None:
        gate = ReauthGate(identity, bank.alice.email)

        await gate.verify("alice-pass")

        assert gate.attempts == 1
        assert identity.verify_calls == [(bank.alice.email, "alice-pass")]

    async def test_empty_password_is_rejected_locally(self, identity, bank) -> None:
        gate = ReauthGate(identity, bank.alice.email)

        with pytest.raises(TransferValidationError) as exc:
            await gate.verify("")
        assert exc.value.message == "Password cannot be empty."
        assert identity.verify_calls == []
        assert gate.attempts == 0

    async def test_incorrect_password(self, identity, bank) -> None:
        gate = ReauthGate(identity, bank.alice.email)

        with pytest.raises(IncorrectPasswordError) as exc:
            await gate.verify("wrong")
        assert exc.value.message == "Incorrect password. Please try again."

    async def test_provider_failure(self, identity, bank) -> None:
        identity.unavailable = True
        gate = ReauthGate(identity, bank.alice.email)

        with pytest.raises(ReauthenticationError) as exc:
            await gate.verify("alice-pass")
        assert not isinstance(exc.value, IncorrectPasswordError)
        assert exc.value.message == "Verification failed: Service unavailable"

    async def test_missing_email(self, identity) -> None:
        with pytest.raises(ReauthenticationError):
            await ReauthGate(identity, "").verify("alice-pass")
        assert identity.verify_calls == []

    async def test_attempts_are_counted(self, identity, bank) -> None:
        gate = ReauthGate(identity, bank.alice.email)
        for _ in range(3):
            with pytest.raises(IncorrectPasswordError):
                await gate.verify("nope")
        await gate.verify("alice-pass")

        assert gate.attempts == 4
